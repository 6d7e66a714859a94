"""
Domain Orchestrator.

Runs the hand-coded business processes that span the Balance and
Collections contexts:

1. Customer deposit
2. Agent bet placement
3. Customer onboarding

Each process is a fixed list of steps executed by the shared StepRunner.
A process returns a BusinessProcessResult on success and raises
ProcessFailedError carrying the same shape on failure. Completed steps
are never compensated; ``applied_effects`` reports what already happened.
"""
from collections.abc import Callable
from datetime import timedelta
from typing import Any
import uuid

from core.application.interfaces import (
    IBalanceController,
    ICollectionsController,
    IFantasy402Gateway,
)
from core.domain.enums import AggregateType
from core.domain.errors import (
    BalanceOperationError,
    Fire22Error,
    InsufficientBalanceError,
    PaymentError,
    ProcessFailedError,
    StepFailedError,
    ValidationError,
)
from core.domain.value_objects import BalanceChangeType, PaymentRequest
from fire22_sdk.logging import get_logger
from fire22_sdk.utils.datetime import elapsed_ms, utc_now

from .bus import EventBusProtocol
from .events import EventMetadata
from .models import BusinessProcessResult, ProcessStats
from .steps import RunContext, Step, StepRunner


def _new_process_id(prefix: str) -> str:
    return f"{prefix}_{uuid.uuid4().hex[:12]}"


def _delegated(event_type: str) -> Callable:
    """Action for a step carried out by a domain event handler reacting to ``event_type``."""

    async def action(payload: dict[str, Any], context: RunContext) -> dict[str, str]:
        return {"delegated_to": event_type}

    return action


class DomainOrchestrator:
    """Coordinates multi-step business processes across bounded contexts."""

    def __init__(
        self,
        event_bus: EventBusProtocol,
        balance_controller: IBalanceController,
        collections_controller: ICollectionsController,
        fantasy_gateway: IFantasy402Gateway,
        high_value_bet_threshold: float = 5000.0,
        deposit_currency: str = "USD",
    ) -> None:
        """Initialize orchestrator.

        Args:
            event_bus: Bus for audit and notification events
            balance_controller: Balance context contract
            collections_controller: Collections context contract
            fantasy_gateway: Fantasy402 gateway
            high_value_bet_threshold: Stakes above this are logged as high-value
            deposit_currency: Currency deposits are collected in
        """
        self._event_bus = event_bus
        self._balance = balance_controller
        self._collections = collections_controller
        self._gateway = fantasy_gateway
        self._high_value_bet_threshold = high_value_bet_threshold
        self._deposit_currency = deposit_currency
        self._runner = StepRunner(event_bus, logger_name="orchestration.orchestrator")
        self._active_processes: dict[str, BusinessProcessResult] = {}
        self._logger = get_logger("orchestration.orchestrator")

    # =========================================================================
    # CUSTOMER DEPOSIT
    # =========================================================================

    async def process_customer_deposit(
        self,
        customer_id: str,
        amount: float,
        payment_method: str,
        metadata: dict[str, Any] | None = None,
    ) -> BusinessProcessResult:
        """
        Collect a customer deposit.

        Balance update, bonus check and notification are carried out by the
        domain event handlers reacting to ``payment.processed``.

        Raises:
            ProcessFailedError: If validation or collection fails
        """
        process_id = _new_process_id("deposit")
        params = {
            "customer_id": customer_id,
            "amount": amount,
            "payment_method": payment_method,
            "metadata": dict(metadata or {}),
        }

        async def validate_payment(payload: dict[str, Any], context: RunContext) -> None:
            self._validate_payment_data(payload)

        async def process_collection(payload: dict[str, Any], context: RunContext):
            payment = await self._collections.process_payment(
                PaymentRequest(
                    id=f"payment_{process_id}",
                    player_id=customer_id,
                    amount=amount,
                    currency=self._deposit_currency,
                    payment_method=payment_method,
                    metadata=params["metadata"],
                )
            )
            if not payment.success:
                raise PaymentError(payment.error or "Collection processing failed")
            context.applied_effects.append(f"payment_collected:{payment.payment_id}")
            context.data["payment"] = payment
            return payment

        steps = [
            Step("validate_payment", "Validate Payment", validate_payment),
            Step("process_collection", "Process Collection", process_collection),
            Step("update_balance", "Update Balance", _delegated("payment.processed")),
            Step("check_bonuses", "Check Bonuses", _delegated("bonus.eligibility_checked")),
            Step("send_notification", "Send Notification", _delegated("notification.payment_confirmation")),
        ]
        return await self._run_process(
            "customer_deposit",
            process_id,
            steps,
            params,
            lambda context: context.data["payment"],
        )

    # =========================================================================
    # AGENT BET PLACEMENT
    # =========================================================================

    async def process_agent_bet_placement(
        self,
        agent_id: str,
        event_id: str,
        bet_type: str,
        amount: float,
        odds: float,
        selection: str,
    ) -> BusinessProcessResult:
        """
        Place a bet for an agent on Fantasy402.

        The agent's balance is checked before anything reaches the gateway,
        and debited only after the gateway accepted the bet.

        Raises:
            ProcessFailedError: If any step fails; ``cause`` holds the
                domain error (e.g. InsufficientBalanceError)
        """
        process_id = _new_process_id("bet")
        params = {
            "agent_id": agent_id,
            "event_id": event_id,
            "bet_type": bet_type,
            "amount": amount,
            "odds": odds,
            "selection": selection,
        }

        async def validate_balance(payload: dict[str, Any], context: RunContext):
            if amount is None or amount <= 0:
                raise ValidationError(f"Bet amount must be positive, got {amount}")
            response = await self._balance.get_balance_status(agent_id)
            if not response.success or response.balance is None:
                raise BalanceOperationError(
                    response.error or f"Agent balance not found: {agent_id}",
                    code=response.code or "BALANCE_NOT_FOUND",
                )
            if response.balance.available_balance < amount:
                raise InsufficientBalanceError(agent_id, amount, response.balance.available_balance)
            return response.balance

        async def check_risk(payload: dict[str, Any], context: RunContext) -> dict[str, Any]:
            high_value = amount > self._high_value_bet_threshold
            if high_value:
                self._logger.warning(
                    f"[{process_id}] ⚠️ High-value bet detected: {amount} by agent {agent_id}"
                )
            return {"high_value": high_value, "threshold": self._high_value_bet_threshold}

        async def place_external_bet(payload: dict[str, Any], context: RunContext):
            bet = await self._gateway.place_bet(
                agent_id=agent_id,
                event_id=event_id,
                bet_type=bet_type,
                amount=amount,
                odds=odds,
                selection=selection,
            )
            context.applied_effects.append(f"external_bet_placed:{bet.external_id}")
            context.data["bet"] = bet
            return bet

        async def update_internal_balance(payload: dict[str, Any], context: RunContext):
            bet = context.data["bet"]
            response = await self._balance.process_balance_change(
                customer_id=agent_id,
                amount=amount,
                change_type=BalanceChangeType.DEBIT,
                reason=f"Bet placed - {bet.external_id}",
                performed_by="system",
            )
            if not response.success:
                raise BalanceOperationError(
                    response.error or "Balance update failed after bet placement",
                    code=response.code or BalanceOperationError.code,
                )
            context.applied_effects.append(f"balance_debited:{agent_id}:{amount}")
            context.data["balance_update"] = response
            return response

        async def log_transaction(payload: dict[str, Any], context: RunContext) -> None:
            bet = context.data["bet"]
            await self._event_bus.emit(
                "audit.bet_placed",
                {
                    "process_id": process_id,
                    "agent_id": agent_id,
                    "bet_id": bet.external_id,
                    "amount": amount,
                    "event_id": event_id,
                    "placed_at": utc_now().isoformat(),
                },
                aggregate_id=bet.external_id,
                aggregate_type=AggregateType.BET,
                metadata=EventMetadata(correlation_id=process_id),
            )

        steps = [
            Step("validate_balance", "Validate Balance", validate_balance),
            Step("check_risk", "Check Risk", check_risk),
            Step("place_external_bet", "Place External Bet", place_external_bet),
            Step("update_internal_balance", "Update Internal Balance", update_internal_balance),
            Step("log_transaction", "Log Transaction", log_transaction),
        ]
        return await self._run_process(
            "agent_bet_placement",
            process_id,
            steps,
            params,
            lambda context: {
                "bet": context.data["bet"],
                "balance_update": context.data["balance_update"],
            },
        )

    # =========================================================================
    # CUSTOMER ONBOARDING
    # =========================================================================

    async def process_customer_onboarding(
        self,
        customer_id: str,
        agent_id: str,
        customer_data: dict[str, Any],
        initial_deposit: float | None = None,
    ) -> BusinessProcessResult:
        """
        Onboard a customer: balance account, optional first deposit, and
        ``customer.onboarding_completed`` for the welcome/bonus handlers.

        Raises:
            ProcessFailedError: If any step fails
        """
        process_id = _new_process_id("onboarding")
        params = {
            "customer_id": customer_id,
            "agent_id": agent_id,
            "customer_data": dict(customer_data or {}),
            "initial_deposit": initial_deposit,
        }

        async def validate_customer_data(payload: dict[str, Any], context: RunContext) -> None:
            self._validate_customer_data(payload["customer_data"])

        async def create_balance_account(payload: dict[str, Any], context: RunContext):
            response = await self._balance.create_balance(
                customer_id=customer_id, agent_id=agent_id, initial_balance=0.0
            )
            if not response.success:
                raise BalanceOperationError(
                    response.error or "Failed to create balance account",
                    code=response.code or BalanceOperationError.code,
                )
            context.applied_effects.append(f"balance_account_created:{customer_id}")
            return response.balance

        async def process_initial_deposit(payload: dict[str, Any], context: RunContext):
            deposit = await self.process_customer_deposit(
                customer_id=customer_id,
                amount=initial_deposit,
                payment_method="initial_deposit",
            )
            context.applied_effects.extend(deposit.applied_effects)
            return deposit

        async def setup_notifications(payload: dict[str, Any], context: RunContext) -> None:
            await self._event_bus.emit(
                "customer.onboarding_completed",
                {
                    "customer_id": customer_id,
                    "agent_id": agent_id,
                    "customer_data": payload["customer_data"],
                    "initial_deposit": initial_deposit,
                },
                aggregate_id=customer_id,
                aggregate_type=AggregateType.CUSTOMER,
                metadata=EventMetadata(correlation_id=process_id),
            )

        steps = [
            Step("validate_customer_data", "Validate Customer Data", validate_customer_data),
            Step("create_balance_account", "Create Balance Account", create_balance_account),
            Step(
                "process_initial_deposit",
                "Process Initial Deposit",
                process_initial_deposit,
                condition=lambda payload: (payload.get("initial_deposit") or 0) > 0,
            ),
            Step("setup_notifications", "Setup Notifications", setup_notifications),
            Step("send_welcome", "Send Welcome Package", _delegated("customer.onboarding_completed")),
        ]
        return await self._run_process(
            "customer_onboarding",
            process_id,
            steps,
            params,
            lambda context: {
                "customer_id": customer_id,
                "balance_created": True,
                "initial_deposit": initial_deposit,
            },
        )

    # =========================================================================
    # HELPERS
    # =========================================================================

    async def _run_process(
        self,
        process_name: str,
        process_id: str,
        steps: list[Step],
        payload: dict[str, Any],
        build_result: Callable[[RunContext], Any],
    ) -> BusinessProcessResult:
        context = RunContext(run_id=process_id)
        self._logger.info(f"[{process_id}] Starting {process_name} process")

        try:
            await self._runner.run(steps, payload, context)
        except StepFailedError as exc:
            cause = exc.cause
            result = self._build_result(
                process_name,
                context,
                success=False,
                error=str(cause) or type(cause).__name__,
                error_code=cause.code if isinstance(cause, Fire22Error) else "UNEXPECTED_ERROR",
                failed_step=exc.step_id,
            )
            self._active_processes[process_id] = result
            self._logger.error(
                f"[{process_id}] ❌ {process_name} failed at {exc.step_id}: {result.error}"
            )
            raise ProcessFailedError(result, cause=cause) from cause

        result = self._build_result(
            process_name, context, success=True, result=build_result(context)
        )
        self._active_processes[process_id] = result
        self._logger.info(
            f"[{process_id}] ✅ {process_name} completed in {result.duration_ms}ms"
        )
        return result

    @staticmethod
    def _build_result(
        process_name: str, context: RunContext, success: bool, **fields: Any
    ) -> BusinessProcessResult:
        completed_at = utc_now()
        return BusinessProcessResult(
            process_id=context.run_id,
            process_name=process_name,
            success=success,
            steps=context.records,
            duration_ms=elapsed_ms(context.started_at, completed_at),
            completed_at=completed_at,
            applied_effects=list(context.applied_effects),
            **fields,
        )

    @staticmethod
    def _validate_payment_data(params: dict[str, Any]) -> None:
        amount = params.get("amount")
        if not params.get("customer_id"):
            raise ValidationError("Invalid payment data: customer_id is required")
        if not isinstance(amount, (int, float)) or isinstance(amount, bool) or amount <= 0:
            raise ValidationError(f"Invalid payment data: amount must be positive, got {amount}")
        if not params.get("payment_method"):
            raise ValidationError("Invalid payment data: payment_method is required")

    @staticmethod
    def _validate_customer_data(customer_data: dict[str, Any]) -> None:
        email = str(customer_data.get("email") or "").strip()
        name = str(customer_data.get("name") or "").strip()
        if not email or not name:
            raise ValidationError("Invalid customer data: email and name are required")
        local, _, domain = email.partition("@")
        if not local or "." not in domain:
            raise ValidationError(f"Invalid customer data: malformed email {email!r}")
        phone = customer_data.get("phone")
        if phone and sum(ch.isdigit() for ch in str(phone)) < 7:
            raise ValidationError(f"Invalid customer data: malformed phone {phone!r}")

    # =========================================================================
    # QUERIES
    # =========================================================================

    def get_process_status(self, process_id: str) -> BusinessProcessResult | None:
        return self._active_processes.get(process_id)

    def get_active_processes(self) -> list[BusinessProcessResult]:
        return list(self._active_processes.values())

    def cleanup_completed_processes(self, older_than_hours: float = 24) -> int:
        """Drop processes completed more than ``older_than_hours`` ago."""
        cutoff = utc_now() - timedelta(hours=older_than_hours)
        expired = [
            process_id
            for process_id, process in self._active_processes.items()
            if process.completed_at <= cutoff
        ]
        for process_id in expired:
            del self._active_processes[process_id]
        return len(expired)

    def get_stats(self) -> ProcessStats:
        processes = list(self._active_processes.values())
        completed = [p for p in processes if p.success]
        failed = [p for p in processes if not p.success]
        average = sum(p.duration_ms for p in completed) / len(completed) if completed else 0.0
        return ProcessStats(
            active_processes=len(processes),
            completed_processes=len(completed),
            failed_processes=len(failed),
            average_duration_ms=average,
        )
