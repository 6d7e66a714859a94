"""
Predefined workflows.

- customer_deposit: deposit.initiated
- high_value_bet_approval: bet.high_value_detected
- balance_sync: balance.sync_required
- bonus_award: bonus.eligibility_checked

Payload keys are snake_case. Steps read values written by earlier steps
from ``context.data``.
"""
from typing import Any

from core.application.interfaces import IBalanceController, IFantasy402Gateway
from core.domain.enums import AggregateType
from core.domain.errors import BalanceOperationError, ProcessFailedError, ValidationError
from core.domain.value_objects import BalanceChangeType
from fire22_sdk.utils.datetime import utc_now

from .bus import EventBusProtocol
from .events import EventMetadata
from .orchestrator import DomainOrchestrator
from .steps import RunContext
from .workflow import WorkflowDefinition, WorkflowStep

# Differences below this are treated as rounding noise
BALANCE_TOLERANCE = 0.01
APPROVAL_REQUIRED_SCORE = 75
AUTO_APPROVE_BELOW_SCORE = 90


def build_default_workflows(
    orchestrator: DomainOrchestrator,
    balance: IBalanceController,
    gateway: IFantasy402Gateway,
    event_bus: EventBusProtocol,
) -> dict[str, WorkflowDefinition]:
    """Build the predefined workflow definitions keyed by workflow name."""
    return {
        "customer_deposit": _customer_deposit(orchestrator, event_bus),
        "high_value_bet_approval": _high_value_bet_approval(event_bus),
        "balance_sync": _balance_sync(balance, gateway, event_bus),
        "bonus_award": _bonus_award(balance, event_bus),
    }


def _metadata(context: RunContext, step_id: str) -> EventMetadata:
    return EventMetadata(correlation_id=context.run_id, causation_id=step_id)


# =============================================================================
# CUSTOMER DEPOSIT
# =============================================================================

def _customer_deposit(
    orchestrator: DomainOrchestrator, event_bus: EventBusProtocol
) -> WorkflowDefinition:

    async def validate_payment(payload: dict[str, Any], context: RunContext) -> None:
        amount = payload.get("amount")
        if not isinstance(amount, (int, float)) or amount <= 0:
            raise ValidationError("Invalid payment amount")
        context.data["validated_payment"] = dict(payload)

    async def process_collection(payload: dict[str, Any], context: RunContext):
        validated = context.data["validated_payment"]
        try:
            result = await orchestrator.process_customer_deposit(
                customer_id=validated.get("customer_id"),
                amount=validated["amount"],
                payment_method=validated.get("payment_method") or "card",
                metadata=validated.get("metadata"),
            )
        except ProcessFailedError as exc:
            raise exc.cause or exc
        context.data["collection_result"] = result
        return result

    async def send_confirmation(payload: dict[str, Any], context: RunContext) -> None:
        payment = context.data["collection_result"].result
        await event_bus.emit(
            "notification.payment_confirmed",
            {
                "customer_id": payment.player_id,
                "amount": payment.amount,
                "payment_id": payment.payment_id,
            },
            aggregate_id=payment.player_id,
            aggregate_type=AggregateType.CUSTOMER,
            metadata=_metadata(context, "send_confirmation"),
        )

    return WorkflowDefinition(
        name="Customer Deposit",
        description="Complete customer deposit process with balance update and notifications",
        trigger="deposit.initiated",
        timeout=300,
        retry_attempts=3,
        steps=[
            WorkflowStep(
                id="validate_payment",
                name="Validate Payment",
                event="payment.validation_required",
                action=validate_payment,
            ),
            WorkflowStep(
                id="process_collection",
                name="Process Collection",
                event="collection.processing_required",
                action=process_collection,
            ),
            WorkflowStep(
                id="send_confirmation",
                name="Send Confirmation",
                event="notification.confirmation_required",
                action=send_confirmation,
                required=False,
            ),
        ],
    )


# =============================================================================
# HIGH-VALUE BET APPROVAL
# =============================================================================

def _high_value_bet_approval(event_bus: EventBusProtocol) -> WorkflowDefinition:

    async def risk_assessment(payload: dict[str, Any], context: RunContext) -> dict[str, int]:
        amount = payload.get("amount") or 0
        risk_score = 80 if amount > 5000 else 60
        context.data["risk_score"] = risk_score

        if risk_score > APPROVAL_REQUIRED_SCORE:
            await event_bus.emit(
                "approval.required",
                {
                    "bet_id": payload.get("bet_id"),
                    "agent_id": payload.get("agent_id"),
                    "amount": amount,
                    "risk_score": risk_score,
                },
                aggregate_id=str(payload.get("bet_id") or ""),
                aggregate_type=AggregateType.BET,
                metadata=_metadata(context, "risk_assessment"),
            )
        return {"risk_score": risk_score}

    async def manager_approval(payload: dict[str, Any], context: RunContext) -> dict[str, bool]:
        # Auto-decision; a skipped assessment leaves no score and is approved
        approved = context.data.get("risk_score", 0) < AUTO_APPROVE_BELOW_SCORE
        context.data["approved"] = approved

        if approved:
            await event_bus.emit(
                "bet.approved",
                dict(payload),
                aggregate_id=str(payload.get("bet_id") or ""),
                aggregate_type=AggregateType.BET,
                metadata=_metadata(context, "manager_approval"),
            )
        else:
            await event_bus.emit(
                "bet.rejected",
                {**payload, "reason": "High risk - requires manual review"},
                aggregate_id=str(payload.get("bet_id") or ""),
                aggregate_type=AggregateType.BET,
                metadata=_metadata(context, "manager_approval"),
            )
        return {"approved": approved}

    return WorkflowDefinition(
        name="High-Value Bet Approval",
        description="Approval workflow for bets exceeding risk thresholds",
        trigger="bet.high_value_detected",
        timeout=600,
        retry_attempts=2,
        steps=[
            WorkflowStep(
                id="risk_assessment",
                name="Risk Assessment",
                event="risk.assessment_required",
                condition=lambda payload: (payload.get("amount") or 0) > 1000,
                action=risk_assessment,
            ),
            WorkflowStep(
                id="manager_approval",
                name="Manager Approval",
                event="approval.manager_review",
                action=manager_approval,
                timeout=300,
            ),
        ],
    )


# =============================================================================
# BALANCE SYNC
# =============================================================================

def _balance_sync(
    balance: IBalanceController,
    gateway: IFantasy402Gateway,
    event_bus: EventBusProtocol,
) -> WorkflowDefinition:

    async def fetch_external_balance(payload: dict[str, Any], context: RunContext) -> float:
        account = await gateway.get_agent_account(payload.get("agent_id"))
        external_balance = account.current_balance if account else 0.0
        context.data["external_balance"] = external_balance
        return external_balance

    async def compare_balances(payload: dict[str, Any], context: RunContext) -> dict[str, float]:
        agent_id = payload.get("agent_id")
        external_balance = context.data["external_balance"]
        response = await balance.get_balance_status(agent_id)
        if not response.success or response.balance is None:
            raise BalanceOperationError(
                response.error or "Internal balance not found",
                code=response.code or "BALANCE_NOT_FOUND",
            )

        internal_balance = response.balance.current_balance
        difference = external_balance - internal_balance
        context.data["balance_difference"] = difference
        context.data["internal_balance"] = internal_balance

        if abs(difference) > BALANCE_TOLERANCE:
            await event_bus.emit(
                "balance.discrepancy_detected",
                {
                    "agent_id": agent_id,
                    "external_balance": external_balance,
                    "internal_balance": internal_balance,
                    "difference": difference,
                },
                aggregate_id=str(agent_id),
                aggregate_type=AggregateType.AGENT_ACCOUNT,
                metadata=_metadata(context, "compare_balances"),
            )
        return {"internal_balance": internal_balance, "difference": difference}

    async def sync_if_needed(payload: dict[str, Any], context: RunContext) -> dict[str, Any] | None:
        difference = context.data.get("balance_difference", 0.0)
        if abs(difference) <= BALANCE_TOLERANCE:
            return None

        agent_id = payload.get("agent_id")
        response = await balance.process_balance_change(
            customer_id=agent_id,
            amount=abs(difference),
            change_type=BalanceChangeType.CREDIT if difference > 0 else BalanceChangeType.DEBIT,
            reason="Balance synchronization with external system",
            performed_by="system",
        )
        if not response.success:
            raise BalanceOperationError(
                response.error or "Balance synchronization failed",
                code=response.code or BalanceOperationError.code,
            )
        context.applied_effects.append(f"balance_synced:{agent_id}:{difference}")

        await event_bus.emit(
            "balance.sync_completed",
            {
                "agent_id": agent_id,
                "adjustment": difference,
                "synced_at": utc_now().isoformat(),
            },
            aggregate_id=str(agent_id),
            aggregate_type=AggregateType.AGENT_ACCOUNT,
            metadata=_metadata(context, "sync_if_needed"),
        )
        return {"adjustment": difference}

    return WorkflowDefinition(
        name="Balance Synchronization",
        description="Sync agent balances between internal and external systems",
        trigger="balance.sync_required",
        timeout=180,
        retry_attempts=3,
        steps=[
            WorkflowStep(
                id="fetch_external_balance",
                name="Fetch External Balance",
                event="external.balance_fetch_required",
                action=fetch_external_balance,
            ),
            WorkflowStep(
                id="compare_balances",
                name="Compare Balances",
                event="balance.comparison_required",
                action=compare_balances,
            ),
            WorkflowStep(
                id="sync_if_needed",
                name="Sync If Needed",
                event="balance.sync_action_required",
                action=sync_if_needed,
                required=False,
            ),
        ],
    )


# =============================================================================
# BONUS AWARD
# =============================================================================

def calculate_bonus_amount(payment_amount: float) -> float:
    """5% of payments of 100 or more, a flat 5 from 50, nothing below."""
    if payment_amount >= 100:
        return payment_amount * 0.05
    if payment_amount >= 50:
        return 5.0
    return 0.0


def _bonus_award(balance: IBalanceController, event_bus: EventBusProtocol) -> WorkflowDefinition:

    def is_eligible(payload: dict[str, Any]) -> bool:
        return payload.get("eligible") is True

    async def check_eligibility(payload: dict[str, Any], context: RunContext) -> dict[str, Any]:
        response = await balance.get_balance_status(payload.get("customer_id"))
        eligible = bool(response.success and response.balance and response.balance.is_active)
        context.data["bonus_eligible"] = eligible
        context.data["current_balance"] = response.balance.current_balance if response.balance else None
        return {"bonus_eligible": eligible}

    async def calculate_bonus(payload: dict[str, Any], context: RunContext) -> dict[str, float]:
        bonus_amount = 0.0
        if context.data.get("bonus_eligible"):
            bonus_amount = calculate_bonus_amount(payload.get("payment_amount") or 0)
        context.data["bonus_amount"] = bonus_amount
        return {"bonus_amount": bonus_amount}

    async def award_bonus(payload: dict[str, Any], context: RunContext) -> dict[str, float] | None:
        bonus_amount = context.data.get("bonus_amount", 0.0)
        if bonus_amount <= 0:
            return None

        customer_id = payload.get("customer_id")
        response = await balance.process_balance_change(
            customer_id=customer_id,
            amount=bonus_amount,
            change_type=BalanceChangeType.CREDIT,
            reason="Payment bonus reward",
            performed_by="system",
        )
        if not response.success:
            raise BalanceOperationError(
                response.error or "Bonus credit failed",
                code=response.code or BalanceOperationError.code,
            )
        context.applied_effects.append(f"bonus_credited:{customer_id}:{bonus_amount}")

        await event_bus.emit(
            "bonus.awarded",
            {
                "customer_id": customer_id,
                "bonus_amount": bonus_amount,
                "reason": "Payment bonus",
                "awarded_at": utc_now().isoformat(),
            },
            aggregate_id=str(customer_id),
            aggregate_type=AggregateType.CUSTOMER,
            metadata=_metadata(context, "award_bonus"),
        )
        return {"bonus_amount": bonus_amount}

    return WorkflowDefinition(
        name="Bonus Award",
        description="Award bonuses based on customer activity and eligibility",
        trigger="bonus.eligibility_checked",
        timeout=120,
        retry_attempts=2,
        steps=[
            WorkflowStep(
                id="check_eligibility",
                name="Check Eligibility",
                event="bonus.eligibility_verification",
                condition=is_eligible,
                action=check_eligibility,
            ),
            WorkflowStep(
                id="calculate_bonus",
                name="Calculate Bonus",
                event="bonus.calculation_required",
                condition=is_eligible,
                action=calculate_bonus,
            ),
            WorkflowStep(
                id="award_bonus",
                name="Award Bonus",
                event="bonus.award_required",
                action=award_bonus,
                required=False,
            ),
        ],
    )
