"""
Domain Event Handlers.

Cross-domain reactions wired onto the event bus. Each handler performs one
reaction through a published contract (Balance controller, notification
service) and re-publishes a derived event. Handlers never reach into
another context's state directly.
"""
from collections.abc import Awaitable, Callable
from dataclasses import asdict, dataclass
from typing import Any

from core.application.interfaces import IBalanceController, INotificationService
from core.domain.enums import AggregateType
from core.domain.errors import BalanceOperationError
from core.domain.value_objects import BalanceChangeType
from fire22_sdk.logging import get_logger
from fire22_sdk.utils.datetime import utc_now

from .bus import EventBusProtocol
from .events import Event, EventMetadata

BONUS_ELIGIBLE_PAYMENT = 50.0
WELCOME_BONUS = 10.0
BALANCE_TOLERANCE = 0.01

# notification event type -> (severity, message template)
NOTIFICATION_TEMPLATES: dict[str, tuple[int, str]] = {
    "notification.payment_confirmation": (30, "💳 Payment {payment_id} of {amount} confirmed for {customer_id}"),
    "notification.payment_confirmed": (30, "✅ Deposit {payment_id} of {amount} confirmed for {customer_id}"),
    "notification.balance_warning": (60, "⚠️ Low balance for {customer_id}: {current_balance} (threshold {threshold})"),
    "notification.account_frozen": (80, "🧊 Account {customer_id} frozen by {performed_by}: {reason}"),
    "notification.account_unfrozen": (50, "🔓 Account {customer_id} unfrozen by {performed_by}"),
    "notification.welcome_package": (20, "🎉 Welcome package sent to {customer_id} (bonus {welcome_bonus})"),
    "notification.bonus_eligible": (20, "🎁 {customer_id} is eligible for a bonus on payment of {payment_amount}"),
}


@dataclass
class HandlerStats:
    registered_handlers: int
    processed_events: int
    failed_events: int

    def to_dict(self) -> dict[str, int]:
        return asdict(self)


class DomainEventHandlers:
    """Subscribes the cross-domain reactions to the event bus."""

    def __init__(
        self,
        event_bus: EventBusProtocol,
        balance_controller: IBalanceController,
        notification_service: INotificationService,
    ) -> None:
        self._event_bus = event_bus
        self._balance = balance_controller
        self._notifications = notification_service
        self._registered = 0
        self._processed = 0
        self._failed = 0
        self._logger = get_logger("orchestration.handlers")

    def register(self) -> None:
        """Subscribe every handler. Call once per bus."""
        subscriptions: list[tuple[str, Callable[[Event], Awaitable[None]]]] = [
            # Collections
            ("payment.processed", self._on_payment_processed),
            ("payment.failed", self._on_payment_failed),
            # Balance
            ("balance.threshold.exceeded", self._on_balance_threshold_exceeded),
            ("balance.frozen", self._on_balance_frozen),
            ("balance.unfrozen", self._on_balance_unfrozen),
            # External integrations
            ("external.sport_event.live", self._on_sport_event_live),
            ("external.bet.received", self._on_external_bet_received),
            ("external.bet.settled", self._on_external_bet_settled),
            ("external.agent.balance_updated", self._on_agent_balance_updated),
            ("external.telegram.message_received", self._on_telegram_message),
            # Business processes
            ("customer.onboarding_completed", self._on_onboarding_completed),
            ("bonus.eligibility_checked", self._on_bonus_eligibility_checked),
            ("risk.assessment_required", self._on_risk_assessment_required),
        ]
        subscriptions.extend(
            (event_type, self._on_notification) for event_type in NOTIFICATION_TEMPLATES
        )

        for event_type, handler in subscriptions:
            self._event_bus.subscribe(event_type, self._tracked(event_type, handler))
            self._registered += 1

        self._logger.info(f"Registered {self._registered} domain event handlers")

    def _tracked(
        self, event_type: str, handler: Callable[[Event], Awaitable[None]]
    ) -> Callable[[Event], Awaitable[None]]:
        async def wrapper(event: Event) -> None:
            try:
                await handler(event)
            except Exception:
                self._failed += 1
                raise
            self._processed += 1

        wrapper.__qualname__ = f"DomainEventHandlers[{event_type}]"
        return wrapper

    async def _publish(
        self,
        event_type: str,
        payload: dict[str, Any],
        cause: Event,
        aggregate_id: str = "",
        aggregate_type: AggregateType | None = None,
    ) -> None:
        await self._event_bus.emit(
            event_type,
            payload,
            aggregate_id=aggregate_id,
            aggregate_type=aggregate_type,
            metadata=EventMetadata(
                correlation_id=cause.metadata.correlation_id or cause.metadata.event_id,
                causation_id=cause.metadata.event_id,
            ),
        )

    # =========================================================================
    # COLLECTIONS
    # =========================================================================

    async def _on_payment_processed(self, event: Event) -> None:
        payment = event.payload
        customer_id = payment.get("player_id")
        amount = payment.get("amount") or 0
        self._logger.info(f"💳 Processing payment event: {payment.get('payment_id')}")

        try:
            response = await self._balance.process_balance_change(
                customer_id=customer_id,
                amount=amount,
                change_type=BalanceChangeType.CREDIT,
                reason="Payment processed",
                performed_by="system",
            )
            if not response.success:
                raise BalanceOperationError(
                    f"Balance update failed: {response.error}",
                    code=response.code or BalanceOperationError.code,
                )

            await self._publish(
                "notification.payment_confirmation",
                {
                    "customer_id": customer_id,
                    "payment_id": payment.get("payment_id"),
                    "amount": amount,
                    "timestamp": utc_now().isoformat(),
                },
                event,
                aggregate_id=str(customer_id),
                aggregate_type=AggregateType.CUSTOMER,
            )

            await self._publish(
                "bonus.eligibility_checked",
                {
                    "customer_id": customer_id,
                    "payment_amount": amount,
                    "balance": response.balance.current_balance if response.balance else None,
                    "eligible": amount >= BONUS_ELIGIBLE_PAYMENT,
                },
                event,
                aggregate_id=str(customer_id),
                aggregate_type=AggregateType.CUSTOMER,
            )
        except Exception as exc:
            self._logger.error(f"❌ Failed to process payment event: {exc}", exc_info=True)
            await self._publish(
                "payment.processing_failed",
                {
                    "payment_id": payment.get("payment_id"),
                    "error": str(exc),
                    "original_event": dict(payment),
                },
                event,
                aggregate_id=str(customer_id),
                aggregate_type=AggregateType.CUSTOMER,
            )

    async def _on_payment_failed(self, event: Event) -> None:
        self._logger.warning(f"❌ Processing payment failure: {event.payload.get('payment_id')}")
        await self._publish(
            "audit.payment_failure_logged",
            {
                "payment_id": event.payload.get("payment_id"),
                "error": event.payload.get("error"),
                "timestamp": utc_now().isoformat(),
            },
            event,
        )

    # =========================================================================
    # BALANCE
    # =========================================================================

    async def _on_balance_threshold_exceeded(self, event: Event) -> None:
        payload = event.payload
        await self._publish(
            "notification.balance_warning",
            {
                "customer_id": payload.get("customer_id"),
                "current_balance": payload.get("current_balance"),
                "threshold": payload.get("threshold"),
                "severity": payload.get("severity") or "warning",
            },
            event,
            aggregate_id=str(payload.get("customer_id") or ""),
            aggregate_type=AggregateType.CUSTOMER,
        )

    async def _on_balance_frozen(self, event: Event) -> None:
        payload = event.payload
        await self._publish(
            "notification.account_frozen",
            {
                "customer_id": payload.get("customer_id"),
                "reason": payload.get("reason"),
                "performed_by": payload.get("performed_by"),
            },
            event,
            aggregate_id=str(payload.get("customer_id") or ""),
            aggregate_type=AggregateType.CUSTOMER,
        )

    async def _on_balance_unfrozen(self, event: Event) -> None:
        payload = event.payload
        await self._publish(
            "notification.account_unfrozen",
            {
                "customer_id": payload.get("customer_id"),
                "performed_by": payload.get("performed_by"),
            },
            event,
            aggregate_id=str(payload.get("customer_id") or ""),
            aggregate_type=AggregateType.CUSTOMER,
        )

    # =========================================================================
    # EXTERNAL INTEGRATIONS
    # =========================================================================

    async def _on_sport_event_live(self, event: Event) -> None:
        payload = event.payload
        await self._publish(
            "internal.sport_event_available",
            {
                "external_id": payload.get("external_id"),
                "sport": payload.get("sport"),
                "league": payload.get("league"),
                "teams": f"{payload.get('home_team')} vs {payload.get('away_team')}",
                "start_time": payload.get("start_time"),
            },
            event,
            aggregate_id=event.aggregate_id,
            aggregate_type=AggregateType.SPORT_EVENT,
        )

    async def _on_external_bet_received(self, event: Event) -> None:
        bet = event.payload
        agent_id = bet.get("agent_id")
        amount = bet.get("amount") or 0

        response = await self._balance.get_balance_status(agent_id)
        if not response.success or response.balance is None:
            raise BalanceOperationError(
                f"Agent balance not found: {agent_id}",
                code=response.code or "BALANCE_NOT_FOUND",
            )

        if response.balance.current_balance < amount:
            self._logger.warning(
                f"🎯 Rejecting external bet {bet.get('external_id')}: insufficient funds for {agent_id}"
            )
            await self._publish(
                "bet.rejected_insufficient_funds",
                {
                    "bet_id": bet.get("external_id"),
                    "agent_id": agent_id,
                    "required_amount": amount,
                    "available_balance": response.balance.current_balance,
                },
                event,
                aggregate_id=event.aggregate_id,
                aggregate_type=AggregateType.BET,
            )
            return

        await self._publish(
            "internal.bet_recorded",
            {
                "external_bet_id": bet.get("external_id"),
                "agent_id": agent_id,
                "event_id": bet.get("event_id"),
                "amount": amount,
                "odds": bet.get("odds"),
            },
            event,
            aggregate_id=event.aggregate_id,
            aggregate_type=AggregateType.BET,
        )

    async def _on_external_bet_settled(self, event: Event) -> None:
        settlement = event.payload
        result = settlement.get("result")

        if result == "won":
            agent_id = settlement.get("agent_id")
            response = await self._balance.process_balance_change(
                customer_id=agent_id,
                amount=settlement.get("payout") or 0,
                change_type=BalanceChangeType.CREDIT,
                reason=f"Bet win settlement - {settlement.get('external_id')}",
                performed_by="system",
            )
            if not response.success:
                raise BalanceOperationError(
                    f"Bet win settlement failed: {response.error}",
                    code=response.code or BalanceOperationError.code,
                )
        elif result == "lost":
            # Stake was debited when the bet was placed
            await self._publish(
                "audit.bet_loss_settled",
                {
                    "bet_id": settlement.get("external_id"),
                    "agent_id": settlement.get("agent_id"),
                    "amount": settlement.get("payout") or 0,
                    "settled_at": settlement.get("settled_at"),
                },
                event,
                aggregate_id=event.aggregate_id,
                aggregate_type=AggregateType.BET,
            )
        else:
            self._logger.info(f"Ignoring bet settlement with result {result!r}")

    async def _on_agent_balance_updated(self, event: Event) -> None:
        payload = event.payload
        agent_id = payload.get("agent_id")
        external_balance = payload.get("new_balance")

        response = await self._balance.get_balance_status(agent_id)
        internal_balance = response.balance.current_balance if response.balance else None

        await self._publish(
            "internal.balance_synced",
            {
                "agent_id": agent_id,
                "external_balance": external_balance,
                "internal_balance": internal_balance,
                "synced_at": utc_now().isoformat(),
            },
            event,
            aggregate_id=str(agent_id),
            aggregate_type=AggregateType.AGENT_ACCOUNT,
        )

        if (
            internal_balance is not None
            and external_balance is not None
            and abs(external_balance - internal_balance) > BALANCE_TOLERANCE
        ):
            await self._publish(
                "balance.sync_required",
                {"agent_id": agent_id, "difference": external_balance - internal_balance},
                event,
                aggregate_id=str(agent_id),
                aggregate_type=AggregateType.AGENT_ACCOUNT,
            )

    async def _on_telegram_message(self, event: Event) -> None:
        payload = event.payload
        await self._publish(
            "internal.message_received",
            {
                "chat_id": payload.get("chat_id"),
                "user_id": payload.get("user_id"),
                "username": payload.get("username"),
                "text": payload.get("text"),
            },
            event,
            aggregate_id=event.aggregate_id,
            aggregate_type=AggregateType.MESSAGE,
        )

    # =========================================================================
    # BUSINESS PROCESSES
    # =========================================================================

    async def _on_onboarding_completed(self, event: Event) -> None:
        customer_id = event.payload.get("customer_id")
        self._logger.info(f"🎉 Processing customer onboarding: {customer_id}")

        await self._publish(
            "notification.welcome_package",
            {
                "customer_id": customer_id,
                "welcome_bonus": WELCOME_BONUS,
                "timestamp": utc_now().isoformat(),
            },
            event,
            aggregate_id=str(customer_id),
            aggregate_type=AggregateType.CUSTOMER,
        )
        await self._publish(
            "bonus.signup_processed",
            {
                "customer_id": customer_id,
                "bonus_amount": WELCOME_BONUS,
                "bonus_type": "welcome_bonus",
                "processed_at": utc_now().isoformat(),
            },
            event,
            aggregate_id=str(customer_id),
            aggregate_type=AggregateType.CUSTOMER,
        )

    async def _on_bonus_eligibility_checked(self, event: Event) -> None:
        # Crediting belongs to the bonus_award workflow on the same trigger
        if event.payload.get("eligible") is not True:
            return
        await self._publish(
            "notification.bonus_eligible",
            {
                "customer_id": event.payload.get("customer_id"),
                "payment_amount": event.payload.get("payment_amount"),
            },
            event,
            aggregate_id=str(event.payload.get("customer_id") or ""),
            aggregate_type=AggregateType.CUSTOMER,
        )

    async def _on_risk_assessment_required(self, event: Event) -> None:
        payload = event.payload
        await self._publish(
            "risk.assessment_completed",
            {
                "customer_id": payload.get("customer_id"),
                "risk_score": assess_risk(payload),
                "assessment_date": utc_now().isoformat(),
                "factors": payload.get("factors"),
            },
            event,
            aggregate_id=str(payload.get("customer_id") or payload.get("bet_id") or ""),
        )

    async def _on_notification(self, event: Event) -> None:
        severity, template = NOTIFICATION_TEMPLATES[event.event_type]
        fields = {key: value for key, value in event.payload.items() if value is not None}
        try:
            message = template.format(**fields)
        except (KeyError, IndexError, ValueError):
            message = f"{event.event_type}: {event.payload}"
        await self._notifications.notify(message, severity=severity)

    # =========================================================================
    # INTROSPECTION
    # =========================================================================

    def get_handler_stats(self) -> HandlerStats:
        return HandlerStats(
            registered_handlers=self._registered,
            processed_events=self._processed,
            failed_events=self._failed,
        )

    async def health_check(self) -> dict[str, str]:
        """Publish a probe event and report whether the bus accepted it."""
        try:
            await self._event_bus.emit(
                "health.check.test", {"timestamp": utc_now().isoformat(), "test": True}
            )
        except Exception as exc:
            self._logger.error(f"Event handler health check failed: {exc}")
            return {"status": "unhealthy", "message": f"Event handlers failed: {exc}"}
        return {"status": "healthy", "message": "Event handlers are functioning correctly"}


def assess_risk(data: dict[str, Any]) -> int:
    """Additive risk score capped at 100."""
    score = 0
    if (data.get("payment_amount") or 0) > 1000:
        score += 20
    if (data.get("daily_transactions") or 0) > 10:
        score += 15
    balance = data.get("balance")
    if balance is not None and balance < 100:
        score += 25
    return min(score, 100)
