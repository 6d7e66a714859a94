"""
In-memory Collections Controller.

Stand-in for the Collections bounded context: applies the payment rules,
records accepted payments and announces the outcome on the event bus.
"""
from typing import Dict, List, Optional
import logging

from core.application.interfaces import ICollectionsController
from core.domain.enums import AggregateType
from core.domain.errors import HighRiskPaymentError, PaymentError
from core.domain.value_objects import PaymentRequest, PaymentResult
from fire22_sdk.utils.datetime import utc_now
from orchestration.bus import EventBusProtocol


logger = logging.getLogger(__name__)

SUPPORTED_CURRENCIES = ("USD", "EUR", "GBP")
HIGH_RISK_AMOUNT = 10000.0


class InMemoryCollectionsController(ICollectionsController):
    """
    In-memory implementation of ICollectionsController.

    Publishes ``payment.processed`` for accepted payments and
    ``payment.failed`` before raising for rejected ones.
    """

    def __init__(
        self,
        event_bus: EventBusProtocol,
        high_risk_amount: float = HIGH_RISK_AMOUNT,
        supported_currencies: tuple = SUPPORTED_CURRENCIES,
    ):
        self._event_bus = event_bus
        self._high_risk_amount = high_risk_amount
        self._supported_currencies = tuple(supported_currencies)
        self._payments: Dict[str, PaymentResult] = {}
        self._references: Dict[str, str] = {}
        logger.info("InMemoryCollectionsController initialized (in-memory storage)")

    async def process_payment(self, request: PaymentRequest) -> PaymentResult:
        """
        Collect a payment.

        Raises:
            PaymentError: Invalid amount, currency or duplicate reference
            HighRiskPaymentError: Amount above the high-risk limit
        """
        try:
            self._check(request)
        except PaymentError as exc:
            logger.warning(f"❌ Payment {request.id} rejected: {exc}")
            await self._event_bus.emit(
                "payment.failed",
                {
                    "payment_id": request.id,
                    "player_id": request.player_id,
                    "amount": request.amount,
                    "error": str(exc),
                    "code": exc.code,
                },
                aggregate_id=request.player_id or "",
                aggregate_type=AggregateType.CUSTOMER,
            )
            raise

        result = PaymentResult(
            payment_id=request.id,
            player_id=request.player_id,
            amount=float(request.amount),
            currency=request.currency,
            payment_method=request.payment_method,
            status="completed",
            processed_at=utc_now(),
            reference=request.reference,
        )
        self._payments[result.payment_id] = result
        if request.reference:
            self._references[request.reference] = result.payment_id
        logger.info(f"✅ Payment processed: {result.payment_id} ({result.amount} {result.currency})")

        await self._event_bus.emit(
            "payment.processed",
            result.to_dict(),
            aggregate_id=result.player_id,
            aggregate_type=AggregateType.CUSTOMER,
        )
        return result

    def _check(self, request: PaymentRequest) -> None:
        if not request.player_id:
            raise PaymentError("Payment has no player", code="INVALID_PLAYER")
        if request.amount is None or request.amount <= 0:
            raise PaymentError(f"Payment amount must be positive, got {request.amount}", code="INVALID_AMOUNT")
        if request.currency not in self._supported_currencies:
            raise PaymentError(f"Unsupported currency: {request.currency}", code="UNSUPPORTED_CURRENCY")
        if request.id in self._payments:
            raise PaymentError(f"Payment already processed: {request.id}", code="DUPLICATE_PAYMENT")
        if request.reference and request.reference in self._references:
            raise PaymentError(f"Duplicate payment reference: {request.reference}", code="DUPLICATE_PAYMENT")
        if request.amount > self._high_risk_amount:
            raise HighRiskPaymentError(
                f"Payment of {request.amount} exceeds high-risk limit {self._high_risk_amount}"
            )

    def get_payment(self, payment_id: str) -> Optional[PaymentResult]:
        return self._payments.get(payment_id)

    def list_payments(self) -> List[PaymentResult]:
        return list(self._payments.values())
