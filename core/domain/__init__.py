"""Domain layer - pure domain vocabulary shared by every bounded context."""

from .enums import AggregateType, StepStatus
from .value_objects import (
    AgentAccount,
    BalanceChangeType,
    BalanceResponse,
    BalanceSnapshot,
    ExternalBet,
    PaymentRequest,
    PaymentResult,
)

__all__ = [
    "AgentAccount",
    "AggregateType",
    "BalanceChangeType",
    "BalanceResponse",
    "BalanceSnapshot",
    "ExternalBet",
    "PaymentRequest",
    "PaymentResult",
    "StepStatus",
]
