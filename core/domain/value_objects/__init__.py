"""Domain value objects exchanged with the Balance, Collections and Fantasy402 contexts."""

from .balance import BalanceChangeType, BalanceResponse, BalanceSnapshot
from .fantasy402 import AgentAccount, ExternalBet
from .payments import PaymentRequest, PaymentResult

__all__ = [
    "AgentAccount",
    "BalanceChangeType",
    "BalanceResponse",
    "BalanceSnapshot",
    "ExternalBet",
    "PaymentRequest",
    "PaymentResult",
]
