"""Balance context contract types."""

from dataclasses import asdict, dataclass
from enum import Enum
from typing import Any, Dict, Optional


class BalanceChangeType(str, Enum):
    CREDIT = "credit"
    DEBIT = "debit"


@dataclass(frozen=True)
class BalanceSnapshot:
    """Read-only view of an account balance."""

    customer_id: str
    agent_id: str
    current_balance: float
    is_active: bool = True
    is_frozen: bool = False
    min_balance: float = 0.0
    warning_threshold: float = 50.0

    @property
    def available_balance(self) -> float:
        return max(self.current_balance - self.min_balance, 0.0)

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["available_balance"] = self.available_balance
        return data


@dataclass(frozen=True)
class BalanceResponse:
    """
    Envelope returned by every Balance operation.

    ``success`` False means ``error`` and ``code`` describe why; the
    caller decides whether that is fatal.
    """

    success: bool
    balance: Optional[BalanceSnapshot] = None
    error: Optional[str] = None
    code: Optional[str] = None

    @classmethod
    def ok(cls, balance: BalanceSnapshot) -> "BalanceResponse":
        return cls(success=True, balance=balance)

    @classmethod
    def fail(cls, error: str, code: str) -> "BalanceResponse":
        return cls(success=False, error=error, code=code)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "success": self.success,
            "balance": self.balance.to_dict() if self.balance else None,
            "error": self.error,
            "code": self.code,
        }
