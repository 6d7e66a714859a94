"""Collections context contract types."""

from dataclasses import asdict, dataclass, field
from datetime import datetime
from typing import Any, Dict, Optional


@dataclass(frozen=True)
class PaymentRequest:
    id: str
    player_id: str
    amount: float
    currency: str = "USD"
    payment_method: str = "card"
    reference: Optional[str] = None
    metadata: Dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class PaymentResult:
    """A payment accepted by the Collections context."""

    payment_id: str
    player_id: str
    amount: float
    currency: str
    payment_method: str
    status: str
    processed_at: datetime
    reference: Optional[str] = None
    success: bool = True
    error: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["processed_at"] = self.processed_at.isoformat()
        return data
