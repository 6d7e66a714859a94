"""Fantasy402 gateway entities, as seen from inside the back office."""

from dataclasses import asdict, dataclass
from datetime import datetime
from typing import Any, Dict


@dataclass(frozen=True)
class ExternalBet:
    """A bet accepted by the Fantasy402 platform."""

    external_id: str
    agent_id: str
    event_id: str
    bet_type: str
    amount: float
    odds: float
    selection: str
    status: str
    placed_at: datetime

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["placed_at"] = self.placed_at.isoformat()
        return data


@dataclass(frozen=True)
class AgentAccount:
    """Agent account as reported by Fantasy402."""

    agent_id: str
    current_balance: float
    available_balance: float
    is_active: bool = True

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)
