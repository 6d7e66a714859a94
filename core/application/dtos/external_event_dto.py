"""
DTOs for external event ingestion.

The models are deliberately permissive: structural validation happens in
the mapper so that strict and lenient callers share one rule set.
"""
from typing import Any, Dict, List

from pydantic import BaseModel, ConfigDict, Field


class ExternalEventDTO(BaseModel):
    """External event as received over HTTP."""

    model_config = ConfigDict(
        populate_by_name=True,
        json_schema_extra={
            "example": {
                "event_type": "fantasy402.bet.placed",
                "event_id": "f402-evt-000123",
                "source": "fantasy402",
                "timestamp": "2025-01-15T10:30:00Z",
                "payload": {
                    "bet": {"id": "B-991", "agentId": "AG-7", "amount": 250, "odds": 1.9}
                },
            }
        },
    )

    event_type: Any = Field(default=None, alias="eventType")
    event_id: Any = Field(default=None, alias="eventId")
    source: Any = None
    timestamp: Any = None
    payload: Any = Field(default_factory=dict)

    def to_mapping(self) -> Dict[str, Any]:
        return self.model_dump()


class ExternalEventBatchDTO(BaseModel):
    """Batch of external events."""

    events: List[ExternalEventDTO]
    preserve_order: bool = Field(
        default=True,
        description="Publish sequentially; false publishes concurrently without ordering",
    )
