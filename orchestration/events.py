"""Orchestration events - Event, EventMetadata, ExternalEvent."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Mapping
import uuid

from core.domain.enums import AggregateType
from fire22_sdk.utils.datetime import utc_now


@dataclass(frozen=True)
class EventMetadata:
    """Tracing metadata for an internal event."""

    event_id: str = field(default_factory=lambda: str(uuid.uuid4()))
    correlation_id: str | None = None
    causation_id: str | None = None
    source: str | None = None
    external_event_id: str | None = None
    idempotency_key: str | None = None
    occurred_at: datetime = field(default_factory=utc_now)

    def to_dict(self) -> dict[str, object]:
        return {
            "event_id": self.event_id,
            "correlation_id": self.correlation_id,
            "causation_id": self.causation_id,
            "source": self.source,
            "external_event_id": self.external_event_id,
            "idempotency_key": self.idempotency_key,
            "occurred_at": self.occurred_at.isoformat(),
        }


@dataclass(frozen=True)
class Event:
    """Internal event delivered through the event bus.

    Events are immutable once published and are never persisted.
    """

    event_type: str
    payload: dict[str, Any] = field(default_factory=dict)
    aggregate_id: str = ""
    aggregate_type: AggregateType | None = None
    metadata: EventMetadata = field(default_factory=EventMetadata)

    @property
    def name(self) -> str:
        return self.event_type

    def to_dict(self) -> dict[str, object]:
        return {
            "event_type": self.event_type,
            "aggregate_id": self.aggregate_id,
            "aggregate_type": self.aggregate_type.value if self.aggregate_type else None,
            "payload": self.payload,
            "metadata": self.metadata.to_dict(),
        }


@dataclass(frozen=True)
class ExternalEvent:
    """Event received from a system outside the bounded contexts."""

    event_type: str
    event_id: str
    source: str
    timestamp: datetime
    payload: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "ExternalEvent":
        """Build from a snake_case or camelCase mapping.

        No validation happens here; see ``validate_external_event``.
        """
        timestamp = data.get("timestamp")
        if isinstance(timestamp, str):
            try:
                timestamp = datetime.fromisoformat(timestamp.replace("Z", "+00:00"))
            except ValueError:
                pass
        return cls(
            event_type=data.get("event_type", data.get("eventType")),
            event_id=data.get("event_id", data.get("eventId")),
            source=data.get("source"),
            timestamp=timestamp,
            payload=data.get("payload"),
        )
