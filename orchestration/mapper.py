"""
External Event Mapper (anti-corruption layer).

Translates events from systems outside the bounded contexts (Fantasy402,
Telegram, ...) into canonical internal events and publishes them on the
event bus.

Guarantees:
- Mapper functions are pure; a failure inside one is logged with the
  offending payload and re-raised as ``MappingError``
- Every internal event carries a deterministic idempotency key derived
  from (external event id, internal event type, position), so reprocessing
  the same external event yields the same keys
- Unmapped external types are ignored with a warning

The bus itself never deduplicates; consumers use the idempotency key.
"""
import asyncio
from collections import deque
from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass, field, replace
from datetime import datetime
import functools
from typing import Any
import uuid

from core.domain.errors import (
    IntrospectionNotAllowedError,
    MappingError,
    PublicationError,
)
from fire22_sdk.logging import get_logger

from .bus import EventBusProtocol
from .events import Event, ExternalEvent

MapperFn = Callable[[ExternalEvent], list[Event]]

IDEMPOTENCY_NAMESPACE = uuid.UUID("6f1c9a52-3b8e-5d0a-9c47-2e5b8f0d1a33")


def build_idempotency_key(
    external_event_id: str, internal_event_type: str, index: int
) -> str:
    """Deterministic key for the ``index``-th event mapped from an external event."""
    return str(
        uuid.uuid5(IDEMPOTENCY_NAMESPACE, f"{external_event_id}|{internal_event_type}|{index}")
    )


def validate_external_event(
    event: ExternalEvent | Mapping[str, Any],
) -> tuple[bool, list[str]]:
    """
    Structural check of an external event.

    Args:
        event: ExternalEvent or a mapping with the same fields

    Returns:
        (is_valid, human-readable violations)
    """
    if isinstance(event, ExternalEvent):
        fields = {
            "event_type": event.event_type,
            "event_id": event.event_id,
            "source": event.source,
            "timestamp": event.timestamp,
            "payload": event.payload,
        }
    elif isinstance(event, Mapping):
        fields = {
            "event_type": event.get("event_type", event.get("eventType")),
            "event_id": event.get("event_id", event.get("eventId")),
            "source": event.get("source"),
            "timestamp": event.get("timestamp"),
            "payload": event.get("payload"),
        }
    else:
        return False, [f"External event must be an object, got {type(event).__name__}"]

    errors: list[str] = []
    for name in ("event_type", "event_id", "source"):
        value = fields[name]
        if not isinstance(value, str) or not value.strip():
            errors.append(f"{name} must be a non-empty string")

    if not _is_valid_instant(fields["timestamp"]):
        errors.append("timestamp must be a valid date/time")

    if not isinstance(fields["payload"], Mapping):
        errors.append("payload must be an object")

    return not errors, errors


def _field(event: Any, name: str) -> Any:
    if isinstance(event, Mapping):
        camel = "".join(part.capitalize() if i else part for i, part in enumerate(name.split("_")))
        return event.get(name, event.get(camel))
    return getattr(event, name, None)


def _is_valid_instant(value: Any) -> bool:
    if isinstance(value, datetime):
        return True
    if isinstance(value, str) and value:
        try:
            datetime.fromisoformat(value.replace("Z", "+00:00"))
            return True
        except ValueError:
            return False
    return False


@dataclass
class BatchResult:
    """Outcome of a batch run; individual failures never raise."""

    processed: int = 0
    failed: int = 0
    errors: list[dict[str, str]] = field(default_factory=list)

    def to_dict(self) -> dict[str, object]:
        return {"processed": self.processed, "failed": self.failed, "errors": self.errors}


DEFAULT_HISTORY_LIMIT = 1000


class ExternalEventMapper:
    """Anti-corruption layer between external systems and the event bus."""

    def __init__(
        self,
        event_bus: EventBusProtocol,
        environment: str = "development",
        history_limit: int = DEFAULT_HISTORY_LIMIT,
    ) -> None:
        """Initialize mapper.

        Args:
            event_bus: Bus the mapped events are published on
            environment: Deployment environment; published-event history
                is only kept outside production
            history_limit: Most recent published events kept for introspection
        """
        self._event_bus = event_bus
        self._environment = environment
        self._mappings: dict[str, MapperFn] = {}
        self._published: deque[Event] = deque(maxlen=history_limit)
        self._logger = get_logger("orchestration.external_event_mapper")

    # =========================================================================
    # REGISTRATION
    # =========================================================================

    def register_mapping(self, external_type: str, mapper_fn: MapperFn) -> None:
        """Register a pure mapping function for an external event type.

        The function is wrapped so any exception it raises is logged with
        the original payload and re-raised as ``MappingError``.
        """

        @functools.wraps(mapper_fn)
        def guarded(external_event: ExternalEvent) -> list[Event]:
            try:
                return mapper_fn(external_event)
            except MappingError:
                raise
            except Exception as exc:
                self._logger.error(
                    f"Mapping failed for {external_type} "
                    f"(event_id={external_event.event_id}): {exc} "
                    f"payload={external_event.payload!r}",
                    exc_info=True,
                )
                raise MappingError(
                    f"Mapper for {external_type} failed: {exc}",
                    external_type=external_type,
                    event_id=external_event.event_id,
                    payload=external_event.payload,
                ) from exc

        if external_type in self._mappings:
            self._logger.warning(f"Replacing existing mapping for {external_type}")
        self._mappings[external_type] = guarded

    def unregister_mapping(self, external_type: str) -> bool:
        return self._mappings.pop(external_type, None) is not None

    def has_mapping(self, external_type: str) -> bool:
        return external_type in self._mappings

    def registered_types(self) -> list[str]:
        return sorted(self._mappings)

    # =========================================================================
    # PROCESSING
    # =========================================================================

    async def process_external_event(
        self, external_event: ExternalEvent, preserve_order: bool = True
    ) -> list[Event]:
        """
        Map an external event and publish the resulting internal events.

        Args:
            external_event: Event from the external system
            preserve_order: Publish sequentially (True) or concurrently
                without any ordering guarantee (False)

        Returns:
            Internal events that were published (empty if unmapped)

        Raises:
            MappingError: If the mapper fails or returns a non-sequence
            PublicationError: If a subscriber fails during delivery
        """
        mapper_fn = self._mappings.get(external_event.event_type)
        if mapper_fn is None:
            self._logger.warning(
                f"No mapping registered for {external_event.event_type} "
                f"(event_id={external_event.event_id}), ignoring"
            )
            return []

        mapped = mapper_fn(external_event)
        if not isinstance(mapped, (list, tuple)) or not all(
            isinstance(item, Event) for item in mapped
        ):
            self._logger.error(
                f"Mapper for {external_event.event_type} returned {type(mapped).__name__}, "
                f"expected a sequence of events; payload={external_event.payload!r}"
            )
            raise MappingError(
                f"Mapper for {external_event.event_type} must return a list of events",
                external_type=external_event.event_type,
                event_id=external_event.event_id,
                payload=external_event.payload,
            )

        events = [
            self._enrich(external_event, event, index) for index, event in enumerate(mapped)
        ]
        await self._publish(external_event, events, preserve_order)

        self._logger.info(
            f"Processed {external_event.event_type} (event_id={external_event.event_id}) "
            f"-> {len(events)} internal event(s)"
        )
        return events

    async def process_external_events_batch(
        self,
        external_events: Iterable[ExternalEvent | Mapping[str, Any]],
        preserve_order: bool = True,
    ) -> BatchResult:
        """
        Process many external events; failures are collected, never raised.

        Each event (an ExternalEvent or a raw mapping) is validated
        structurally first. With ``preserve_order``
        events are handled one after another; otherwise all run concurrently
        and results are partitioned once every one has settled.
        """
        external_events = list(external_events)
        result = BatchResult()

        if preserve_order:
            for external_event in external_events:
                try:
                    await self._process_validated(external_event)
                    result.processed += 1
                except Exception as exc:
                    self._record_batch_error(result, external_event, exc)
        else:
            outcomes = await asyncio.gather(
                *(self._process_validated(e, preserve_order=False) for e in external_events),
                return_exceptions=True,
            )
            for external_event, outcome in zip(external_events, outcomes):
                if isinstance(outcome, BaseException):
                    self._record_batch_error(result, external_event, outcome)
                else:
                    result.processed += 1

        self._logger.info(
            f"Batch finished: processed={result.processed}, failed={result.failed}"
        )
        return result

    async def _process_validated(
        self,
        external_event: ExternalEvent | Mapping[str, Any],
        preserve_order: bool = True,
    ) -> list[Event]:
        is_valid, errors = validate_external_event(external_event)
        if not is_valid:
            raise MappingError(
                f"Invalid external event: {'; '.join(errors)}",
                external_type=str(_field(external_event, "event_type") or ""),
                event_id=_field(external_event, "event_id"),
            )
        if isinstance(external_event, Mapping):
            external_event = ExternalEvent.from_dict(external_event)
        return await self.process_external_event(external_event, preserve_order)

    def _record_batch_error(
        self,
        result: BatchResult,
        external_event: ExternalEvent | Mapping[str, Any],
        exc: BaseException,
    ) -> None:
        event_id = str(_field(external_event, "event_id") or "unknown")
        self._logger.warning(f"Batch item {event_id} failed: {exc}")
        result.failed += 1
        result.errors.append({"event_id": event_id, "error": str(exc)})

    def _enrich(self, external_event: ExternalEvent, event: Event, index: int) -> Event:
        key = build_idempotency_key(external_event.event_id, event.event_type, index)
        metadata = replace(
            event.metadata,
            event_id=key,
            idempotency_key=key,
            external_event_id=external_event.event_id,
            source=external_event.source,
            correlation_id=event.metadata.correlation_id or external_event.event_id,
            causation_id=external_event.event_id,
        )
        return replace(event, metadata=metadata)

    async def _publish(
        self, external_event: ExternalEvent, events: list[Event], preserve_order: bool
    ) -> None:
        if preserve_order:
            for event in events:
                try:
                    await self._event_bus.publish(event)
                except Exception as exc:
                    self._logger.error(
                        f"Publishing {event.event_type} from {external_event.event_id} failed: {exc}"
                    )
                    raise PublicationError(
                        f"Failed to publish {event.event_type}: {exc}"
                    ) from exc
                self._record(event)
            return

        outcomes = await asyncio.gather(
            *(self._event_bus.publish(event) for event in events), return_exceptions=True
        )
        failures: list[BaseException] = []
        for event, outcome in zip(events, outcomes):
            if isinstance(outcome, BaseException):
                self._logger.error(
                    f"Publishing {event.event_type} from {external_event.event_id} failed: {outcome}"
                )
                failures.append(outcome)
            else:
                self._record(event)
        if failures:
            raise PublicationError(
                f"{len(failures)} of {len(events)} event(s) failed to publish: {failures[0]}"
            ) from failures[0]

    # =========================================================================
    # TESTING INTROSPECTION (non-production only)
    # =========================================================================

    def _record(self, event: Event) -> None:
        if self._environment != "production":
            self._published.append(event)

    def _ensure_introspection_allowed(self) -> None:
        if self._environment == "production":
            raise IntrospectionNotAllowedError(
                "Published-event introspection is disabled in production"
            )

    def get_published_events(
        self, event_type: str | None = None, aggregate_id: str | None = None
    ) -> list[Event]:
        """Events published by this mapper, optionally filtered."""
        self._ensure_introspection_allowed()
        return [
            event
            for event in self._published
            if (event_type is None or event.event_type == event_type)
            and (aggregate_id is None or event.aggregate_id == aggregate_id)
        ]

    def get_last_published_event(self) -> Event | None:
        self._ensure_introspection_allowed()
        return self._published[-1] if self._published else None

    def clear_published_events(self) -> None:
        self._ensure_introspection_allowed()
        self._published.clear()
