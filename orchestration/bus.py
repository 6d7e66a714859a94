"""Event bus - EventBusProtocol and InMemoryEventBus."""

from collections.abc import Awaitable, Callable
import inspect
from typing import Any, Protocol

from core.domain.enums import AggregateType
from fire22_sdk.logging import get_logger

from .events import Event, EventMetadata

EventHandler = Callable[[Event], Awaitable[None] | None]


class EventBusProtocol(Protocol):
    """Protocol for event bus implementations."""

    async def publish(self, event: Event) -> None:
        """Publish an event.

        Args:
            event: Event to publish
        """
        ...

    async def emit(
        self,
        event_type: str,
        payload: dict[str, Any],
        *,
        aggregate_id: str = "",
        aggregate_type: AggregateType | None = None,
        metadata: EventMetadata | None = None,
    ) -> Event:
        """Build an event from a type and payload and publish it."""
        ...

    def subscribe(self, event_type: str, handler: EventHandler) -> None:
        """Subscribe a handler to an event type.

        Args:
            event_type: Exact event type to subscribe to
            handler: Handler function (async or sync)
        """
        ...


class InMemoryEventBus(EventBusProtocol):
    """In-memory event bus implementation.

    Delivery is sequential: handlers of one publish call run to completion
    in registration order before publish returns. A failing handler stops
    delivery for that call and the error propagates to the publisher.
    Events without subscribers are dropped.
    """

    def __init__(self) -> None:
        """Initialize in-memory event bus."""
        self._handlers: dict[str, list[EventHandler]] = {}
        self._logger = get_logger("orchestration.event_bus")

    def subscribe(self, event_type: str, handler: EventHandler) -> None:
        """Subscribe a handler to an event type.

        Args:
            event_type: Exact event type to subscribe to (no wildcards)
            handler: Handler function (async or sync)
        """
        if event_type not in self._handlers:
            self._handlers[event_type] = []
        self._handlers[event_type].append(handler)
        self._logger.debug(
            f"Registered handler {_handler_name(handler)} for {event_type}"
        )

    def unsubscribe(self, event_type: str, handler: EventHandler) -> bool:
        """Remove a handler. Returns False if it was not registered."""
        handlers = self._handlers.get(event_type, [])
        if handler not in handlers:
            return False
        handlers.remove(handler)
        if not handlers:
            del self._handlers[event_type]
        return True

    def handler_count(self, event_type: str) -> int:
        return len(self._handlers.get(event_type, []))

    def subscribed_event_types(self) -> list[str]:
        return sorted(self._handlers)

    def clear(self) -> None:
        """Drop every subscription (for testing)."""
        self._handlers.clear()

    async def publish(self, event: Event) -> None:
        """Publish an event to all subscribed handlers.

        Args:
            event: Event to publish

        Raises:
            Exception: Whatever the failing handler raised
        """
        # Snapshot so handlers subscribing during delivery do not see this event
        handlers = list(self._handlers.get(event.event_type, []))
        if not handlers:
            self._logger.debug(f"No subscribers for {event.event_type}, event dropped")
            return

        self._logger.info(
            f"Publishing {event.event_type} "
            f"(event_id={event.metadata.event_id}, handlers={len(handlers)})"
        )

        for handler in handlers:
            try:
                result = handler(event)
                if inspect.isawaitable(result):
                    await result
            except Exception as exc:
                self._logger.error(
                    f"Handler {_handler_name(handler)} failed for {event.event_type}: {exc}",
                    exc_info=True,
                )
                raise

    async def emit(
        self,
        event_type: str,
        payload: dict[str, Any],
        *,
        aggregate_id: str = "",
        aggregate_type: AggregateType | None = None,
        metadata: EventMetadata | None = None,
    ) -> Event:
        """Build an event from a type and payload and publish it.

        Returns:
            The published event
        """
        event = Event(
            event_type=event_type,
            payload=payload,
            aggregate_id=aggregate_id,
            aggregate_type=aggregate_type,
            metadata=metadata or EventMetadata(),
        )
        await self.publish(event)
        return event


def _handler_name(handler: EventHandler) -> str:
    return getattr(handler, "__qualname__", None) or repr(handler)
