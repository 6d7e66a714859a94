"""Test helpers shared across test packages."""

from orchestration.bus import InMemoryEventBus
from orchestration.events import Event


class EventRecorder:
    """Subscribes to event types and keeps what it saw, in order."""

    def __init__(self, bus: InMemoryEventBus, *event_types: str) -> None:
        self.events: list[Event] = []
        for event_type in event_types:
            bus.subscribe(event_type, self)

    def __call__(self, event: Event) -> None:
        self.events.append(event)

    def of_type(self, event_type: str) -> list[Event]:
        return [e for e in self.events if e.event_type == event_type]

    @property
    def types(self) -> list[str]:
        return [e.event_type for e in self.events]
