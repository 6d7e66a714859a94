"""Shared fixtures: one event bus per test with in-memory collaborators."""

import pytest

from core.infrastructure.adapters.balance import InMemoryBalanceController
from core.infrastructure.adapters.collections import InMemoryCollectionsController
from core.infrastructure.adapters.fantasy402 import InMemoryFantasy402Gateway
from core.infrastructure.adapters.notifications.mock_notification_service import (
    MockNotificationService,
)
from core.settings import AppSettings, OrchestrationSettings, TelegramSettings
from orchestration.bus import InMemoryEventBus
from orchestration.composition import build_container
from orchestration.orchestrator import DomainOrchestrator

from tests.helpers import EventRecorder


@pytest.fixture
def test_settings() -> AppSettings:
    return AppSettings(
        orchestration=OrchestrationSettings(environment="test"),
        telegram=TelegramSettings(enabled=False),
    )


@pytest.fixture
def event_bus() -> InMemoryEventBus:
    return InMemoryEventBus()


@pytest.fixture
def balance(event_bus: InMemoryEventBus) -> InMemoryBalanceController:
    return InMemoryBalanceController(event_bus)


@pytest.fixture
def collections(event_bus: InMemoryEventBus) -> InMemoryCollectionsController:
    return InMemoryCollectionsController(event_bus)


@pytest.fixture
def gateway() -> InMemoryFantasy402Gateway:
    return InMemoryFantasy402Gateway()


@pytest.fixture
def notifications() -> MockNotificationService:
    return MockNotificationService()


@pytest.fixture
def orchestrator(event_bus, balance, collections, gateway) -> DomainOrchestrator:
    return DomainOrchestrator(event_bus, balance, collections, gateway)


@pytest.fixture
def container(test_settings, notifications):
    return build_container(test_settings, notifications=notifications)


@pytest.fixture
def recorder_factory(event_bus):
    def factory(*event_types: str) -> EventRecorder:
        return EventRecorder(event_bus, *event_types)

    return factory
