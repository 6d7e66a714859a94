"""
Composition root.

Builds exactly one event bus and hands it to every component. This is the
only place a process-wide bus instance exists.
"""
from dataclasses import dataclass

from core.application.interfaces import (
    IBalanceController,
    ICollectionsController,
    IFantasy402Gateway,
    INotificationService,
)
from core.infrastructure.adapters.balance import InMemoryBalanceController
from core.infrastructure.adapters.collections import InMemoryCollectionsController
from core.infrastructure.adapters.fantasy402 import InMemoryFantasy402Gateway
from core.infrastructure.adapters.notifications.mock_notification_service import (
    MockNotificationService,
)
from core.settings import AppSettings, get_app_settings
from fire22_sdk.logging import get_logger

from .bus import InMemoryEventBus
from .engine import EventWorkflowEngine
from .handlers import DomainEventHandlers
from .mapper import ExternalEventMapper
from .mappings import register_default_mappings
from .orchestrator import DomainOrchestrator
from .workflows import build_default_workflows

logger = get_logger("orchestration.composition")


@dataclass
class Container:
    settings: AppSettings
    event_bus: InMemoryEventBus
    balance: IBalanceController
    collections: ICollectionsController
    gateway: IFantasy402Gateway
    notifications: INotificationService
    handlers: DomainEventHandlers
    mapper: ExternalEventMapper
    orchestrator: DomainOrchestrator
    engine: EventWorkflowEngine


def _build_notification_service(settings: AppSettings) -> INotificationService:
    if settings.telegram.enabled:
        # aiohttp is only needed when Telegram delivery is switched on
        from core.infrastructure.adapters.notifications.telegram_notification_service import (
            TelegramNotificationService,
        )

        return TelegramNotificationService(settings.telegram)
    return MockNotificationService()


def build_container(
    settings: AppSettings | None = None,
    event_bus: InMemoryEventBus | None = None,
    balance: IBalanceController | None = None,
    collections: ICollectionsController | None = None,
    gateway: IFantasy402Gateway | None = None,
    notifications: INotificationService | None = None,
) -> Container:
    """
    Wire the orchestration core.

    Handlers subscribe before workflows, so on a shared trigger event the
    handler reaction runs first.

    Args:
        settings: Application settings (default: cached env settings)
        event_bus: Bus to share (default: a new InMemoryEventBus)
        balance: Balance collaborator (default: in-memory)
        collections: Collections collaborator (default: in-memory)
        gateway: Fantasy402 gateway (default: in-memory)
        notifications: Notification service (default: per settings)

    Returns:
        Container holding every wired component
    """
    settings = settings or get_app_settings()
    orchestration = settings.orchestration
    event_bus = event_bus or InMemoryEventBus()

    balance = balance or InMemoryBalanceController(event_bus)
    collections = collections or InMemoryCollectionsController(event_bus)
    gateway = gateway or InMemoryFantasy402Gateway()
    notifications = notifications or _build_notification_service(settings)

    handlers = DomainEventHandlers(event_bus, balance, notifications)
    handlers.register()

    mapper = ExternalEventMapper(event_bus, environment=orchestration.environment)
    register_default_mappings(mapper)

    orchestrator = DomainOrchestrator(
        event_bus,
        balance,
        collections,
        gateway,
        high_value_bet_threshold=orchestration.high_value_bet_threshold,
        deposit_currency=orchestration.deposit_currency,
    )

    engine = EventWorkflowEngine(
        event_bus,
        enforce_step_policies=orchestration.enforce_step_policies,
        retry_backoff_seconds=orchestration.retry_backoff_seconds,
    )
    for key, definition in build_default_workflows(orchestrator, balance, gateway, event_bus).items():
        engine.register_workflow(key, definition)

    logger.info(
        f"Orchestration core wired (environment={orchestration.environment}, "
        f"workflows={len(engine.get_available_workflows())})"
    )
    return Container(
        settings=settings,
        event_bus=event_bus,
        balance=balance,
        collections=collections,
        gateway=gateway,
        notifications=notifications,
        handlers=handlers,
        mapper=mapper,
        orchestrator=orchestrator,
        engine=engine,
    )
