"""Orchestration layer - event bus, anti-corruption mapper, workflows and business processes.

The composition root lives in ``orchestration.composition`` and is not
imported here, since the in-memory adapters depend on ``orchestration.bus``.
"""

from .bus import EventBusProtocol, InMemoryEventBus
from .engine import EventWorkflowEngine, WorkflowStats
from .events import Event, EventMetadata, ExternalEvent
from .handlers import DomainEventHandlers
from .mapper import BatchResult, ExternalEventMapper, build_idempotency_key, validate_external_event
from .models import BusinessProcessResult, ProcessStats
from .orchestrator import DomainOrchestrator
from .steps import RetryPolicy, RunContext, Step, StepRecord, StepRunner
from .workflow import WorkflowContext, WorkflowDefinition, WorkflowStep

__all__ = [
    "BatchResult",
    "BusinessProcessResult",
    "DomainEventHandlers",
    "DomainOrchestrator",
    "Event",
    "EventBusProtocol",
    "EventMetadata",
    "EventWorkflowEngine",
    "ExternalEvent",
    "ExternalEventMapper",
    "InMemoryEventBus",
    "ProcessStats",
    "RetryPolicy",
    "RunContext",
    "Step",
    "StepRecord",
    "StepRunner",
    "WorkflowContext",
    "WorkflowDefinition",
    "WorkflowStats",
    "WorkflowStep",
    "build_idempotency_key",
    "validate_external_event",
]
