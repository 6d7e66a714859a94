"""Event workflow engine - runs declarative workflows started by trigger events."""

import asyncio
from dataclasses import asdict, dataclass
from datetime import timedelta
from typing import Any
import uuid

from core.domain.enums import StepStatus
from core.domain.errors import StepFailedError, WorkflowNotFoundError
from fire22_sdk.logging import get_logger
from fire22_sdk.utils.datetime import utc_now

from .bus import EventBusProtocol
from .events import Event
from .steps import RetryPolicy, StepRunner
from .workflow import WorkflowContext, WorkflowDefinition


@dataclass
class WorkflowStats:
    total_workflows: int
    active_workflows: int
    completed_workflows: int
    failed_workflows: int

    def to_dict(self) -> dict[str, int]:
        return asdict(self)


class EventWorkflowEngine:
    """Saga engine for declarative workflows.

    Instances live in an in-memory registry until removed by
    ``cleanup_completed_workflows``; nothing survives a restart.
    """

    def __init__(
        self,
        event_bus: EventBusProtocol,
        enforce_step_policies: bool = False,
        retry_backoff_seconds: float = 0.5,
    ) -> None:
        """Initialize workflow engine.

        Args:
            event_bus: Bus used for trigger subscriptions and step events
            enforce_step_policies: Enforce definition/step timeouts and retry
                required steps up to the definition's ``retry_attempts``
            retry_backoff_seconds: Base backoff between retries
        """
        self._event_bus = event_bus
        self._enforce_step_policies = enforce_step_policies
        self._retry_backoff_seconds = retry_backoff_seconds
        self._workflows: dict[str, WorkflowDefinition] = {}
        self._active_workflows: dict[str, WorkflowContext] = {}
        self._runner = StepRunner(event_bus, logger_name="orchestration.workflow_engine")
        self._logger = get_logger("orchestration.workflow_engine")

    def register_workflow(self, key: str, definition: WorkflowDefinition) -> None:
        """Register a workflow and subscribe it to its trigger event.

        Raises:
            ValueError: If a workflow is already registered under ``key``
        """
        if key in self._workflows:
            raise ValueError(f"Workflow already registered: {key}")
        self._workflows[key] = definition

        async def on_trigger(event: Event) -> None:
            await self.start_workflow(key, event.payload)

        on_trigger.__qualname__ = f"EventWorkflowEngine.trigger[{key}]"
        self._event_bus.subscribe(definition.trigger, on_trigger)
        self._logger.info(f"Registered workflow {key} (trigger={definition.trigger})")

    async def start_workflow(self, workflow_name: str, initial_payload: dict[str, Any]) -> str:
        """
        Start a workflow instance and run it to the end.

        Failures are recorded on the instance, never re-raised.

        Args:
            workflow_name: Registered workflow key
            initial_payload: Payload handed to every step

        Returns:
            Workflow instance id

        Raises:
            WorkflowNotFoundError: If no workflow is registered under the name
        """
        workflow = self._workflows.get(workflow_name)
        if workflow is None:
            raise WorkflowNotFoundError(f"Workflow not found: {workflow_name}")

        workflow_id = f"wf_{uuid.uuid4().hex[:16]}"
        context = WorkflowContext(
            run_id=workflow_id,
            workflow_key=workflow_name,
            workflow_name=workflow.name,
            payload=dict(initial_payload or {}),
        )
        self._active_workflows[workflow_id] = context
        self._logger.info(f"🚀 Starting workflow: {workflow_name} ({workflow_id})")

        try:
            await self._execute(workflow, context)
            self._logger.info(f"✅ Workflow completed: {workflow_name} ({workflow_id})")
        except StepFailedError as exc:
            context.error = str(exc)
            self._logger.error(f"❌ Workflow failed: {workflow_name} ({workflow_id}) - {exc}")
        except asyncio.TimeoutError:
            context.error = f"Workflow timed out after {workflow.timeout}s"
            self._fail_interrupted_step(context)
            self._logger.error(f"❌ Workflow timed out: {workflow_name} ({workflow_id})")
        finally:
            context.finished_at = utc_now()

        return workflow_id

    async def trigger_workflow(self, workflow_name: str, payload: dict[str, Any]) -> str:
        """Manually start a workflow outside the trigger-event path."""
        return await self.start_workflow(workflow_name, payload)

    async def _execute(self, workflow: WorkflowDefinition, context: WorkflowContext) -> None:
        retry_policy = None
        if self._enforce_step_policies and workflow.retry_attempts > 0:
            retry_policy = RetryPolicy(
                max_attempts=workflow.retry_attempts + 1,
                backoff_seconds=self._retry_backoff_seconds,
            )

        run = self._runner.run(
            workflow.steps,
            context.payload,
            context,
            retry_policy=retry_policy,
            enforce_timeouts=self._enforce_step_policies,
        )
        if self._enforce_step_policies and workflow.timeout:
            await asyncio.wait_for(run, timeout=workflow.timeout)
        else:
            await run

    def _fail_interrupted_step(self, context: WorkflowContext) -> None:
        """Mark the step cut off by the workflow timeout as failed."""
        if context.current_step >= len(context.records):
            return
        record = context.records[context.current_step]
        if record.status in (StepStatus.PENDING, StepStatus.RUNNING):
            record.status = StepStatus.FAILED
            record.error = context.error
            record.completed_at = utc_now()

    # =========================================================================
    # QUERIES
    # =========================================================================

    def get_workflow_status(self, workflow_id: str) -> WorkflowContext | None:
        return self._active_workflows.get(workflow_id)

    def get_active_workflows(self) -> list[WorkflowContext]:
        return list(self._active_workflows.values())

    def get_available_workflows(self) -> list[str]:
        return list(self._workflows)

    def get_workflow_definition(self, workflow_name: str) -> WorkflowDefinition | None:
        return self._workflows.get(workflow_name)

    def cleanup_completed_workflows(self, max_age_minutes: float = 60) -> int:
        """
        Drop instances older than ``max_age_minutes`` that have at least one
        completed or failed step.

        Returns:
            Number of instances removed
        """
        cutoff = utc_now() - timedelta(minutes=max_age_minutes)
        expired = [
            workflow_id
            for workflow_id, context in self._active_workflows.items()
            if context.has_progress and context.started_at <= cutoff
        ]
        for workflow_id in expired:
            del self._active_workflows[workflow_id]

        if expired:
            self._logger.info(f"Cleaned up {len(expired)} workflow instance(s)")
        return len(expired)

    def get_stats(self) -> WorkflowStats:
        contexts = list(self._active_workflows.values())
        return WorkflowStats(
            total_workflows=len(self._workflows),
            active_workflows=len(contexts),
            completed_workflows=sum(1 for c in contexts if c.status == "completed"),
            failed_workflows=sum(1 for c in contexts if c.status == "failed"),
        )
