"""Shared step runner - Step, StepRecord, RunContext, RetryPolicy, StepRunner.

Declarative workflows and the hand-coded business processes both run
through ``StepRunner`` so guard evaluation, failure policy and logging
live in one place.
"""

import asyncio
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from core.domain.enums import StepStatus
from core.domain.errors import StepFailedError
from fire22_sdk.logging import get_logger
from fire22_sdk.utils.datetime import utc_now

from .bus import EventBusProtocol
from .events import EventMetadata

# Type aliases for step callables
StepAction = Callable[[dict[str, Any], "RunContext"], Awaitable[Any]]
StepCondition = Callable[[dict[str, Any]], bool]


@dataclass
class Step:
    """A single step.

    ``event`` is published with the incoming payload before the action
    runs. ``timeout`` is in seconds and only enforced when the runner is
    asked to.
    """

    id: str
    name: str
    action: StepAction
    event: str | None = None
    condition: StepCondition | None = None
    required: bool = True
    timeout: float | None = None


@dataclass
class RetryPolicy:
    """Retry policy for required steps."""

    max_attempts: int = 1
    backoff_seconds: float = 0.0


@dataclass
class StepRecord:
    """Observed state of one step within a run."""

    step_id: str
    name: str
    status: StepStatus = StepStatus.PENDING
    started_at: datetime | None = None
    completed_at: datetime | None = None
    error: str | None = None
    data: Any = None
    attempts: int = 0

    def to_dict(self) -> dict[str, object]:
        data = self.data.to_dict() if hasattr(self.data, "to_dict") else self.data
        return {
            "step_id": self.step_id,
            "name": self.name,
            "status": self.status.value,
            "started_at": self.started_at.isoformat() if self.started_at else None,
            "completed_at": self.completed_at.isoformat() if self.completed_at else None,
            "error": self.error,
            "data": data,
            "attempts": self.attempts,
        }


@dataclass
class RunContext:
    """State of one run, shared by its steps.

    ``data`` is the scratch space later steps read values from.
    ``applied_effects`` lists side effects known to have happened.
    """

    run_id: str
    started_at: datetime = field(default_factory=utc_now)
    current_step: int = 0
    records: list[StepRecord] = field(default_factory=list)
    data: dict[str, Any] = field(default_factory=dict)
    applied_effects: list[str] = field(default_factory=list)

    @property
    def completed_steps(self) -> list[str]:
        return [r.step_id for r in self.records if r.status == StepStatus.COMPLETED]

    @property
    def failed_steps(self) -> list[str]:
        return [r.step_id for r in self.records if r.status == StepStatus.FAILED]

    @property
    def skipped_steps(self) -> list[str]:
        return [r.step_id for r in self.records if r.status == StepStatus.SKIPPED]

    @property
    def has_progress(self) -> bool:
        """True once any step completed or failed."""
        return bool(self.completed_steps or self.failed_steps)

    def record_for(self, step_id: str) -> StepRecord | None:
        return next((r for r in self.records if r.step_id == step_id), None)


class StepRunner:
    """Runs steps strictly in order against a RunContext."""

    def __init__(self, event_bus: EventBusProtocol, logger_name: str = "orchestration.step_runner") -> None:
        """Initialize step runner.

        Args:
            event_bus: Bus used to publish each step's bound event
            logger_name: Logger name, so engine and orchestrator logs stay apart
        """
        self._event_bus = event_bus
        self._logger = get_logger(logger_name)

    async def run(
        self,
        steps: Sequence[Step],
        payload: dict[str, Any],
        context: RunContext,
        retry_policy: RetryPolicy | None = None,
        enforce_timeouts: bool = False,
    ) -> None:
        """Run every step in order.

        A false guard skips the step. An optional step that fails is
        recorded and the run continues; a required one aborts the run.

        Args:
            steps: Steps in execution order
            payload: Incoming payload handed to guards, events and actions
            context: Run state; its records are replaced
            retry_policy: Retry policy for required steps (None: one attempt)
            enforce_timeouts: Bound each action by its step timeout

        Raises:
            StepFailedError: If a required step fails
        """
        context.records = [StepRecord(step_id=step.id, name=step.name) for step in steps]

        for index, step in enumerate(steps):
            context.current_step = index
            await self._run_step(step, context.records[index], payload, context, retry_policy, enforce_timeouts)

    async def _run_step(
        self,
        step: Step,
        record: StepRecord,
        payload: dict[str, Any],
        context: RunContext,
        retry_policy: RetryPolicy | None,
        enforce_timeouts: bool,
    ) -> None:
        run_id = context.run_id
        try:
            if step.condition is not None and not step.condition(payload):
                record.status = StepStatus.SKIPPED
                self._logger.info(f"[{run_id}] Skipping step: {step.name} (condition not met)")
                return

            self._logger.info(f"[{run_id}] Executing step: {step.name} ({step.id})")
            record.status = StepStatus.RUNNING
            record.started_at = utc_now()

            if step.event:
                await self._event_bus.emit(
                    step.event,
                    payload,
                    metadata=EventMetadata(correlation_id=run_id, causation_id=step.id),
                )

            policy = retry_policy if (retry_policy and step.required) else RetryPolicy()
            output = await self._attempt(step, record, payload, context, policy, enforce_timeouts)

        except Exception as exc:
            record.status = StepStatus.FAILED
            record.error = str(exc) or type(exc).__name__
            record.completed_at = utc_now()
            if step.required:
                self._logger.error(f"[{run_id}] Required step failed: {step.name} - {record.error}")
                raise StepFailedError(step.id, step.name, exc) from exc
            self._logger.warning(f"[{run_id}] Optional step failed: {step.name} - {record.error}")
            return

        record.status = StepStatus.COMPLETED
        record.completed_at = utc_now()
        if output is not None:
            record.data = output
        self._logger.info(f"[{run_id}] Step completed: {step.name} ({step.id})")

    async def _attempt(
        self,
        step: Step,
        record: StepRecord,
        payload: dict[str, Any],
        context: RunContext,
        policy: RetryPolicy,
        enforce_timeouts: bool,
    ) -> Any:
        attempts = max(policy.max_attempts, 1)
        for attempt in range(1, attempts + 1):
            record.attempts = attempt
            try:
                if enforce_timeouts and step.timeout:
                    return await asyncio.wait_for(step.action(payload, context), timeout=step.timeout)
                return await step.action(payload, context)
            except Exception as exc:
                if attempt >= attempts:
                    raise
                self._logger.warning(
                    f"[{context.run_id}] Step {step.id} attempt {attempt}/{attempts} failed: {exc}"
                )
                if policy.backoff_seconds > 0:
                    await asyncio.sleep(policy.backoff_seconds * attempt)
