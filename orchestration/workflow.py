"""Workflow definitions - WorkflowDefinition, WorkflowStep, WorkflowContext."""

from dataclasses import dataclass, field
from datetime import datetime

from .steps import RunContext, Step

# Workflow steps share the orchestrator's step abstraction
WorkflowStep = Step


@dataclass
class WorkflowDefinition:
    """Declarative template started when its trigger event is observed.

    ``timeout`` (seconds) and ``retry_attempts`` are configuration; the
    engine only enforces them when step policies are switched on.
    """

    name: str
    trigger: str
    steps: list[WorkflowStep]
    description: str = ""
    timeout: float | None = None
    retry_attempts: int = 0


@dataclass
class WorkflowContext(RunContext):
    """One running (or finished) workflow instance."""

    workflow_key: str = ""
    workflow_name: str = ""
    error: str | None = None
    finished_at: datetime | None = None
    payload: dict[str, object] = field(default_factory=dict)

    @property
    def workflow_id(self) -> str:
        return self.run_id

    @property
    def status(self) -> str:
        if self.error is not None or self.failed_steps:
            return "failed"
        if self.finished_at is not None:
            return "completed"
        return "running"

    def to_dict(self) -> dict[str, object]:
        return {
            "workflow_id": self.run_id,
            "workflow": self.workflow_key,
            "workflow_name": self.workflow_name,
            "status": self.status,
            "started_at": self.started_at.isoformat(),
            "finished_at": self.finished_at.isoformat() if self.finished_at else None,
            "current_step": self.current_step,
            "completed_steps": self.completed_steps,
            "failed_steps": self.failed_steps,
            "skipped_steps": self.skipped_steps,
            "error": self.error,
            "steps": [record.to_dict() for record in self.records],
        }
