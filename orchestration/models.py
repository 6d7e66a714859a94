"""Orchestration models - BusinessProcessResult, ProcessStats."""

from dataclasses import asdict, dataclass, field
from datetime import datetime
from typing import Any

from .steps import StepRecord


@dataclass
class BusinessProcessResult:
    """Result of a business process run.

    Success and failure produce the same shape; on failure it is carried
    by ``ProcessFailedError``. ``applied_effects`` lists side effects known
    to have happened, since completed steps are never rolled back.
    """

    process_id: str
    process_name: str
    success: bool
    steps: list[StepRecord]
    duration_ms: int
    completed_at: datetime
    result: Any = None
    error: str | None = None
    error_code: str | None = None
    failed_step: str | None = None
    applied_effects: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, object]:
        result = self.result
        if hasattr(result, "to_dict"):
            result = result.to_dict()
        elif isinstance(result, dict):
            result = {k: v.to_dict() if hasattr(v, "to_dict") else v for k, v in result.items()}
        return {
            "process_id": self.process_id,
            "process_name": self.process_name,
            "success": self.success,
            "steps": [step.to_dict() for step in self.steps],
            "result": result,
            "error": self.error,
            "error_code": self.error_code,
            "failed_step": self.failed_step,
            "applied_effects": list(self.applied_effects),
            "duration_ms": self.duration_ms,
            "completed_at": self.completed_at.isoformat(),
        }


@dataclass
class ProcessStats:
    active_processes: int
    completed_processes: int
    failed_processes: int
    average_duration_ms: float

    def to_dict(self) -> dict[str, object]:
        return asdict(self)
