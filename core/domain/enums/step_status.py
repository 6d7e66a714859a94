"""
Step Status Enum.

Status values for workflow and business process steps.
"""
from enum import Enum


class StepStatus(str, Enum):
    """Step lifecycle: pending -> running -> completed | failed.

    A step whose guard evaluates false ends as ``skipped`` and counts as
    neither completed nor failed.
    """

    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"
    SKIPPED = "skipped"
