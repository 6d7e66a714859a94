"""Domain enumerations."""

from .aggregate_type import AggregateType
from .step_status import StepStatus

__all__ = ["AggregateType", "StepStatus"]
