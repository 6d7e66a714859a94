"""Request DTOs for the HTTP surface."""

from .external_event_dto import ExternalEventDTO, ExternalEventBatchDTO
from .process_dto import (
    BetPlacementRequestDTO,
    CustomerDataDTO,
    DepositRequestDTO,
    OnboardingRequestDTO,
    WorkflowTriggerDTO,
)

__all__ = [
    "BetPlacementRequestDTO",
    "CustomerDataDTO",
    "DepositRequestDTO",
    "ExternalEventBatchDTO",
    "ExternalEventDTO",
    "OnboardingRequestDTO",
    "WorkflowTriggerDTO",
]
