"""DTOs for business process and workflow requests."""

from typing import Any, Dict, Optional

from pydantic import BaseModel, Field


class DepositRequestDTO(BaseModel):
    customer_id: str
    amount: float
    payment_method: str = "card"
    metadata: Dict[str, Any] = Field(default_factory=dict)


class BetPlacementRequestDTO(BaseModel):
    agent_id: str
    event_id: str
    bet_type: str
    amount: float
    odds: float
    selection: str


class CustomerDataDTO(BaseModel):
    email: str = ""
    name: str = ""
    phone: Optional[str] = None


class OnboardingRequestDTO(BaseModel):
    customer_id: str
    agent_id: str
    customer_data: CustomerDataDTO
    initial_deposit: Optional[float] = None


class WorkflowTriggerDTO(BaseModel):
    """Manual workflow trigger payload."""

    payload: Dict[str, Any] = Field(default_factory=dict)
