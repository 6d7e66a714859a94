"""
Business process endpoints.

Runs the orchestrator processes and exposes their in-memory results.
Failed processes surface as 422 with the full process result.
"""
from typing import Any, Dict, List

from fastapi import APIRouter, Depends, HTTPException, status

from api.dependencies import get_orchestrator, get_settings
from core.application.dtos import (
    BetPlacementRequestDTO,
    DepositRequestDTO,
    OnboardingRequestDTO,
)
from core.settings import AppSettings
from orchestration.orchestrator import DomainOrchestrator


router = APIRouter()


@router.post("/deposits", status_code=status.HTTP_201_CREATED)
async def create_deposit(
    request: DepositRequestDTO,
    orchestrator: DomainOrchestrator = Depends(get_orchestrator),
) -> Dict[str, Any]:
    result = await orchestrator.process_customer_deposit(
        customer_id=request.customer_id,
        amount=request.amount,
        payment_method=request.payment_method,
        metadata=request.metadata,
    )
    return result.to_dict()


@router.post("/bets", status_code=status.HTTP_201_CREATED)
async def place_bet(
    request: BetPlacementRequestDTO,
    orchestrator: DomainOrchestrator = Depends(get_orchestrator),
) -> Dict[str, Any]:
    result = await orchestrator.process_agent_bet_placement(
        agent_id=request.agent_id,
        event_id=request.event_id,
        bet_type=request.bet_type,
        amount=request.amount,
        odds=request.odds,
        selection=request.selection,
    )
    return result.to_dict()


@router.post("/onboarding", status_code=status.HTTP_201_CREATED)
async def onboard_customer(
    request: OnboardingRequestDTO,
    orchestrator: DomainOrchestrator = Depends(get_orchestrator),
) -> Dict[str, Any]:
    result = await orchestrator.process_customer_onboarding(
        customer_id=request.customer_id,
        agent_id=request.agent_id,
        customer_data=request.customer_data.model_dump(exclude_none=True),
        initial_deposit=request.initial_deposit,
    )
    return result.to_dict()


@router.get("/stats")
async def get_process_stats(
    orchestrator: DomainOrchestrator = Depends(get_orchestrator),
) -> Dict[str, Any]:
    return orchestrator.get_stats().to_dict()


@router.get("")
async def list_processes(
    orchestrator: DomainOrchestrator = Depends(get_orchestrator),
) -> List[Dict[str, Any]]:
    return [process.to_dict() for process in orchestrator.get_active_processes()]


@router.post("/cleanup")
async def cleanup_processes(
    orchestrator: DomainOrchestrator = Depends(get_orchestrator),
    settings: AppSettings = Depends(get_settings),
) -> Dict[str, int]:
    hours = settings.orchestration.process_retention_hours
    return {"removed": orchestrator.cleanup_completed_processes(older_than_hours=hours)}


@router.get("/{process_id}")
async def get_process(
    process_id: str,
    orchestrator: DomainOrchestrator = Depends(get_orchestrator),
) -> Dict[str, Any]:
    """Process result by id; 404 once cleaned up."""
    process = orchestrator.get_process_status(process_id)
    if process is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Process {process_id} not found"
        )
    return process.to_dict()
