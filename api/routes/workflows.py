"""
Workflow endpoints.

Lists workflow definitions, triggers them manually and looks up instances.
"""
from typing import Any, Dict

from fastapi import APIRouter, Depends, HTTPException, status

from api.dependencies import get_engine, get_settings
from core.application.dtos import WorkflowTriggerDTO
from core.settings import AppSettings
from orchestration.engine import EventWorkflowEngine


router = APIRouter()


@router.get("")
async def list_workflows(
    engine: EventWorkflowEngine = Depends(get_engine),
) -> Dict[str, Any]:
    workflows = []
    for key in engine.get_available_workflows():
        definition = engine.get_workflow_definition(key)
        workflows.append({
            "key": key,
            "name": definition.name,
            "description": definition.description,
            "trigger": definition.trigger,
            "steps": [step.id for step in definition.steps],
            "timeout": definition.timeout,
            "retry_attempts": definition.retry_attempts,
        })
    return {"workflows": workflows, "stats": engine.get_stats().to_dict()}


@router.post("/{workflow_name}/trigger", status_code=status.HTTP_202_ACCEPTED)
async def trigger_workflow(
    workflow_name: str,
    request: WorkflowTriggerDTO,
    engine: EventWorkflowEngine = Depends(get_engine),
) -> Dict[str, Any]:
    """Run a workflow to completion; unknown names answer 404."""
    workflow_id = await engine.trigger_workflow(workflow_name, request.payload)
    return engine.get_workflow_status(workflow_id).to_dict()


@router.post("/cleanup")
async def cleanup_workflows(
    engine: EventWorkflowEngine = Depends(get_engine),
    settings: AppSettings = Depends(get_settings),
) -> Dict[str, int]:
    minutes = settings.orchestration.workflow_retention_minutes
    return {"removed": engine.cleanup_completed_workflows(max_age_minutes=minutes)}


@router.get("/instances/{workflow_id}")
async def get_workflow_instance(
    workflow_id: str,
    engine: EventWorkflowEngine = Depends(get_engine),
) -> Dict[str, Any]:
    context = engine.get_workflow_status(workflow_id)
    if context is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Workflow instance {workflow_id} not found"
        )
    return context.to_dict()
