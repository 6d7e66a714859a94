"""
External event ingestion endpoints.

Feeds Fantasy402 / Telegram events through the anti-corruption mapper.
"""
from typing import Any, Dict

from fastapi import APIRouter, Depends, status

from api.dependencies import get_mapper
from core.application.dtos import ExternalEventBatchDTO, ExternalEventDTO
from core.domain.errors import ValidationError
from orchestration.events import ExternalEvent
from orchestration.mapper import ExternalEventMapper, validate_external_event


router = APIRouter()


@router.post("", status_code=status.HTTP_202_ACCEPTED)
async def ingest_external_event(
    request: ExternalEventDTO,
    mapper: ExternalEventMapper = Depends(get_mapper),
) -> Dict[str, Any]:
    """
    Map and publish one external event.

    Structurally invalid events are rejected with 400 and events whose
    payload the mapping cannot read with 422. Unmapped event types are
    accepted and publish nothing.
    """
    data = request.to_mapping()
    valid, errors = validate_external_event(data)
    if not valid:
        raise ValidationError("; ".join(errors))

    events = await mapper.process_external_event(ExternalEvent.from_dict(data))
    return {
        "event_id": data["event_id"],
        "mapped": mapper.has_mapping(data["event_type"]),
        "published": len(events),
        "events": [event.to_dict() for event in events],
    }


@router.post("/batch")
async def ingest_external_events_batch(
    request: ExternalEventBatchDTO,
    mapper: ExternalEventMapper = Depends(get_mapper),
) -> Dict[str, Any]:
    """Map and publish many external events; individual failures are reported, not raised."""
    result = await mapper.process_external_events_batch(
        [event.to_mapping() for event in request.events],
        preserve_order=request.preserve_order,
    )
    return result.to_dict()


@router.post("/validate")
async def validate_event(request: ExternalEventDTO) -> Dict[str, Any]:
    valid, errors = validate_external_event(request.to_mapping())
    return {"valid": valid, "errors": errors}
