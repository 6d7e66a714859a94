"""
Health check endpoints.

Used for monitoring and load balancer health checks.
"""
from fastapi import APIRouter, Depends
import platform

from api.dependencies import get_handlers
from fire22_sdk.utils.datetime import utc_now
from orchestration.handlers import DomainEventHandlers


router = APIRouter()


@router.get("/health")
async def health_check(handlers: DomainEventHandlers = Depends(get_handlers)):
    """
    Health check endpoint.

    Publishes a probe event through the bus and reports handler counters.
    """
    probe = await handlers.health_check()
    return {
        "status": probe["status"],
        "message": probe["message"],
        "timestamp": utc_now().isoformat(),
        "service": "fire22-backoffice",
        "version": "1.0.0",
        "python_version": platform.python_version(),
        "handlers": handlers.get_handler_stats().to_dict(),
    }
