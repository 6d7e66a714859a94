"""
FastAPI Dependencies.

Holds the single orchestration container for the process.
"""
from __future__ import annotations

import logging
from pathlib import Path
from dotenv import load_dotenv

# Load environment variables ONCE before any settings objects are created
_PROJECT_ROOT = Path(__file__).resolve().parents[1]
load_dotenv(dotenv_path=_PROJECT_ROOT / ".env")

from core.settings import AppSettings, get_app_settings
from orchestration.composition import Container, build_container
from orchestration.engine import EventWorkflowEngine
from orchestration.handlers import DomainEventHandlers
from orchestration.mapper import ExternalEventMapper
from orchestration.orchestrator import DomainOrchestrator

logger = logging.getLogger(__name__)


# =============================================================================
# SINGLETON INSTANCE
# =============================================================================

_container: Container | None = None


# =============================================================================
# DEPENDENCIES
# =============================================================================

def get_container() -> Container:
    global _container
    if _container is None:
        _container = build_container(get_app_settings())
        logger.info("Created orchestration container")
    return _container


def get_mapper() -> ExternalEventMapper:
    return get_container().mapper


def get_orchestrator() -> DomainOrchestrator:
    return get_container().orchestrator


def get_engine() -> EventWorkflowEngine:
    return get_container().engine


def get_handlers() -> DomainEventHandlers:
    return get_container().handlers


def get_settings() -> AppSettings:
    return get_container().settings


# =============================================================================
# RESET (for testing)
# =============================================================================

def set_container(container: Container | None) -> None:
    """Install a prebuilt container (for testing)."""
    global _container
    _container = container


def reset_dependencies():
    global _container
    _container = None
    get_app_settings.cache_clear()
    logger.info("Dependencies reset")


async def shutdown_dependencies() -> None:
    """Release collaborator resources held by the container, if one was built."""
    if _container is None:
        return
    close = getattr(_container.notifications, "close", None)
    if close is not None:
        await close()
