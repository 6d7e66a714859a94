"""Collections context adapters."""

from .in_memory_collections_controller import InMemoryCollectionsController

__all__ = ["InMemoryCollectionsController"]
