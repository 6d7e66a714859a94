"""Fantasy402 gateway adapters."""

from .in_memory_gateway import InMemoryFantasy402Gateway

__all__ = ["InMemoryFantasy402Gateway"]
