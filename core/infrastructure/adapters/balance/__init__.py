"""Balance context adapters."""

from .in_memory_balance_controller import InMemoryBalanceController

__all__ = ["InMemoryBalanceController"]
