"""Application layer - collaborator contracts and request DTOs."""

from .interfaces import (
    IBalanceController,
    ICollectionsController,
    IFantasy402Gateway,
    INotificationService,
)

__all__ = [
    "IBalanceController",
    "ICollectionsController",
    "IFantasy402Gateway",
    "INotificationService",
]
