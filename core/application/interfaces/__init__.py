"""Application layer interfaces.

Contracts the orchestration core consumes from the Balance and Collections
bounded contexts and from the Fantasy402 gateway. The core never reaches
past these methods into another context's bookkeeping.
"""
from abc import ABC, abstractmethod
from typing import Optional

from core.domain.value_objects import (
    AgentAccount,
    BalanceChangeType,
    BalanceResponse,
    ExternalBet,
    PaymentRequest,
    PaymentResult,
)


class IBalanceController(ABC):
    """
    Interface for the Balance bounded context.

    Every operation answers with a ``BalanceResponse`` envelope instead of
    raising for business outcomes (unknown account, frozen, limits).
    """

    @abstractmethod
    async def create_balance(
        self,
        customer_id: str,
        agent_id: str,
        initial_balance: float = 0.0,
    ) -> BalanceResponse:
        """
        Open a balance account.

        Args:
            customer_id: Owner of the account
            agent_id: Agent the customer belongs to
            initial_balance: Opening balance

        Returns:
            Envelope with the created balance
        """
        pass

    @abstractmethod
    async def process_balance_change(
        self,
        customer_id: str,
        amount: float,
        change_type: BalanceChangeType,
        reason: str,
        performed_by: str = "system",
    ) -> BalanceResponse:
        """
        Credit or debit an account.

        Args:
            customer_id: Account owner
            amount: Positive amount to move
            change_type: Credit or debit
            reason: Audit reason
            performed_by: Actor recorded on the change

        Returns:
            Envelope with the balance after the change
        """
        pass

    @abstractmethod
    async def get_balance_status(self, customer_id: str) -> BalanceResponse:
        """Current balance of an account."""
        pass

    @abstractmethod
    async def freeze(self, customer_id: str, reason: str, performed_by: str) -> BalanceResponse:
        pass

    @abstractmethod
    async def unfreeze(self, customer_id: str, performed_by: str) -> BalanceResponse:
        pass


class ICollectionsController(ABC):
    """Interface for the Collections bounded context."""

    @abstractmethod
    async def process_payment(self, request: PaymentRequest) -> PaymentResult:
        """
        Collect a payment.

        Publishes ``payment.processed`` on success and ``payment.failed``
        on rejection.

        Raises:
            PaymentError: If the payment is rejected
        """
        pass


class IFantasy402Gateway(ABC):
    """Interface for the external Fantasy402 betting platform."""

    @abstractmethod
    async def place_bet(
        self,
        agent_id: str,
        event_id: str,
        bet_type: str,
        amount: float,
        odds: float,
        selection: str,
    ) -> ExternalBet:
        """
        Place a bet on the external platform.

        Raises:
            CollaboratorError: If the platform cannot be reached
        """
        pass

    @abstractmethod
    async def get_agent_account(self, agent_id: str) -> Optional[AgentAccount]:
        """Agent account as seen by the external platform, if it exists."""
        pass


class INotificationService(ABC):
    """
    Interface for notification service operations.

    Implementations deliver human-readable messages (Telegram, logs, ...).
    """

    @abstractmethod
    async def notify(self, message: str, severity: int = 50) -> None:
        """
        Send a generic notification message.

        Args:
            message: Notification message
            severity: Severity level (0-100, higher = more critical)
        """
        pass
