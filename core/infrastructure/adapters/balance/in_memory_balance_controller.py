"""
In-memory Balance Controller.

Stand-in for the Balance bounded context. Accounts live in a dictionary;
business outcomes are reported through the ``BalanceResponse`` envelope and
state changes are announced on the event bus.
"""
from dataclasses import replace
from typing import Dict, Optional
import logging

from core.application.interfaces import IBalanceController
from core.domain.enums import AggregateType
from core.domain.value_objects import BalanceChangeType, BalanceResponse, BalanceSnapshot
from orchestration.bus import EventBusProtocol


logger = logging.getLogger(__name__)


class InMemoryBalanceController(IBalanceController):
    """
    In-memory implementation of IBalanceController.

    Publishes ``balance.threshold.exceeded`` when a debit leaves an account
    under its warning threshold, and ``balance.frozen`` / ``balance.unfrozen``.
    """

    def __init__(
        self,
        event_bus: EventBusProtocol,
        min_balance: float = 0.0,
        warning_threshold: float = 50.0,
    ):
        """
        Initialize empty storage.

        Args:
            event_bus: Bus for balance events
            min_balance: Floor applied to new accounts
            warning_threshold: Low-balance warning level for new accounts
        """
        self._event_bus = event_bus
        self._min_balance = min_balance
        self._warning_threshold = warning_threshold
        self._accounts: Dict[str, BalanceSnapshot] = {}
        logger.info("InMemoryBalanceController initialized (in-memory storage)")

    async def create_balance(
        self,
        customer_id: str,
        agent_id: str,
        initial_balance: float = 0.0,
    ) -> BalanceResponse:
        if not customer_id:
            return BalanceResponse.fail("customer_id is required", "INVALID_CUSTOMER")
        if customer_id in self._accounts:
            return BalanceResponse.fail(f"Balance already exists: {customer_id}", "BALANCE_EXISTS")
        if initial_balance < self._min_balance:
            return BalanceResponse.fail(
                f"Initial balance {initial_balance} below minimum {self._min_balance}",
                "INVALID_AMOUNT",
            )

        snapshot = BalanceSnapshot(
            customer_id=customer_id,
            agent_id=agent_id or "SYSTEM",
            current_balance=float(initial_balance),
            min_balance=self._min_balance,
            warning_threshold=self._warning_threshold,
        )
        self._accounts[customer_id] = snapshot
        logger.info(f"✅ Balance created: {customer_id} (agent {snapshot.agent_id}, {initial_balance})")
        return BalanceResponse.ok(snapshot)

    async def process_balance_change(
        self,
        customer_id: str,
        amount: float,
        change_type: BalanceChangeType,
        reason: str,
        performed_by: str = "system",
    ) -> BalanceResponse:
        account = self._accounts.get(customer_id)
        if account is None:
            return BalanceResponse.fail(f"Balance not found: {customer_id}", "BALANCE_NOT_FOUND")
        if account.is_frozen:
            return BalanceResponse.fail(f"Account is frozen: {customer_id}", "ACCOUNT_FROZEN")
        if amount is None or amount <= 0:
            return BalanceResponse.fail(f"Amount must be positive, got {amount}", "INVALID_AMOUNT")

        change_type = BalanceChangeType(change_type)
        if change_type == BalanceChangeType.DEBIT:
            new_balance = account.current_balance - amount
            if new_balance < account.min_balance:
                return BalanceResponse.fail(
                    f"Insufficient funds for {customer_id}: "
                    f"required {amount}, available {account.available_balance}",
                    "INSUFFICIENT_FUNDS",
                )
        else:
            new_balance = account.current_balance + amount

        updated = replace(account, current_balance=new_balance)
        self._accounts[customer_id] = updated
        logger.info(
            f"Balance {change_type.value} {amount} on {customer_id} by {performed_by}: "
            f"{account.current_balance} -> {new_balance} ({reason})"
        )

        if change_type == BalanceChangeType.DEBIT and new_balance < updated.warning_threshold:
            await self._event_bus.emit(
                "balance.threshold.exceeded",
                {
                    "customer_id": customer_id,
                    "current_balance": new_balance,
                    "threshold": updated.warning_threshold,
                    "severity": "critical" if new_balance <= updated.min_balance else "warning",
                },
                aggregate_id=customer_id,
                aggregate_type=AggregateType.CUSTOMER,
            )

        return BalanceResponse.ok(updated)

    async def get_balance_status(self, customer_id: str) -> BalanceResponse:
        account = self._accounts.get(customer_id)
        if account is None:
            return BalanceResponse.fail(f"Balance not found: {customer_id}", "BALANCE_NOT_FOUND")
        return BalanceResponse.ok(account)

    async def freeze(self, customer_id: str, reason: str, performed_by: str) -> BalanceResponse:
        account = self._accounts.get(customer_id)
        if account is None:
            return BalanceResponse.fail(f"Balance not found: {customer_id}", "BALANCE_NOT_FOUND")
        if account.is_frozen:
            return BalanceResponse.fail(f"Account already frozen: {customer_id}", "ACCOUNT_FROZEN")

        updated = replace(account, is_frozen=True)
        self._accounts[customer_id] = updated
        await self._event_bus.emit(
            "balance.frozen",
            {"customer_id": customer_id, "reason": reason, "performed_by": performed_by},
            aggregate_id=customer_id,
            aggregate_type=AggregateType.CUSTOMER,
        )
        return BalanceResponse.ok(updated)

    async def unfreeze(self, customer_id: str, performed_by: str) -> BalanceResponse:
        account = self._accounts.get(customer_id)
        if account is None:
            return BalanceResponse.fail(f"Balance not found: {customer_id}", "BALANCE_NOT_FOUND")
        if not account.is_frozen:
            return BalanceResponse.fail(f"Account is not frozen: {customer_id}", "ACCOUNT_NOT_FROZEN")

        updated = replace(account, is_frozen=False)
        self._accounts[customer_id] = updated
        await self._event_bus.emit(
            "balance.unfrozen",
            {"customer_id": customer_id, "performed_by": performed_by},
            aggregate_id=customer_id,
            aggregate_type=AggregateType.CUSTOMER,
        )
        return BalanceResponse.ok(updated)

    def get_account(self, customer_id: str) -> Optional[BalanceSnapshot]:
        """Direct lookup (for testing)."""
        return self._accounts.get(customer_id)
