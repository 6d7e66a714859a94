"""
In-memory Fantasy402 Gateway.

Simulates the external betting platform for demos and tests.
"""
from typing import Dict, List, Optional
import logging
import uuid

from core.application.interfaces import IFantasy402Gateway
from core.domain.errors import CollaboratorError
from core.domain.value_objects import AgentAccount, ExternalBet
from fire22_sdk.utils.datetime import utc_now


logger = logging.getLogger(__name__)


class InMemoryFantasy402Gateway(IFantasy402Gateway):
    """
    In-memory implementation of IFantasy402Gateway.

    ``available`` switches the simulated platform off to exercise
    collaborator failures.
    """

    def __init__(self, available: bool = True):
        self.available = available
        self._accounts: Dict[str, AgentAccount] = {}
        self._bets: Dict[str, ExternalBet] = {}
        logger.info("InMemoryFantasy402Gateway initialized")

    def set_agent_account(self, agent_id: str, balance: float, is_active: bool = True) -> AgentAccount:
        """Seed the platform-side account of an agent."""
        account = AgentAccount(
            agent_id=agent_id,
            current_balance=balance,
            available_balance=balance,
            is_active=is_active,
        )
        self._accounts[agent_id] = account
        return account

    async def place_bet(
        self,
        agent_id: str,
        event_id: str,
        bet_type: str,
        amount: float,
        odds: float,
        selection: str,
    ) -> ExternalBet:
        if not self.available:
            raise CollaboratorError("Fantasy402 platform unavailable")

        bet = ExternalBet(
            external_id=f"f402_{uuid.uuid4().hex[:10]}",
            agent_id=agent_id,
            event_id=event_id,
            bet_type=bet_type,
            amount=amount,
            odds=odds,
            selection=selection,
            status="accepted",
            placed_at=utc_now(),
        )
        self._bets[bet.external_id] = bet
        logger.info(f"🎯 Fantasy402 bet placed: {bet.external_id} ({amount} @ {odds}) for {agent_id}")
        return bet

    async def get_agent_account(self, agent_id: str) -> Optional[AgentAccount]:
        if not self.available:
            raise CollaboratorError("Fantasy402 platform unavailable")
        return self._accounts.get(agent_id)

    def list_bets(self) -> List[ExternalBet]:
        return list(self._bets.values())
