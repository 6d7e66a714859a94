"""
Aggregate Type Enum.

Kinds of aggregates an event can be about.
"""
from enum import Enum


class AggregateType(str, Enum):
    """Aggregate types carried on every internal event."""

    SPORT_EVENT = "SportEvent"
    BET = "Bet"
    AGENT_ACCOUNT = "AgentAccount"
    MESSAGE = "Message"
    CUSTOMER = "Customer"
    AGENT = "Agent"
