"""Fantasy402 external event mappings.

Fantasy402 publishes camelCase payloads nested under the entity name
(``{"bet": {"id": ..., "agentId": ...}}``); older feeds put the same
fields at the top level, so every lookup tries both.
"""

from datetime import datetime

from core.domain.enums import AggregateType

from ..events import Event, ExternalEvent
from .payload import safe_first, safe_float, safe_get, safe_str


def _iso(value: object) -> str:
    return value.isoformat() if isinstance(value, datetime) else str(value or "")


def _first_str(payload: dict, paths: list[str], default: str = "") -> str:
    value = safe_first(payload, paths, default)
    return default if isinstance(value, (dict, list)) else str(value)


def map_sport_event_started(event: ExternalEvent) -> list[Event]:
    payload = event.payload
    external_id = _first_str(payload, ["event.id", "eventId", "id"])
    return [
        Event(
            event_type="external.sport_event.live",
            aggregate_id=external_id,
            aggregate_type=AggregateType.SPORT_EVENT,
            payload={
                "external_id": external_id,
                "sport": _first_str(payload, ["event.sport", "sport"], "unknown"),
                "league": _first_str(payload, ["event.league", "league"]),
                "home_team": _first_str(payload, ["event.homeTeam", "homeTeam"]),
                "away_team": _first_str(payload, ["event.awayTeam", "awayTeam"]),
                "start_time": _first_str(
                    payload, ["event.startTime", "startTime"], _iso(event.timestamp)
                ),
                "status": "live",
            },
        )
    ]


def map_bet_placed(event: ExternalEvent) -> list[Event]:
    payload = event.payload
    external_id = _first_str(payload, ["bet.id", "betId"])
    return [
        Event(
            event_type="external.bet.received",
            aggregate_id=external_id,
            aggregate_type=AggregateType.BET,
            payload={
                "external_id": external_id,
                "agent_id": _first_str(payload, ["bet.agentId", "agentId"]),
                "customer_id": _first_str(payload, ["bet.customerId", "customerId"]) or None,
                "event_id": _first_str(payload, ["bet.eventId", "eventId"]),
                "bet_type": _first_str(payload, ["bet.betType", "betType"], "straight"),
                "amount": safe_float(payload, "bet.amount", safe_float(payload, "amount")),
                "odds": safe_float(payload, "bet.odds", safe_float(payload, "odds")),
                "selection": _first_str(payload, ["bet.selection", "selection"]),
            },
        )
    ]


def map_bet_settled(event: ExternalEvent) -> list[Event]:
    payload = event.payload
    external_id = _first_str(payload, ["bet.id", "betId"])
    return [
        Event(
            event_type="external.bet.settled",
            aggregate_id=external_id,
            aggregate_type=AggregateType.BET,
            payload={
                "external_id": external_id,
                "agent_id": _first_str(payload, ["bet.agentId", "agentId"]),
                "result": _first_str(payload, ["bet.result", "result"], "unknown").lower(),
                "payout": safe_float(payload, "bet.payout", safe_float(payload, "payout")),
                "settled_at": _first_str(
                    payload, ["bet.settledAt", "settledAt"], _iso(event.timestamp)
                ),
            },
        )
    ]


def map_agent_balance_changed(event: ExternalEvent) -> list[Event]:
    payload = event.payload
    agent_id = _first_str(payload, ["agent.id", "agentId"])
    previous = safe_get(payload, "agent.previousBalance", safe_get(payload, "previousBalance"))
    return [
        Event(
            event_type="external.agent.balance_updated",
            aggregate_id=agent_id,
            aggregate_type=AggregateType.AGENT_ACCOUNT,
            payload={
                "agent_id": agent_id,
                "new_balance": safe_float(
                    payload, "agent.newBalance", safe_float(payload, "newBalance")
                ),
                "previous_balance": float(previous) if isinstance(previous, (int, float)) else None,
                "reason": safe_str(payload, "reason", "external_update"),
            },
        )
    ]


MAPPINGS = {
    "fantasy402.sport_event.started": map_sport_event_started,
    "fantasy402.bet.placed": map_bet_placed,
    "fantasy402.bet.settled": map_bet_settled,
    "fantasy402.agent.balance_changed": map_agent_balance_changed,
}
