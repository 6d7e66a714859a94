"""HTTP API tests against a freshly wired container."""

import asyncio

from fastapi.testclient import TestClient
import pytest

from api.dependencies import reset_dependencies, set_container
from api.main import app
from orchestration.composition import build_container


@pytest.fixture
def api_container(test_settings):
    container = build_container(test_settings)
    set_container(container)
    yield container
    reset_dependencies()


@pytest.fixture
def client(api_container):
    with TestClient(app) as test_client:
        yield test_client


def _telegram_event(event_id="tg-1", **overrides):
    event = {
        "eventType": "telegram.webhook.message",
        "eventId": event_id,
        "source": "telegram",
        "timestamp": "2025-01-15T10:30:00Z",
        "payload": {
            "update_id": 1001,
            "message": {
                "message_id": 7,
                "chat": {"id": 55},
                "from": {"id": 9, "username": "ops"},
                "text": "/status",
            },
        },
    }
    event.update(overrides)
    return event


# =============================================================================
# HEALTH / ROOT
# =============================================================================


def test_root(client):
    response = client.get("/")

    assert response.status_code == 200
    assert response.json()["health"] == "/health"


def test_health(client):
    response = client.get("/health")

    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "healthy"
    assert body["service"] == "fire22-backoffice"
    assert body["handlers"]["registered_handlers"] == 20
    assert "X-Process-Time" in response.headers


# =============================================================================
# EXTERNAL EVENTS
# =============================================================================


def test_ingest_external_event(client):
    response = client.post("/api/v1/external-events", json=_telegram_event())

    assert response.status_code == 202
    body = response.json()
    assert body["mapped"] is True
    assert body["published"] == 1
    [event] = body["events"]
    assert event["event_type"] == "external.telegram.message_received"
    assert event["aggregate_id"] == "55:7"
    assert event["metadata"]["external_event_id"] == "tg-1"
    assert event["metadata"]["idempotency_key"] == event["metadata"]["event_id"]


def test_ingest_same_event_twice_yields_same_idempotency_key(client):
    first = client.post("/api/v1/external-events", json=_telegram_event()).json()
    second = client.post("/api/v1/external-events", json=_telegram_event()).json()

    assert (
        first["events"][0]["metadata"]["idempotency_key"]
        == second["events"][0]["metadata"]["idempotency_key"]
    )


def test_ingest_unmapped_event(client):
    response = client.post(
        "/api/v1/external-events", json=_telegram_event(eventType="fantasy402.unknown.thing")
    )

    assert response.status_code == 202
    assert response.json()["mapped"] is False
    assert response.json()["published"] == 0


def test_ingest_invalid_event_returns_400(client):
    response = client.post(
        "/api/v1/external-events", json=_telegram_event(eventId="", timestamp="yesterday")
    )

    assert response.status_code == 400
    body = response.json()
    assert body["code"] == "VALIDATION_ERROR"
    assert "event_id must be a non-empty string" in body["error"]
    assert "timestamp must be a valid date/time" in body["error"]


def test_ingest_event_whose_subscriber_fails_returns_500(client):
    """A bet for an agent without a balance fails in its handler."""
    response = client.post(
        "/api/v1/external-events",
        json={
            "event_type": "fantasy402.bet.placed",
            "event_id": "f402-evt-9",
            "source": "fantasy402",
            "timestamp": "2025-01-15T10:30:00Z",
            "payload": {"bet": {"id": "B-9", "agentId": "AG-404", "amount": 50, "odds": 2.0}},
        },
    )

    assert response.status_code == 500
    assert response.json()["code"] == "PUBLICATION_FAILED"


def test_ingest_malformed_upstream_payload_returns_422(client, api_container):
    def broken_mapping(event):
        return [event.payload["bet"]["id"]]

    api_container.mapper.register_mapping("fantasy402.bet.voided", broken_mapping)

    response = client.post(
        "/api/v1/external-events",
        json=_telegram_event(
            "f402-evt-10", eventType="fantasy402.bet.voided", source="fantasy402", payload={}
        ),
    )

    assert response.status_code == 422
    body = response.json()
    assert body["code"] == "MAPPING_FAILED"
    assert body["external_type"] == "fantasy402.bet.voided"
    assert body["event_id"] == "f402-evt-10"


def test_batch_reports_failures_without_raising(client):
    response = client.post(
        "/api/v1/external-events/batch",
        json={
            "events": [
                _telegram_event("tg-1"),
                _telegram_event("tg-2", source=""),
                _telegram_event("tg-3"),
            ],
            "preserve_order": False,
        },
    )

    assert response.status_code == 200
    body = response.json()
    assert body["processed"] == 2
    assert body["failed"] == 1
    assert body["errors"][0]["event_id"] == "tg-2"


def test_validate_endpoint(client):
    ok = client.post("/api/v1/external-events/validate", json=_telegram_event()).json()
    bad = client.post("/api/v1/external-events/validate", json={"payload": []}).json()

    assert ok == {"valid": True, "errors": []}
    assert bad["valid"] is False
    assert "payload must be an object" in bad["errors"]


# =============================================================================
# PROCESSES
# =============================================================================


def test_deposit_process(client, api_container):
    response = client.post(
        "/api/v1/processes/deposits",
        json={"customer_id": "CUST-1", "amount": 40.0, "payment_method": "card"},
    )

    assert response.status_code == 201
    body = response.json()
    assert body["success"] is True
    assert body["result"]["status"] == "completed"
    assert [s["status"] for s in body["steps"]] == ["completed"] * 5

    process = client.get(f"/api/v1/processes/{body['process_id']}")
    assert process.status_code == 200
    assert process.json()["process_name"] == "customer_deposit"


def test_failed_process_returns_422_with_result(client):
    response = client.post(
        "/api/v1/processes/deposits",
        json={"customer_id": "CUST-1", "amount": -10.0, "payment_method": "card"},
    )

    assert response.status_code == 422
    body = response.json()
    assert body["success"] is False
    assert body["failed_step"] == "validate_payment"
    assert body["error_code"] == "VALIDATION_ERROR"
    assert body["applied_effects"] == []


def test_bet_placement_process(client, api_container):
    asyncio.run(api_container.balance.create_balance("AG-1", "AG-1", initial_balance=1000.0))

    response = client.post(
        "/api/v1/processes/bets",
        json={
            "agent_id": "AG-1",
            "event_id": "NFL-1",
            "bet_type": "moneyline",
            "amount": 200.0,
            "odds": 1.8,
            "selection": "home",
        },
    )

    assert response.status_code == 201
    body = response.json()
    assert body["result"]["bet"]["status"] == "accepted"
    assert body["result"]["balance_update"]["balance"]["current_balance"] == 800.0


def test_bet_placement_insufficient_balance(client):
    response = client.post(
        "/api/v1/processes/bets",
        json={
            "agent_id": "AG-404",
            "event_id": "NFL-1",
            "bet_type": "moneyline",
            "amount": 200.0,
            "odds": 1.8,
            "selection": "home",
        },
    )

    assert response.status_code == 422
    assert response.json()["error_code"] == "BALANCE_NOT_FOUND"


def test_onboarding_process(client, api_container):
    response = client.post(
        "/api/v1/processes/onboarding",
        json={
            "customer_id": "CUST-2",
            "agent_id": "AG-1",
            "customer_data": {"email": "bo@example.com", "name": "Bo"},
            "initial_deposit": 100.0,
        },
    )

    assert response.status_code == 201
    assert api_container.balance.get_account("CUST-2").current_balance == 105.0


def test_process_listing_stats_and_cleanup(client):
    client.post("/api/v1/processes/deposits", json={"customer_id": "CUST-1", "amount": 10.0})
    client.post("/api/v1/processes/deposits", json={"customer_id": "CUST-1", "amount": 0})

    assert len(client.get("/api/v1/processes").json()) == 2
    stats = client.get("/api/v1/processes/stats").json()
    assert stats["completed_processes"] == 1
    assert stats["failed_processes"] == 1

    assert client.post("/api/v1/processes/cleanup").json() == {"removed": 0}


def test_unknown_process_returns_404(client):
    assert client.get("/api/v1/processes/deposit_missing").status_code == 404


def test_request_schema_errors_use_fastapi_validation(client):
    response = client.post("/api/v1/processes/deposits", json={"amount": 10.0})

    assert response.status_code == 422
    assert "detail" in response.json()


# =============================================================================
# WORKFLOWS
# =============================================================================


def test_list_workflows(client):
    body = client.get("/api/v1/workflows").json()

    keys = {w["key"]: w for w in body["workflows"]}
    assert set(keys) == {"customer_deposit", "high_value_bet_approval", "balance_sync", "bonus_award"}
    assert keys["customer_deposit"]["trigger"] == "deposit.initiated"
    assert keys["balance_sync"]["timeout"] == 180
    assert body["stats"]["total_workflows"] == 4


def test_trigger_workflow_and_lookup_instance(client):
    response = client.post(
        "/api/v1/workflows/high_value_bet_approval/trigger",
        json={"payload": {"bet_id": "B-1", "agent_id": "AG-1", "amount": 7000.0}},
    )

    assert response.status_code == 202
    instance = response.json()
    assert instance["status"] == "completed"
    assert instance["completed_steps"] == ["risk_assessment", "manager_approval"]

    lookup = client.get(f"/api/v1/workflows/instances/{instance['workflow_id']}")
    assert lookup.json()["workflow"] == "high_value_bet_approval"
    assert client.post("/api/v1/workflows/cleanup").json() == {"removed": 0}


def test_trigger_unknown_workflow_returns_404(client):
    response = client.post("/api/v1/workflows/nope/trigger", json={"payload": {}})

    assert response.status_code == 404
    assert response.json()["code"] == "WORKFLOW_NOT_FOUND"


def test_unknown_workflow_instance_returns_404(client):
    assert client.get("/api/v1/workflows/instances/missing").status_code == 404
