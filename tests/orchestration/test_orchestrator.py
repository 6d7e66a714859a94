"""Tests for DomainOrchestrator business processes."""

from datetime import timedelta
from unittest.mock import AsyncMock

import pytest

from core.domain.errors import (
    BalanceOperationError,
    CollaboratorError,
    HighRiskPaymentError,
    InsufficientBalanceError,
    ProcessFailedError,
    ValidationError,
)
from core.domain.value_objects import BalanceResponse, BalanceSnapshot
from orchestration.orchestrator import DomainOrchestrator

from tests.helpers import EventRecorder


# =============================================================================
# CUSTOMER DEPOSIT
# =============================================================================

@pytest.mark.asyncio
async def test_deposit_success(orchestrator, collections):
    """Test a valid deposit is collected and the delegated steps complete."""
    result = await orchestrator.process_customer_deposit("CUST-1", 100.0, "card")

    assert result.success is True
    assert result.process_name == "customer_deposit"
    assert [s.step_id for s in result.steps] == [
        "validate_payment",
        "process_collection",
        "update_balance",
        "check_bonuses",
        "send_notification",
    ]
    assert all(s.status.value == "completed" for s in result.steps)
    assert result.result.amount == 100.0
    assert result.result.payment_id == f"payment_{result.process_id}"
    assert collections.get_payment(result.result.payment_id) is not None
    assert result.applied_effects == [f"payment_collected:{result.result.payment_id}"]


@pytest.mark.asyncio
async def test_deposit_negative_amount_fails_before_collections(event_bus, balance, gateway):
    """Test amount -10 fails validation without reaching Collections."""
    collections = AsyncMock()
    orchestrator = DomainOrchestrator(event_bus, balance, collections, gateway)

    with pytest.raises(ProcessFailedError) as exc_info:
        await orchestrator.process_customer_deposit("CUST-1", -10, "card")

    result = exc_info.value.result
    assert result.success is False
    assert result.failed_step == "validate_payment"
    assert result.error_code == "VALIDATION_ERROR"
    assert isinstance(exc_info.value.cause, ValidationError)
    collections.process_payment.assert_not_called()


@pytest.mark.asyncio
async def test_deposit_high_risk_payment_propagates_domain_error(orchestrator):
    """Test a Collections rejection surfaces as the typed domain error."""
    with pytest.raises(ProcessFailedError) as exc_info:
        await orchestrator.process_customer_deposit("CUST-1", 25000.0, "wire")

    assert isinstance(exc_info.value.cause, HighRiskPaymentError)
    assert exc_info.value.result.failed_step == "process_collection"
    assert exc_info.value.result.error_code == "HIGH_RISK_PAYMENT"


# =============================================================================
# AGENT BET PLACEMENT
# =============================================================================

@pytest.mark.asyncio
async def test_bet_placement_insufficient_balance_never_reaches_gateway(event_bus, balance, collections):
    """Test balance 500 / stake 1000 fails at balance validation before the gateway."""
    await balance.create_balance("AG-1", "AG-1", initial_balance=500.0)
    gateway = AsyncMock()
    orchestrator = DomainOrchestrator(event_bus, balance, collections, gateway)

    with pytest.raises(ProcessFailedError) as exc_info:
        await orchestrator.process_agent_bet_placement("AG-1", "NFL-1", "moneyline", 1000.0, 1.9, "home")

    result = exc_info.value.result
    assert result.failed_step == "validate_balance"
    assert result.error_code == "INSUFFICIENT_BALANCE"
    assert isinstance(exc_info.value.cause, InsufficientBalanceError)
    assert [s.status.value for s in result.steps] == ["failed", "pending", "pending", "pending", "pending"]
    gateway.place_bet.assert_not_called()
    assert balance.get_account("AG-1").current_balance == 500.0


@pytest.mark.asyncio
async def test_bet_placement_success(orchestrator, event_bus, balance, gateway):
    """Test a funded bet is placed, debited and audited."""
    recorder = EventRecorder(event_bus, "audit.bet_placed")
    await balance.create_balance("AG-1", "AG-1", initial_balance=2000.0)

    result = await orchestrator.process_agent_bet_placement("AG-1", "NFL-1", "moneyline", 500.0, 1.9, "home")

    bet = result.result["bet"]
    assert result.success is True
    assert balance.get_account("AG-1").current_balance == 1500.0
    assert [b.external_id for b in gateway.list_bets()] == [bet.external_id]
    assert recorder.events[0].payload["bet_id"] == bet.external_id
    assert recorder.events[0].metadata.correlation_id == result.process_id
    assert result.applied_effects == [
        f"external_bet_placed:{bet.external_id}",
        "balance_debited:AG-1:500.0",
    ]
    assert result.steps[1].data == {"high_value": False, "threshold": 5000.0}


@pytest.mark.asyncio
async def test_bet_placement_high_value_only_warns(orchestrator, balance):
    """Test stakes above the threshold are flagged but not blocked."""
    await balance.create_balance("AG-1", "AG-1", initial_balance=10000.0)

    result = await orchestrator.process_agent_bet_placement("AG-1", "NFL-1", "spread", 6000.0, 2.0, "away")

    assert result.success is True
    assert result.steps[1].data["high_value"] is True


@pytest.mark.asyncio
async def test_bet_placement_unknown_agent(orchestrator):
    with pytest.raises(ProcessFailedError) as exc_info:
        await orchestrator.process_agent_bet_placement("AG-404", "NFL-1", "moneyline", 10.0, 1.5, "home")

    assert isinstance(exc_info.value.cause, BalanceOperationError)
    assert exc_info.value.result.error_code == "BALANCE_NOT_FOUND"


@pytest.mark.asyncio
async def test_bet_placement_debit_failure_reports_applied_effects(event_bus, collections, gateway):
    """Test a debit failure after the gateway accepted the bet is reported, not compensated."""
    snapshot = BalanceSnapshot(customer_id="AG-1", agent_id="AG-1", current_balance=1000.0)
    balance = AsyncMock()
    balance.get_balance_status.return_value = BalanceResponse.ok(snapshot)
    balance.process_balance_change.return_value = BalanceResponse.fail(
        "Account is frozen: AG-1", "ACCOUNT_FROZEN"
    )
    orchestrator = DomainOrchestrator(event_bus, balance, collections, gateway)

    with pytest.raises(ProcessFailedError) as exc_info:
        await orchestrator.process_agent_bet_placement("AG-1", "NFL-1", "moneyline", 100.0, 1.9, "home")

    result = exc_info.value.result
    assert result.failed_step == "update_internal_balance"
    assert result.error_code == "ACCOUNT_FROZEN"
    assert len(gateway.list_bets()) == 1
    assert result.applied_effects == [f"external_bet_placed:{gateway.list_bets()[0].external_id}"]


@pytest.mark.asyncio
async def test_bet_placement_gateway_unavailable(orchestrator, balance, gateway):
    await balance.create_balance("AG-1", "AG-1", initial_balance=1000.0)
    gateway.available = False

    with pytest.raises(ProcessFailedError) as exc_info:
        await orchestrator.process_agent_bet_placement("AG-1", "NFL-1", "moneyline", 100.0, 1.9, "home")

    assert isinstance(exc_info.value.cause, CollaboratorError)
    assert exc_info.value.result.failed_step == "place_external_bet"
    assert balance.get_account("AG-1").current_balance == 1000.0


# =============================================================================
# CUSTOMER ONBOARDING
# =============================================================================

@pytest.mark.asyncio
async def test_onboarding_without_deposit_skips_deposit_step(orchestrator, event_bus, balance):
    """Test onboarding opens a zero balance and announces completion."""
    recorder = EventRecorder(event_bus, "customer.onboarding_completed")

    result = await orchestrator.process_customer_onboarding(
        "CUST-9", "AG-1", {"email": "new@fire22.test", "name": "New Player"}
    )

    statuses = {s.step_id: s.status.value for s in result.steps}
    assert statuses["process_initial_deposit"] == "skipped"
    assert statuses["setup_notifications"] == "completed"
    assert balance.get_account("CUST-9").current_balance == 0.0
    assert recorder.events[0].payload["customer_id"] == "CUST-9"
    assert result.applied_effects == ["balance_account_created:CUST-9"]


@pytest.mark.asyncio
async def test_onboarding_with_initial_deposit_runs_deposit_process(orchestrator, collections):
    result = await orchestrator.process_customer_onboarding(
        "CUST-9", "AG-1", {"email": "new@fire22.test", "name": "New Player"}, initial_deposit=75.0
    )

    deposit = result.steps[2].data
    assert deposit.process_name == "customer_deposit"
    assert deposit.result.payment_method == "initial_deposit"
    assert len(collections.list_payments()) == 1
    assert orchestrator.get_process_status(deposit.process_id) is not None


@pytest.mark.asyncio
async def test_onboarding_invalid_email(orchestrator, balance):
    with pytest.raises(ProcessFailedError) as exc_info:
        await orchestrator.process_customer_onboarding("CUST-9", "AG-1", {"email": "nope", "name": "X"})

    assert exc_info.value.result.failed_step == "validate_customer_data"
    assert balance.get_account("CUST-9") is None


@pytest.mark.asyncio
async def test_onboarding_existing_account_fails(orchestrator, balance):
    await balance.create_balance("CUST-9", "AG-1")

    with pytest.raises(ProcessFailedError) as exc_info:
        await orchestrator.process_customer_onboarding(
            "CUST-9", "AG-1", {"email": "new@fire22.test", "name": "New Player"}
        )

    assert exc_info.value.result.error_code == "BALANCE_EXISTS"


# =============================================================================
# QUERIES
# =============================================================================

@pytest.mark.asyncio
async def test_processes_remain_queryable_until_cleaned(orchestrator):
    """Test both successful and failed processes are kept and cleaned by age."""
    ok = await orchestrator.process_customer_deposit("CUST-1", 50.0, "card")
    with pytest.raises(ProcessFailedError) as exc_info:
        await orchestrator.process_customer_deposit("CUST-1", 0, "card")
    failed = exc_info.value.result

    assert orchestrator.get_process_status(ok.process_id) is ok
    assert orchestrator.get_process_status(failed.process_id) is failed

    stats = orchestrator.get_stats()
    assert stats.active_processes == 2
    assert stats.completed_processes == 1
    assert stats.failed_processes == 1

    assert orchestrator.cleanup_completed_processes(older_than_hours=24) == 0
    ok.completed_at = ok.completed_at - timedelta(hours=25)
    assert orchestrator.cleanup_completed_processes(older_than_hours=24) == 1
    assert orchestrator.get_process_status(ok.process_id) is None
    assert [p.process_id for p in orchestrator.get_active_processes()] == [failed.process_id]


@pytest.mark.asyncio
async def test_result_serializes(orchestrator):
    result = await orchestrator.process_customer_deposit("CUST-1", 50.0, "card")

    data = result.to_dict()
    assert data["success"] is True
    assert data["result"]["payment_id"] == result.result.payment_id
    assert data["steps"][0]["status"] == "completed"
