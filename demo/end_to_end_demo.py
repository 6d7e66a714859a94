"""
End-to-End Demo: Fire22 Back Office Orchestration

This demonstrates the complete flow on in-memory collaborators:
1. Onboard a customer with an initial deposit (bonus awarded by workflow)
2. Place an agent bet through Fantasy402
3. Feed an external balance change through the anti-corruption mapper
4. Trigger the high-value bet approval workflow manually

No network or database needed.
"""
import asyncio
import json
import logging

# Setup logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

from core.domain.errors import ProcessFailedError
from core.settings import AppSettings, OrchestrationSettings, TelegramSettings
from fire22_sdk.utils.datetime import utc_now
from orchestration.composition import build_container
from orchestration.events import ExternalEvent


async def main():
    print("\n" + "="*80)
    print("DEMO: Fire22 Back Office Orchestration")
    print("="*80 + "\n")

    # =========================================================================
    # SETUP
    # =========================================================================
    container = build_container(
        AppSettings(
            orchestration=OrchestrationSettings(environment="development"),
            telegram=TelegramSettings(enabled=False),
        )
    )
    container.gateway.set_agent_account("AG-7", 1500.0)
    await container.balance.create_balance("AG-7", "AG-7", initial_balance=1000.0)
    print("✅ Container wired\n")

    # =========================================================================
    # 1. ONBOARDING
    # =========================================================================
    print("👤 Onboarding CUST-1 with a 100.00 deposit...")
    onboarding = await container.orchestrator.process_customer_onboarding(
        customer_id="CUST-1",
        agent_id="AG-7",
        customer_data={"email": "ann@example.com", "name": "Ann", "phone": "+1 555 0100"},
        initial_deposit=100.0,
    )
    account = container.balance.get_account("CUST-1")
    print(f"   Process {onboarding.process_id}: success={onboarding.success}")
    print(f"   Balance after deposit and bonus: {account.current_balance:.2f}\n")

    # =========================================================================
    # 2. BET PLACEMENT
    # =========================================================================
    print("🎯 Placing a 250.00 bet for AG-7...")
    bet = await container.orchestrator.process_agent_bet_placement(
        agent_id="AG-7",
        event_id="NFL-2025-W1-CHI-GB",
        bet_type="moneyline",
        amount=250.0,
        odds=1.9,
        selection="home",
    )
    print(f"   Applied effects: {bet.applied_effects}\n")

    print("🎯 Placing a bet larger than the agent balance...")
    try:
        await container.orchestrator.process_agent_bet_placement(
            agent_id="AG-7",
            event_id="NFL-2025-W1-CHI-GB",
            bet_type="moneyline",
            amount=10000.0,
            odds=1.9,
            selection="away",
        )
    except ProcessFailedError as exc:
        print(f"   ❌ {exc.result.failed_step}: {exc.result.error} ({exc.result.error_code})\n")

    # =========================================================================
    # 3. EXTERNAL EVENT
    # =========================================================================
    print("🔄 Fantasy402 reports a new balance for AG-7...")
    events = await container.mapper.process_external_event(
        ExternalEvent(
            event_type="fantasy402.agent.balance_changed",
            event_id="f402-evt-000001",
            source="fantasy402",
            timestamp=utc_now(),
            payload={"agent": {"id": "AG-7", "newBalance": 1500.0}},
        )
    )
    for event in events:
        print(f"   → {event.event_type} (idempotency_key={event.metadata.idempotency_key})")
    print(f"   Internal balance now: {container.balance.get_account('AG-7').current_balance:.2f}\n")

    # =========================================================================
    # 4. MANUAL WORKFLOW
    # =========================================================================
    print("⚖️ Triggering high-value bet approval...")
    workflow_id = await container.engine.trigger_workflow(
        "high_value_bet_approval",
        {"bet_id": "B-1", "agent_id": "AG-7", "amount": 7500.0},
    )
    context = container.engine.get_workflow_status(workflow_id)
    print(f"   {workflow_id}: {context.status}, approved={context.data.get('approved')}\n")

    # =========================================================================
    # SUMMARY
    # =========================================================================
    print("📊 Summary")
    print(json.dumps(
        {
            "processes": container.orchestrator.get_stats().to_dict(),
            "workflows": container.engine.get_stats().to_dict(),
            "handlers": container.handlers.get_handler_stats().to_dict(),
            "notifications": len(container.notifications.get_notifications()),
        },
        indent=2,
    ))


if __name__ == "__main__":
    asyncio.run(main())
