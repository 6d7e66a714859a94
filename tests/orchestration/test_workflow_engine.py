"""Tests for EventWorkflowEngine."""

import asyncio
from datetime import timedelta

import pytest

from core.domain.errors import WorkflowNotFoundError
from orchestration.engine import EventWorkflowEngine
from orchestration.workflow import WorkflowDefinition, WorkflowStep

from tests.helpers import EventRecorder


def three_step_workflow(calls: list[str], fail_second: bool = False, guard_second=None) -> WorkflowDefinition:
    async def step_1(payload, context):
        calls.append("step_1")
        context.data["seen"] = payload.get("amount")

    async def step_2(payload, context):
        calls.append("step_2")
        if fail_second:
            raise RuntimeError("collection rejected")

    async def step_3(payload, context):
        calls.append("step_3")
        return {"seen": context.data["seen"]}

    return WorkflowDefinition(
        name="Test Workflow",
        trigger="test.triggered",
        timeout=60,
        retry_attempts=2,
        steps=[
            WorkflowStep(id="step_1", name="Step 1", action=step_1),
            WorkflowStep(id="step_2", name="Step 2", action=step_2, condition=guard_second),
            WorkflowStep(id="step_3", name="Step 3", action=step_3),
        ],
    )


@pytest.mark.asyncio
async def test_workflow_runs_to_completion(event_bus):
    """Test a workflow executes every step in order and completes."""
    calls: list[str] = []
    engine = EventWorkflowEngine(event_bus)
    engine.register_workflow("test_workflow", three_step_workflow(calls))

    workflow_id = await engine.start_workflow("test_workflow", {"amount": 42})

    context = engine.get_workflow_status(workflow_id)
    assert workflow_id.startswith("wf_")
    assert calls == ["step_1", "step_2", "step_3"]
    assert context.completed_steps == ["step_1", "step_2", "step_3"]
    assert context.status == "completed"
    assert context.record_for("step_3").data == {"seen": 42}
    assert context.to_dict()["workflow"] == "test_workflow"


@pytest.mark.asyncio
async def test_false_guard_on_second_step(event_bus):
    """Test a skipped second step is neither completed nor failed and the third still runs."""
    calls: list[str] = []
    engine = EventWorkflowEngine(event_bus)
    engine.register_workflow(
        "test_workflow", three_step_workflow(calls, guard_second=lambda payload: False)
    )

    workflow_id = await engine.start_workflow("test_workflow", {"amount": 1})

    context = engine.get_workflow_status(workflow_id)
    assert "step_2" not in context.completed_steps
    assert "step_2" not in context.failed_steps
    assert "step_3" in context.completed_steps
    assert calls == ["step_1", "step_3"]


@pytest.mark.asyncio
async def test_required_failure_aborts_and_is_recorded(event_bus):
    """Test a failing required step stops the workflow without raising to the caller."""
    calls: list[str] = []
    engine = EventWorkflowEngine(event_bus)
    engine.register_workflow("test_workflow", three_step_workflow(calls, fail_second=True))

    workflow_id = await engine.start_workflow("test_workflow", {"amount": 1})

    context = engine.get_workflow_status(workflow_id)
    assert context.completed_steps == ["step_1"]
    assert context.failed_steps == ["step_2"]
    assert calls == ["step_1", "step_2"]
    assert "collection rejected" in context.error
    assert context.status == "failed"
    assert context.finished_at is not None


@pytest.mark.asyncio
async def test_trigger_event_starts_workflow(event_bus):
    """Test publishing the trigger event runs the registered workflow."""
    calls: list[str] = []
    engine = EventWorkflowEngine(event_bus)
    engine.register_workflow("test_workflow", three_step_workflow(calls))

    await event_bus.emit("test.triggered", {"amount": 7})

    assert calls == ["step_1", "step_2", "step_3"]
    assert len(engine.get_active_workflows()) == 1


@pytest.mark.asyncio
async def test_trigger_workflow_is_manual_alias(event_bus):
    """Test trigger_workflow starts a workflow outside the event path."""
    engine = EventWorkflowEngine(event_bus)
    engine.register_workflow("test_workflow", three_step_workflow([]))

    workflow_id = await engine.trigger_workflow("test_workflow", {"amount": 3})

    assert engine.get_workflow_status(workflow_id).status == "completed"


@pytest.mark.asyncio
async def test_unknown_workflow_raises(event_bus):
    """Test starting an unregistered workflow is an error."""
    engine = EventWorkflowEngine(event_bus)

    with pytest.raises(WorkflowNotFoundError):
        await engine.start_workflow("does_not_exist", {})


def test_duplicate_registration_rejected(event_bus):
    """Test a workflow key can only be registered once."""
    engine = EventWorkflowEngine(event_bus)
    engine.register_workflow("test_workflow", three_step_workflow([]))

    with pytest.raises(ValueError):
        engine.register_workflow("test_workflow", three_step_workflow([]))

    assert engine.get_available_workflows() == ["test_workflow"]
    assert engine.get_workflow_definition("test_workflow").trigger == "test.triggered"


@pytest.mark.asyncio
async def test_step_events_are_published(event_bus):
    """Test each step's bound event is published with the workflow payload."""
    recorder = EventRecorder(event_bus, "approval.manager_review")

    async def noop(payload, context):
        return None

    engine = EventWorkflowEngine(event_bus)
    engine.register_workflow(
        "approval",
        WorkflowDefinition(
            name="Approval",
            trigger="approval.requested",
            steps=[WorkflowStep(id="review", name="Review", action=noop, event="approval.manager_review")],
        ),
    )

    workflow_id = await engine.start_workflow("approval", {"bet_id": "B-1"})

    assert recorder.events[0].payload == {"bet_id": "B-1"}
    assert recorder.events[0].metadata.correlation_id == workflow_id


@pytest.mark.asyncio
async def test_cleanup_zero_removes_instances_with_progress(event_bus):
    """Test cleanup(0) removes every instance with a completed or failed step."""
    engine = EventWorkflowEngine(event_bus)
    engine.register_workflow("ok", three_step_workflow([]))
    engine.register_workflow("bad", WorkflowDefinition(
        name="Bad", trigger="bad.triggered", steps=three_step_workflow([], fail_second=True).steps,
    ))

    await engine.start_workflow("ok", {"amount": 1})
    await engine.start_workflow("bad", {"amount": 1})

    removed = engine.cleanup_completed_workflows(0)

    assert removed == 2
    assert engine.get_active_workflows() == []


@pytest.mark.asyncio
async def test_cleanup_large_age_keeps_recent_instances(event_bus):
    """Test cleanup(10000) keeps instances created seconds ago."""
    engine = EventWorkflowEngine(event_bus)
    engine.register_workflow("ok", three_step_workflow([]))

    workflow_id = await engine.start_workflow("ok", {"amount": 1})

    assert engine.cleanup_completed_workflows(10000) == 0
    assert engine.get_workflow_status(workflow_id) is not None


@pytest.mark.asyncio
async def test_cleanup_respects_age(event_bus):
    """Test instances older than the threshold are purged."""
    engine = EventWorkflowEngine(event_bus)
    engine.register_workflow("ok", three_step_workflow([]))

    workflow_id = await engine.start_workflow("ok", {"amount": 1})
    context = engine.get_workflow_status(workflow_id)
    context.started_at = context.started_at - timedelta(minutes=90)

    assert engine.cleanup_completed_workflows(60) == 1
    assert engine.get_workflow_status(workflow_id) is None


@pytest.mark.asyncio
async def test_stats(event_bus):
    """Test stats count defined, active, completed and failed workflows."""
    engine = EventWorkflowEngine(event_bus)
    engine.register_workflow("ok", three_step_workflow([]))
    engine.register_workflow("bad", WorkflowDefinition(
        name="Bad", trigger="bad.triggered", steps=three_step_workflow([], fail_second=True).steps,
    ))

    await engine.start_workflow("ok", {"amount": 1})
    await engine.start_workflow("ok", {"amount": 2})
    await engine.start_workflow("bad", {"amount": 3})

    stats = engine.get_stats()
    assert stats.total_workflows == 2
    assert stats.active_workflows == 3
    assert stats.completed_workflows == 2
    assert stats.failed_workflows == 1


@pytest.mark.asyncio
async def test_declared_policies_not_enforced_by_default(event_bus):
    """Test timeouts and retries on definitions are configuration only by default."""
    attempts: list[int] = []

    async def slow_and_flaky(payload, context):
        attempts.append(1)
        await asyncio.sleep(0.02)
        raise ConnectionError("transient")

    definition = WorkflowDefinition(
        name="Flaky",
        trigger="flaky.triggered",
        timeout=0.001,
        retry_attempts=3,
        steps=[WorkflowStep(id="flaky", name="Flaky", action=slow_and_flaky)],
    )
    engine = EventWorkflowEngine(event_bus)
    engine.register_workflow("flaky", definition)

    workflow_id = await engine.start_workflow("flaky", {})

    assert len(attempts) == 1
    assert "transient" in engine.get_workflow_status(workflow_id).error


@pytest.mark.asyncio
async def test_enforced_policies_retry_required_steps(event_bus):
    """Test retry_attempts counts retries after the first attempt."""
    attempts: list[int] = []

    async def flaky(payload, context):
        attempts.append(1)
        if len(attempts) < 4:
            raise ConnectionError("transient")

    definition = WorkflowDefinition(
        name="Flaky",
        trigger="flaky.triggered",
        retry_attempts=3,
        steps=[WorkflowStep(id="flaky", name="Flaky", action=flaky)],
    )
    engine = EventWorkflowEngine(event_bus, enforce_step_policies=True, retry_backoff_seconds=0)
    engine.register_workflow("flaky", definition)

    workflow_id = await engine.start_workflow("flaky", {})

    assert len(attempts) == 4
    assert engine.get_workflow_status(workflow_id).status == "completed"


@pytest.mark.asyncio
async def test_enforced_workflow_timeout_is_recorded(event_bus):
    """Test an enforced workflow timeout fails the instance."""

    async def slow(payload, context):
        await asyncio.sleep(0.2)

    definition = WorkflowDefinition(
        name="Slow",
        trigger="slow.triggered",
        timeout=0.01,
        steps=[WorkflowStep(id="slow", name="Slow", action=slow)],
    )
    engine = EventWorkflowEngine(event_bus, enforce_step_policies=True)
    engine.register_workflow("slow", definition)

    workflow_id = await engine.start_workflow("slow", {})

    context = engine.get_workflow_status(workflow_id)
    assert context.status == "failed"
    assert "timed out" in context.error


@pytest.mark.asyncio
@pytest.mark.parametrize("failures,expected_status", [(1, "completed"), (2, "failed")])
async def test_single_retry_gives_one_extra_attempt(event_bus, failures, expected_status):
    """Test retry_attempts=1 allows exactly one retry of a required step."""
    attempts: list[int] = []

    async def flaky(payload, context):
        attempts.append(1)
        if len(attempts) <= failures:
            raise ConnectionError("transient")

    definition = WorkflowDefinition(
        name="Flaky",
        trigger="flaky.triggered",
        retry_attempts=1,
        steps=[WorkflowStep(id="flaky", name="Flaky", action=flaky)],
    )
    engine = EventWorkflowEngine(event_bus, enforce_step_policies=True, retry_backoff_seconds=0)
    engine.register_workflow("flaky", definition)

    workflow_id = await engine.start_workflow("flaky", {})

    context = engine.get_workflow_status(workflow_id)
    assert len(attempts) == 2
    assert context.status == expected_status
    assert context.record_for("flaky").attempts == 2


@pytest.mark.asyncio
async def test_timed_out_step_is_failed_and_counted(event_bus):
    """Test a workflow timeout fails the interrupted step for stats and cleanup."""

    async def fast(payload, context):
        return None

    async def slow(payload, context):
        await asyncio.sleep(0.2)

    engine = EventWorkflowEngine(event_bus, enforce_step_policies=True)
    engine.register_workflow("slow_second", WorkflowDefinition(
        name="Slow Second",
        trigger="slow_second.triggered",
        timeout=0.05,
        steps=[
            WorkflowStep(id="fast", name="Fast", action=fast),
            WorkflowStep(id="slow", name="Slow", action=slow),
        ],
    ))
    engine.register_workflow("slow_first", WorkflowDefinition(
        name="Slow First",
        trigger="slow_first.triggered",
        timeout=0.05,
        steps=[WorkflowStep(id="slow", name="Slow", action=slow)],
    ))

    second_id = await engine.start_workflow("slow_second", {})
    first_id = await engine.start_workflow("slow_first", {})

    second = engine.get_workflow_status(second_id)
    assert second.completed_steps == ["fast"]
    assert second.failed_steps == ["slow"]
    record = second.record_for("slow")
    assert "timed out" in record.error
    assert record.completed_at is not None
    assert engine.get_workflow_status(first_id).failed_steps == ["slow"]

    stats = engine.get_stats()
    assert stats.completed_workflows == 0
    assert stats.failed_workflows == 2

    assert engine.cleanup_completed_workflows(0) == 2
    assert engine.get_active_workflows() == []
