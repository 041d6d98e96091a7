"""Tests for the optimistic mutation coordinator."""

import threading

import pytest

from moovey.errors import MooveyNetworkError, MooveyRejectedError
from moovey.dashboard.optimistic import MutationState, OptimisticCoordinator


class Counter:
    """Tiny piece of local state to mutate."""

    def __init__(self):
        self.value = 0


def test_commit_keeps_local_change_and_invalidates(coordinator, cache):
    state = Counter()
    cache.set("tasks", ["stale"])

    def mutate():
        state.value += 1

    def revert():
        state.value -= 1

    result = coordinator.execute("k", mutate, lambda: {"success": True}, revert, invalidate_keys=("tasks",))

    assert result.state == MutationState.COMMITTED
    assert result.response == {"success": True}
    assert state.value == 1
    assert cache.get("tasks") is None


def test_local_change_is_visible_before_response(coordinator):
    state = Counter()
    seen = []

    def mutate():
        state.value = 5

    def call():
        seen.append(state.value)
        return {}

    coordinator.execute("k", mutate, call, lambda: None)
    assert seen == [5]


def test_network_failure_rolls_back(coordinator, notifier, cache):
    state = Counter()
    cache.set("tasks", ["kept"])

    def mutate():
        state.value = 1

    def call():
        raise MooveyNetworkError("timed out")

    def revert():
        state.value = 0

    result = coordinator.execute(
        "k", mutate, call, revert, invalidate_keys=("tasks",), error_message="Failed to update task status"
    )

    assert result.state == MutationState.ROLLED_BACK
    assert result.failure_kind == "network"
    assert state.value == 0
    assert cache.get("tasks") == ["kept"]
    assert notifier.last.level == "error"
    assert notifier.last.message == "Failed to update task status"


def test_rejection_is_reported_as_rejected(coordinator, caplog):
    def call():
        raise MooveyRejectedError("Task not found", status_code=404)

    result = coordinator.execute("k", lambda: None, call, lambda: None, description="Toggle task")

    assert result.rolled_back
    assert result.failure_kind == "rejected"
    assert result.error == "Task not found"
    assert "rejected failure, HTTP 404" in caplog.text


def test_cancelled_mutation_sends_nothing(coordinator):
    calls = []
    result = coordinator.execute("k", lambda: False, lambda: calls.append(1), lambda: None)
    assert result is None
    assert calls == []


def test_success_message(coordinator, notifier):
    coordinator.execute("k", lambda: None, lambda: {}, lambda: None, success_message="Saved")
    assert notifier.last.level == "success"
    assert notifier.last.message == "Saved"


def test_other_exceptions_revert_then_propagate(coordinator):
    state = Counter()

    def mutate():
        state.value = 1

    def call():
        raise AttributeError("'list' object has no attribute 'get'")

    def revert():
        state.value = 0

    with pytest.raises(AttributeError):
        coordinator.execute("k", mutate, call, revert)
    assert state.value == 0


def test_key_bookkeeping_is_dropped_when_idle(coordinator):
    def fail():
        raise MooveyNetworkError("down")

    for index in range(20):
        coordinator.execute(f"task-{index}", lambda: None, lambda: {}, lambda: None)
    coordinator.execute("task-x", lambda: None, fail, lambda: None)

    assert coordinator._key_locks == {}
    assert coordinator._versions == {}
    assert coordinator._committed_versions == {}


def test_stale_rollback_is_discarded(coordinator):
    """A rollback never overwrites a change that a newer mutation already committed."""
    state = {"value": "original"}
    key = "task-1"

    def older_call():
        # Simulate a newer mutation for the same key committing first
        coordinator._mark_committed(key, 99)
        raise MooveyNetworkError("late failure")

    def mutate():
        state["value"] = "older"

    def revert():
        state["value"] = "original"

    result = coordinator.execute(key, mutate, older_call, revert)

    assert result.rolled_back
    assert state["value"] == "older"


def test_same_key_mutations_are_serialized(coordinator):
    order = []
    first_started = threading.Event()
    release_first = threading.Event()

    def slow_call():
        first_started.set()
        release_first.wait(timeout=5)
        order.append("first-done")
        return {}

    def second_mutate():
        order.append("second-mutate")

    first = threading.Thread(target=coordinator.execute, args=("k", lambda: None, slow_call, lambda: None))
    first.start()
    first_started.wait(timeout=5)

    second = threading.Thread(target=coordinator.execute, args=("k", second_mutate, lambda: {}, lambda: None))
    second.start()
    second.join(timeout=0.2)
    release_first.set()
    first.join(timeout=5)
    second.join(timeout=5)

    assert order == ["first-done", "second-mutate"]


def test_execute_confirmed_applies_only_after_success(coordinator):
    applied = []

    result = coordinator.execute_confirmed("create", lambda: {"id": "srv-1"}, applied.append)

    assert result.committed
    assert applied == [{"id": "srv-1"}]


def test_execute_confirmed_failure_applies_nothing(coordinator, notifier):
    applied = []

    def call():
        raise MooveyNetworkError("down")

    result = coordinator.execute_confirmed("create", call, applied.append, error_message="Failed to add custom task")

    assert result.rolled_back
    assert applied == []
    assert notifier.last.message == "Failed to add custom task"


def test_coordinator_without_cache():
    coordinator = OptimisticCoordinator()
    result = coordinator.execute("k", lambda: None, lambda: {}, lambda: None, invalidate_keys=("tasks",))
    assert result.committed
