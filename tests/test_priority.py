"""Tests for the dashboard priority task list."""

import pytest

from moovey.errors import MooveyNetworkError, MooveyRejectedError
from moovey.models.constants import PRIORITY_TASKS_CACHE_KEY, TASKS_CACHE_KEY
from moovey.dashboard.priority import PriorityTaskList


USER_TASKS = {
    "user_tasks": [
        {"id": 41, "title": "Get quotes", "category": "Pre-Move", "status": "pending"},
        {"id": 42, "title": "Book removal company", "category": "Pre-Move", "status": "pending"},
        {"id": 43, "title": "Update address", "category": "Post-Move", "status": "completed"},
    ]
}


@pytest.fixture
def loaded_list(priority_list, api):
    api.fetch_tasks.return_value = USER_TASKS
    api.fetch_priority_tasks.return_value = [{"id": 41, "title": "Get quotes", "category": "Pre-Move"}]
    priority_list.load_available_tasks()
    priority_list.load()
    return priority_list


class TestLoad:
    def test_load(self, loaded_list):
        assert loaded_list.ids() == ["41"]
        assert [t.id for t in loaded_list.available_tasks] == ["41", "42", "43"]
        assert loaded_list.tasks[0].due_label == "From Academy"

    def test_load_dedupes_server_list(self, priority_list, api):
        api.fetch_priority_tasks.return_value = [{"id": 1, "title": "A"}, {"id": "1", "title": "A again"}]
        priority_list.load()
        assert priority_list.ids() == ["1"]

    def test_load_failure_keeps_list(self, loaded_list, api, cache):
        cache.invalidate(PRIORITY_TASKS_CACHE_KEY)
        api.fetch_priority_tasks.side_effect = MooveyNetworkError("down")
        loaded_list.load()
        assert loaded_list.ids() == ["41"]

    def test_tasks_by_category(self, loaded_list):
        grouped = loaded_list.tasks_by_category()
        assert [t.id for t in grouped["Pre-Move"]] == ["41", "42"]
        assert [t.id for t in grouped["Post-Move"]] == ["43"]
        assert grouped["In-Move"] == []


class TestAddRemove:
    def test_add(self, loaded_list, api):
        result = loaded_list.add(loaded_list.find_available("42"))
        assert result.committed
        assert loaded_list.ids() == ["41", "42"]
        api.add_priority_task.assert_called_once_with("42")

    def test_add_is_idempotent(self, loaded_list, api):
        assert loaded_list.add(loaded_list.find_available("41")) is None
        assert loaded_list.ids() == ["41"]
        api.add_priority_task.assert_not_called()

    def test_add_network_failure_rolls_back(self, loaded_list, api, notifier):
        api.add_priority_task.side_effect = MooveyNetworkError("timeout")
        result = loaded_list.add(loaded_list.find_available("42"))

        assert result.rolled_back
        assert result.failure_kind == "network"
        assert loaded_list.ids() == ["41"]
        assert notifier.last.level == "error"

    def test_add_invalidates_cache_on_success(self, loaded_list, cache):
        assert cache.has(PRIORITY_TASKS_CACHE_KEY)
        loaded_list.add(loaded_list.find_available("42"))
        assert not cache.has(PRIORITY_TASKS_CACHE_KEY)

    def test_full_list_refuses_add(self, api, cache, coordinator, notifier, make_task):
        capped = PriorityTaskList(api, cache, coordinator, notifier, max_size=1)
        capped.add(make_task(id="1"))
        assert capped.add(make_task(id="2")) is None
        assert capped.ids() == ["1"]
        assert notifier.last.level == "warning"

    def test_remove(self, loaded_list, api):
        assert loaded_list.remove("41").committed
        assert loaded_list.ids() == []
        api.remove_priority_task.assert_called_once_with("41")

    def test_failed_remove_restores_position(self, loaded_list, api, make_task):
        loaded_list.add(make_task(id="50"))
        loaded_list.add(make_task(id="51"))
        api.remove_priority_task.side_effect = MooveyRejectedError("nope", status_code=500)

        result = loaded_list.remove("50")

        assert result.rolled_back
        assert loaded_list.ids() == ["41", "50", "51"]

    def test_remove_unknown_is_noop(self, loaded_list, api):
        assert loaded_list.remove("999") is None
        api.remove_priority_task.assert_not_called()


class TestComplete:
    def test_complete(self, loaded_list, api, notifier):
        result = loaded_list.complete("41")

        assert result.committed
        assert loaded_list.ids() == []
        assert loaded_list.find_available("41").completed is True
        api.complete_task.assert_called_once_with("41")
        api.remove_priority_task.assert_called_once_with("41")
        assert notifier.last.level == "success"

    def test_declined_confirmation_changes_nothing(self, loaded_list, api):
        assert loaded_list.complete("41", confirm=lambda prompt: False) is None
        assert loaded_list.ids() == ["41"]
        api.complete_task.assert_not_called()

    def test_default_confirmation_refuses(self, api, cache, coordinator, notifier, make_task):
        plain = PriorityTaskList(api, cache, coordinator, notifier)
        plain.add(make_task(id="1"))
        assert plain.complete("1") is None
        api.complete_task.assert_not_called()

    def test_failed_complete_keeps_task(self, loaded_list, api, notifier):
        api.complete_task.side_effect = MooveyRejectedError("Task not found", status_code=404)
        result = loaded_list.complete("41")

        assert result.rolled_back
        assert loaded_list.ids() == ["41"]
        assert loaded_list.find_available("41").completed is False
        assert notifier.last.message == "Failed to complete the task. Please try again."

    def test_unpin_failure_after_complete_is_only_logged(self, loaded_list, api, caplog):
        api.remove_priority_task.side_effect = MooveyNetworkError("down")
        result = loaded_list.complete("41")
        assert result.committed
        assert loaded_list.ids() == []
        assert "could not unpin" in caplog.text

    def test_complete_invalidates_both_caches(self, loaded_list, cache):
        loaded_list.complete("41")
        assert not cache.has(PRIORITY_TASKS_CACHE_KEY)
        assert not cache.has(TASKS_CACHE_KEY)

    def test_complete_unknown_task(self, loaded_list, api):
        assert loaded_list.complete("42") is None
        api.complete_task.assert_not_called()


class TestDropAndSelection:
    def test_drop_adds_known_task(self, loaded_list):
        assert loaded_list.drop("42").committed
        assert loaded_list.ids() == ["41", "42"]

    def test_drop_unknown_id_is_ignored(self, loaded_list, api):
        assert loaded_list.drop("nope") is None
        api.add_priority_task.assert_not_called()

    def test_drop_already_pinned_is_ignored(self, loaded_list, api):
        assert loaded_list.drop(41) is None
        api.add_priority_task.assert_not_called()

    def test_toggle_selection(self, loaded_list):
        assert loaded_list.toggle_selection("42") is True
        assert loaded_list.toggle_selection("42") is False
        assert loaded_list.selected == set()

    def test_add_selected(self, loaded_list, api):
        loaded_list.toggle_selection("41")
        loaded_list.toggle_selection("42")
        loaded_list.toggle_selection("43")

        results = loaded_list.add_selected()

        assert len(results) == 2
        assert loaded_list.ids() == ["41", "42", "43"]
        assert loaded_list.selected == set()
        assert api.add_priority_task.call_count == 2


class TestCompleteTask:
    """Completing a task straight from the task list."""

    def test_complete_unpinned_task(self, loaded_list, api, cache):
        result = loaded_list.complete_task("42")

        assert result.committed
        assert loaded_list.find_available("42").completed is True
        assert loaded_list.ids() == ["41"]
        api.complete_task.assert_called_once_with("42")
        api.remove_priority_task.assert_not_called()
        assert not cache.has(TASKS_CACHE_KEY)

    def test_complete_pinned_task_also_unpins(self, loaded_list, api):
        assert loaded_list.complete_task("41").committed
        assert loaded_list.ids() == []
        api.remove_priority_task.assert_called_once_with("41")

    def test_failed_complete_task_changes_nothing(self, loaded_list, api, cache, notifier):
        api.complete_task.side_effect = MooveyNetworkError("down")

        result = loaded_list.complete_task("42")

        assert result.rolled_back
        assert loaded_list.find_available("42").completed is False
        assert cache.has(TASKS_CACHE_KEY)
        assert notifier.last.message == "Failed to complete task. Please try again."

    def test_unknown_or_done_task_is_ignored(self, loaded_list, api):
        assert loaded_list.complete_task("999") is None
        assert loaded_list.complete_task("43") is None
        api.complete_task.assert_not_called()


class TestCompletionCallback:
    def test_callback_runs_after_server_confirms(self, api, cache, coordinator, notifier, make_task):
        completed = []
        task_list = PriorityTaskList(
            api, cache, coordinator, notifier, confirm=lambda prompt: True, on_task_completed=completed.append
        )
        task_list.available_tasks = [make_task(id="1"), make_task(id="2")]
        task_list.add(make_task(id="1"))

        task_list.complete("1")
        task_list.complete_task("2")

        assert completed == ["1", "2"]

    def test_callback_not_run_on_failure(self, api, cache, coordinator, notifier, make_task):
        completed = []
        task_list = PriorityTaskList(api, cache, coordinator, notifier, on_task_completed=completed.append)
        task_list.available_tasks = [make_task(id="1")]
        api.complete_task.side_effect = MooveyRejectedError("nope")

        task_list.complete_task("1")

        assert completed == []
