"""Pytest fixtures and configuration for Moovey tests."""

import pytest
from unittest.mock import MagicMock

from moovey.cache import TTLCache
from moovey.config import ClientSettings
from moovey.integrations.moovey_api import MooveyClient
from moovey.models.task import Task, TaskSource
from moovey.dashboard.notifier import Notifier
from moovey.dashboard.optimistic import OptimisticCoordinator
from moovey.dashboard.move_tracker import MoveTracker
from moovey.dashboard.priority import PriorityTaskList


class FakeClock:
    """Manually advanced millisecond clock."""

    def __init__(self, start: int = 0):
        self.now = start

    def __call__(self) -> int:
        return self.now

    def advance(self, ms: int) -> None:
        self.now += ms


def _make_response(payload=None, status_code: int = 200):
    """Build a stand-in for requests.Response."""
    response = MagicMock()
    response.status_code = status_code
    response.ok = 200 <= status_code < 300
    response.reason = "OK" if response.ok else "Error"
    if isinstance(payload, Exception):
        response.json.side_effect = payload
    else:
        response.json.return_value = payload
    return response


@pytest.fixture
def make_response():
    return _make_response


@pytest.fixture
def settings():
    return ClientSettings(base_url="http://moovey.test", csrf_token="test-csrf-token", request_timeout_sec=15)


@pytest.fixture
def http_session():
    """Mocked requests.Session; set `.request.return_value` / `.side_effect` per test."""
    session = MagicMock()
    session.request.return_value = _make_response({"success": True})
    return session


@pytest.fixture
def client(settings, http_session):
    return MooveyClient(settings, session=http_session)


@pytest.fixture
def api():
    """A fully mocked MooveyClient for dashboard-level tests."""
    mock = MagicMock(spec=MooveyClient)
    mock.settings = ClientSettings(base_url="http://moovey.test", csrf_token="test-csrf-token")
    for method in (
        "complete_task",
        "add_priority_task",
        "remove_priority_task",
        "update_move_details",
        "toggle_custom_task",
        "delete_custom_task",
    ):
        getattr(mock, method).return_value = {"success": True}
    mock.toggle_recommended_task.return_value = {"completed": True}
    mock.fetch_priority_tasks.return_value = []
    mock.fetch_tasks.return_value = []
    mock.fetch_move_details.return_value = {}
    return mock


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def cache(clock):
    return TTLCache(default_ttl_ms=300000, max_entries=50, low_watermark=40, clock=clock)


@pytest.fixture
def notifier():
    return Notifier()


@pytest.fixture
def coordinator(cache, notifier):
    return OptimisticCoordinator(cache, notifier)


@pytest.fixture
def tracker(api, cache, coordinator, notifier):
    return MoveTracker(api, cache, coordinator, notifier)


@pytest.fixture
def priority_list(api, cache, coordinator, notifier):
    return PriorityTaskList(api, cache, coordinator, notifier, confirm=lambda prompt: True)


@pytest.fixture
def sample_task_base():
    """Base task data; override fields as needed."""
    return {
        "id": "1",
        "title": "Test Task",
        "description": "Test description",
        "category": "Pre-Move",
        "completed": False,
        "completed_date": None,
        "source": TaskSource.LESSON,
        "section_id": None,
    }


@pytest.fixture
def make_task(sample_task_base):
    def _make(**overrides) -> Task:
        return Task(**{**sample_task_base, **overrides})
    return _make


@pytest.fixture
def make_custom_task(sample_task_base):
    def _make(task_id: str, section_id: int, completed: bool = False, **overrides) -> Task:
        return Task(**{
            **sample_task_base,
            "id": task_id,
            "title": f"Custom {task_id}",
            "category": "pre-move",
            "source": TaskSource.CUSTOM,
            "section_id": section_id,
            "completed": completed,
            "completed_date": "2024-01-01" if completed else None,
            **overrides,
        })
    return _make
