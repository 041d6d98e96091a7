"""Wires the client, cache and dashboard state together for one user session."""

import logging
from typing import Optional

import requests

from moovey.cache import TTLCache
from moovey.config import ClientSettings, load_settings
from moovey.integrations.moovey_api import MooveyClient
from moovey.engine.upcoming import get_upcoming_tasks
from moovey.dashboard.notifier import Notifier
from moovey.dashboard.optimistic import OptimisticCoordinator
from moovey.dashboard.move_tracker import MoveTracker
from moovey.dashboard.priority import PriorityTaskList, ConfirmCallback, refuse_confirmation

logger = logging.getLogger(__name__)


class DashboardSession:
    """One session's worth of state.

    Create it at session start, call `sweep()` periodically (or rely on the
    cache sweeping itself on writes) and `dispose()` at teardown.
    """

    def __init__(
        self,
        settings: Optional[ClientSettings] = None,
        http_session: Optional[requests.Session] = None,
        notifier: Optional[Notifier] = None,
        confirm: ConfirmCallback = refuse_confirmation,
    ):
        self.settings = settings or load_settings()
        self.client = MooveyClient(self.settings, session=http_session)
        self.cache = TTLCache(
            default_ttl_ms=self.settings.cache_ttl_ms,
            max_entries=self.settings.cache_max_entries,
            low_watermark=self.settings.cache_low_watermark,
        )
        self.notifier = notifier or Notifier()
        self.coordinator = OptimisticCoordinator(self.cache, self.notifier)
        self.tracker = MoveTracker(self.client, self.cache, self.coordinator, self.notifier)
        self.priority = PriorityTaskList(
            self.client,
            self.cache,
            self.coordinator,
            self.notifier,
            confirm=confirm,
            on_task_completed=self.tracker.mark_task_completed,
        )

    def load(self, force: bool = False) -> None:
        """Initial load: move details, academy tasks, all user tasks, then the priority list."""
        self.tracker.load(force=force)
        self.priority.load_available_tasks(force=force)
        self.priority.load(force=force)

    def upcoming_tasks(self):
        """Tasks for the 'up next' widget."""
        cta = [task for task in self.priority.available_tasks if not task.completed]
        return get_upcoming_tasks(
            cta,
            self.tracker.custom_tasks,
            self.tracker.academy_tasks,
            self.tracker.active_section,
        )

    def sweep(self) -> int:
        return self.cache.sweep()

    def dispose(self) -> None:
        self.cache.dispose()
        self.client.session.close()
        logger.debug("Dashboard session disposed")
