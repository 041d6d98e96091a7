"""Dashboard priority task list.

The priority list is a user-curated set of tasks pinned to the dashboard.
A task id appears at most once: adding, dropping or bulk-adding a task that is
already pinned does nothing. Adds and removes are optimistic; completing a
task needs an explicit confirmation and only changes local state once the
server has accepted it. `complete_task` completes any listed task without
pinning it first.
"""

import logging
import threading
from typing import Callable, Dict, List, Optional, Set

from moovey.cache import TTLCache
from moovey.errors import MooveyAPIError
from moovey.integrations.moovey_api import MooveyClient
from moovey.models.task import Task, PriorityTask
from moovey.models.constants import PRIORITY_TASKS_CACHE_KEY, TASKS_CACHE_KEY
from moovey.models.task_factory import normalize_priority_tasks, normalize_tasks, priority_task_from_task
from moovey.engine.upcoming import group_tasks_by_category
from moovey.dashboard.notifier import Notifier
from moovey.dashboard.optimistic import MutationResult, OptimisticCoordinator

logger = logging.getLogger(__name__)

ConfirmCallback = Callable[[str], bool]
CompletedCallback = Callable[[str], None]


def refuse_confirmation(_prompt: str) -> bool:
    return False


class PriorityTaskList:
    """Owns the dashboard's priority tasks and the user tasks they are picked from."""

    def __init__(
        self,
        client: MooveyClient,
        cache: Optional[TTLCache] = None,
        coordinator: Optional[OptimisticCoordinator] = None,
        notifier: Optional[Notifier] = None,
        confirm: ConfirmCallback = refuse_confirmation,
        max_size: Optional[int] = None,
        on_task_completed: Optional[CompletedCallback] = None,
    ):
        """Initialize the list.

        Args:
            client: API client
            cache: Shared response cache
            coordinator: Shared optimistic coordinator
            notifier: Where user-facing messages go
            confirm: Asked before completing a task; must return True to proceed.
                Defaults to refusing, so nothing is completed without a real prompt.
            max_size: Optional cap on the number of pinned tasks
            on_task_completed: Called with the task id after the server confirms a
                completion, so other task stores can follow
        """
        self.client = client
        self.cache = cache if cache is not None else TTLCache(default_ttl_ms=client.settings.cache_ttl_ms)
        self.notifier = notifier or (coordinator.notifier if coordinator else Notifier())
        self.coordinator = coordinator or OptimisticCoordinator(self.cache, self.notifier)
        self.confirm = confirm
        self.max_size = max_size
        self.on_task_completed = on_task_completed
        self._lock = threading.RLock()
        self.tasks: List[PriorityTask] = []
        self.available_tasks: List[Task] = []
        self.selected: Set[str] = set()

    # Loading

    def load(self, force: bool = False) -> None:
        """Load the priority list, from cache when fresh."""
        records = None if force else self.cache.get(PRIORITY_TASKS_CACHE_KEY)
        if records is None:
            try:
                records = self.client.fetch_priority_tasks()
            except MooveyAPIError as e:
                logger.error(f"Failed to load priority tasks ({e.failure_kind}): {e.message}")
                return
            self.cache.set(PRIORITY_TASKS_CACHE_KEY, records)
        tasks = normalize_priority_tasks(records)
        with self._lock:
            self.tasks = tasks

    def load_available_tasks(self, force: bool = False) -> None:
        """Load every user task (lesson, custom and CTA) that can be pinned."""
        payload = None if force else self.cache.get(TASKS_CACHE_KEY)
        if payload is None:
            try:
                payload = self.client.fetch_tasks()
            except MooveyAPIError as e:
                logger.error(f"Failed to load tasks ({e.failure_kind}): {e.message}")
                return
            self.cache.set(TASKS_CACHE_KEY, payload)
        tasks = normalize_tasks(payload)
        with self._lock:
            self.available_tasks = tasks

    # Queries

    def ids(self) -> List[str]:
        with self._lock:
            return [task.id for task in self.tasks]

    def contains(self, task_id: str) -> bool:
        with self._lock:
            return any(task.id == str(task_id) for task in self.tasks)

    def find_available(self, task_id: str) -> Optional[Task]:
        with self._lock:
            return next((task for task in self.available_tasks if task.id == str(task_id)), None)

    def tasks_by_category(self) -> Dict[str, List[Task]]:
        with self._lock:
            return group_tasks_by_category(self.available_tasks)

    # Mutations

    def add(self, task: Task) -> Optional[MutationResult]:
        """Pin a task. Returns None if it was already pinned or the list is full."""
        entry = priority_task_from_task(task)

        def mutate() -> bool:
            with self._lock:
                if any(existing.id == entry.id for existing in self.tasks):
                    return False
                if self.max_size is not None and len(self.tasks) >= self.max_size:
                    self.notifier.warn(f"Your priority list is full ({self.max_size} tasks)")
                    return False
                self.tasks.append(entry)
                return True

        def revert() -> None:
            with self._lock:
                self.tasks = [existing for existing in self.tasks if existing.id != entry.id]

        return self.coordinator.execute(
            key=entry.id,
            mutate_local=mutate,
            api_call=lambda: self.client.add_priority_task(entry.id),
            revert_local=revert,
            invalidate_keys=(PRIORITY_TASKS_CACHE_KEY,),
            description="Add to priority list",
            error_message="Failed to add task to your priority list",
        )

    def remove(self, task_id: str) -> Optional[MutationResult]:
        """Unpin a task; on failure it goes back to the same position."""
        task_id = str(task_id)
        removed: Dict[str, object] = {}

        def mutate() -> bool:
            with self._lock:
                for index, existing in enumerate(self.tasks):
                    if existing.id == task_id:
                        removed.update(index=index, entry=existing)
                        del self.tasks[index]
                        return True
                return False

        def revert() -> None:
            with self._lock:
                if not any(existing.id == task_id for existing in self.tasks):
                    self.tasks.insert(min(removed["index"], len(self.tasks)), removed["entry"])

        return self.coordinator.execute(
            key=task_id,
            mutate_local=mutate,
            api_call=lambda: self.client.remove_priority_task(task_id),
            revert_local=revert,
            invalidate_keys=(PRIORITY_TASKS_CACHE_KEY,),
            description="Remove from priority list",
            error_message="Failed to remove task from your priority list",
        )

    def complete(self, task_id: str, confirm: Optional[ConfirmCallback] = None) -> Optional[MutationResult]:
        """Mark a pinned task as done after the user confirms.

        On success the task leaves the priority list and stays completed; on
        failure it stays in the list, uncompleted. Returns None if the task is
        not pinned or the user declined.
        """
        task_id = str(task_id)
        with self._lock:
            entry = next((task for task in self.tasks if task.id == task_id), None)
        if entry is None:
            logger.debug(f"Complete ignored: {task_id} is not in the priority list")
            return None

        ask = confirm or self.confirm
        prompt = f'Are you sure you want to mark "{entry.title}" as completed?\n\nThis action cannot be undone.'
        if not ask(prompt):
            logger.debug(f"Completion of {task_id} cancelled by user")
            return None

        return self.coordinator.execute_confirmed(
            key=task_id,
            api_call=lambda: self.client.complete_task(task_id),
            apply_local=lambda _response: self._apply_completion(task_id),
            invalidate_keys=(PRIORITY_TASKS_CACHE_KEY, TASKS_CACHE_KEY),
            description="Complete priority task",
            error_message="Failed to complete the task. Please try again.",
            success_message=f'"{entry.title}" has been marked as completed!',
        )

    def complete_task(self, task_id: str) -> Optional[MutationResult]:
        """Complete a task straight from the task list, pinned or not.

        Local state changes only after the server accepts. Returns None for
        unknown or already completed tasks.
        """
        task = self.find_available(task_id)
        if task is None:
            logger.debug(f"Complete ignored: unknown task id {task_id!r}")
            return None
        if task.completed:
            return None

        return self.coordinator.execute_confirmed(
            key=task.id,
            api_call=lambda: self.client.complete_task(task.id),
            apply_local=lambda _response: self._apply_completion(task.id),
            invalidate_keys=(TASKS_CACHE_KEY, PRIORITY_TASKS_CACHE_KEY),
            description="Complete task",
            error_message="Failed to complete task. Please try again.",
            success_message=f'"{task.title}" has been marked as completed!',
        )

    def _apply_completion(self, task_id: str) -> None:
        """Mark a server-completed task done everywhere and unpin it."""
        with self._lock:
            was_pinned = any(task.id == task_id for task in self.tasks)
            self.tasks = [task for task in self.tasks if task.id != task_id]
            self.available_tasks = [
                task.model_copy(update={"completed": True}) if task.id == task_id else task
                for task in self.available_tasks
            ]
        if self.on_task_completed is not None:
            self.on_task_completed(task_id)
        if not was_pinned:
            return
        try:
            self.client.remove_priority_task(task_id)
        except MooveyAPIError as e:
            logger.warning(f"Completed {task_id} but could not unpin it on the server ({e.failure_kind}): {e.message}")

    def drop(self, task_id: str) -> Optional[MutationResult]:
        """Handle a task dragged onto the priority list.

        Unknown ids and ids already pinned are ignored.
        """
        task = self.find_available(task_id)
        if task is None:
            logger.debug(f"Dropped unknown task id {task_id!r}; ignoring")
            return None
        if self.contains(task.id):
            return None
        return self.add(task)

    # Bulk selection

    def toggle_selection(self, task_id: str) -> bool:
        """Select or deselect a task for bulk add. Returns True if now selected."""
        task_id = str(task_id)
        with self._lock:
            if task_id in self.selected:
                self.selected.discard(task_id)
                return False
            self.selected.add(task_id)
            return True

    def add_selected(self) -> List[MutationResult]:
        """Pin every selected task, then clear the selection."""
        with self._lock:
            to_add = [task for task in self.available_tasks if task.id in self.selected]
            self.selected = set()
        results = []
        for task in to_add:
            result = self.add(task)
            if result is not None:
                results.append(result)
        return results

