"""Moving-journey state: custom tasks, academy tasks and progress.

`MoveTracker` owns the task collections the progress figures are computed
from. Reads come from `GET /api/move-details` and `GET /api/tasks` (through the
TTL cache); writes go through the OptimisticCoordinator so a failed request
leaves the tracker exactly as it was before the action.
"""

import logging
import threading
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Tuple

from moovey.cache import TTLCache
from moovey.errors import MooveyAPIError
from moovey.integrations.moovey_api import MooveyClient
from moovey.models.task import Task, TaskCategory, SectionProgress
from moovey.models.section import SECTION_IDS, is_valid_section
from moovey.models.move_details import PersonalDetails
from moovey.models.constants import (
    MOVE_DETAILS_CACHE_KEY,
    TASKS_CACHE_KEY,
    UNASSIGNED_SECTION_FALLBACK,
)
from moovey.models.task_factory import (
    normalize_academy_tasks,
    normalize_custom_task,
    normalize_custom_tasks,
    validate_custom_task_input,
)
from moovey.engine.progress import all_section_progress, average_percentage, section_progress
from moovey.engine.upcoming import academy_tasks_by_category
from moovey.dashboard.notifier import Notifier
from moovey.dashboard.optimistic import MutationResult, OptimisticCoordinator

logger = logging.getLogger(__name__)


def _today() -> str:
    return datetime.now(timezone.utc).date().isoformat()


class MoveTracker:
    """Task state and progress for the move-details page and dashboard."""

    def __init__(
        self,
        client: MooveyClient,
        cache: Optional[TTLCache] = None,
        coordinator: Optional[OptimisticCoordinator] = None,
        notifier: Optional[Notifier] = None,
    ):
        self.client = client
        self.cache = cache if cache is not None else TTLCache(default_ttl_ms=client.settings.cache_ttl_ms)
        self.notifier = notifier or (coordinator.notifier if coordinator else Notifier())
        self.coordinator = coordinator or OptimisticCoordinator(self.cache, self.notifier)
        self._lock = threading.RLock()

        self.custom_tasks: Dict[int, List[Task]] = {section_id: [] for section_id in SECTION_IDS}
        self.academy_tasks: List[Task] = []
        # section -> recommended task id -> {"completed": bool, "completedDate": str | None}
        self.recommended_task_states: Dict[int, Dict[str, Dict[str, Any]]] = {}
        self.personal_details = PersonalDetails()
        self.active_section = UNASSIGNED_SECTION_FALLBACK

    # Loading

    def load(self, force: bool = False) -> None:
        """Load move details and academy tasks, using cached responses when fresh."""
        self.load_move_details(force=force)
        self.load_academy_tasks(force=force)

    def _cached_fetch(self, cache_key: str, fetch, force: bool) -> Any:
        if not force:
            cached = self.cache.get(cache_key)
            if cached is not None:
                return cached
        data = fetch()
        self.cache.set(cache_key, data)
        return data

    def load_move_details(self, force: bool = False) -> None:
        try:
            data = self._cached_fetch(MOVE_DETAILS_CACHE_KEY, self.client.fetch_move_details, force)
        except MooveyAPIError as e:
            logger.error(f"Failed to fetch move details ({e.failure_kind}): {e.message}")
            self.notifier.error("Failed to load your move details")
            return

        custom = normalize_custom_tasks(data.get("customTasks"))
        states = self._parse_recommended_states(data.get("recommendedTaskStates"))
        details = PersonalDetails.from_payload(data.get("personalDetails"))
        active = data.get("activeSection")
        with self._lock:
            self.custom_tasks = custom
            self.recommended_task_states = states
            self.personal_details = details
            self.active_section = active if is_valid_section(active) else UNASSIGNED_SECTION_FALLBACK
        logger.debug(f"Loaded {sum(len(t) for t in custom.values())} custom tasks")

    def load_academy_tasks(self, force: bool = False) -> None:
        """Load lesson-derived tasks. A failure leaves the current list in place."""
        try:
            payload = self._cached_fetch(TASKS_CACHE_KEY, self.client.fetch_tasks, force)
        except MooveyAPIError as e:
            logger.warning(f"Failed to fetch academy tasks ({e.failure_kind}): {e.message}")
            return
        academy = normalize_academy_tasks(payload)
        with self._lock:
            self.academy_tasks = academy
        logger.debug(f"Loaded {len(academy)} academy tasks")

    @staticmethod
    def _parse_recommended_states(raw: Any) -> Dict[int, Dict[str, Dict[str, Any]]]:
        states: Dict[int, Dict[str, Dict[str, Any]]] = {}
        if not isinstance(raw, dict):
            return states
        for key, task_states in raw.items():
            try:
                section_id = int(key)
            except (TypeError, ValueError):
                logger.warning(f"Ignoring recommended task states for section {key!r}")
                continue
            if not isinstance(task_states, dict):
                continue
            states[section_id] = {
                str(task_id): {
                    "completed": bool((state or {}).get("completed")),
                    "completedDate": (state or {}).get("completedDate") or None,
                }
                for task_id, state in task_states.items()
            }
        return states

    # Progress

    def section_progress(self, section_id: int) -> SectionProgress:
        with self._lock:
            return section_progress(section_id, self.custom_tasks, self.academy_tasks)

    def all_section_progress(self) -> Dict[int, SectionProgress]:
        with self._lock:
            return all_section_progress(self.custom_tasks, self.academy_tasks)

    def overall_progress(self) -> int:
        return average_percentage(p.percentage for p in self.all_section_progress().values())

    def academy_tasks_by_category(self, category: TaskCategory, section_id: Optional[int] = None) -> List[Task]:
        with self._lock:
            return academy_tasks_by_category(
                self.academy_tasks, category, section_id if section_id is not None else self.active_section
            )

    # Lookups

    def _section_tasks(self, section_id: int) -> List[Task]:
        if not is_valid_section(section_id):
            raise ValueError(f"Unknown section {section_id!r}")
        return self.custom_tasks.setdefault(section_id, [])

    def _find(self, section_id: int, task_id: str) -> Tuple[int, Optional[Task]]:
        for index, task in enumerate(self._section_tasks(section_id)):
            if task.id == task_id:
                return index, task
        return -1, None

    def get_custom_task(self, section_id: int, task_id: str) -> Optional[Task]:
        with self._lock:
            return self._find(section_id, task_id)[1]

    def _replace(self, section_id: int, task_id: str, **changes) -> None:
        with self._lock:
            index, task = self._find(section_id, task_id)
            if task is not None:
                self.custom_tasks[section_id][index] = task.model_copy(update=changes)

    def mark_task_completed(self, task_id: str) -> bool:
        """Record a server-confirmed completion of an academy task.

        Called when a task is completed from the dashboard (priority list or
        CTA list) so progress figures follow without a reload. Returns True
        if a matching academy task was found.
        """
        task_id = str(task_id)
        found = False
        with self._lock:
            updated = []
            for task in self.academy_tasks:
                if task.id == task_id:
                    found = True
                    if not task.completed:
                        task = task.model_copy(
                            update={"completed": True, "completed_date": task.completed_date or _today()}
                        )
                updated.append(task)
            self.academy_tasks = updated
        if not found:
            logger.debug(f"Completed task {task_id} is not an academy task; progress unchanged")
        return found

    # Custom task mutations

    def toggle_custom_task(self, section_id: int, task_id: str) -> Optional[MutationResult]:
        """Flip a custom task's completion, rolling back to the exact prior state on failure."""
        prior: Dict[str, Any] = {}

        def mutate() -> bool:
            with self._lock:
                _, task = self._find(section_id, task_id)
                if task is None:
                    return False
                prior.update(completed=task.completed, completed_date=task.completed_date)
                completed = not task.completed
                self._replace(section_id, task_id, completed=completed, completed_date=_today() if completed else None)
                return True

        return self.coordinator.execute(
            key=task_id,
            mutate_local=mutate,
            api_call=lambda: self.client.toggle_custom_task(task_id, section_id, not prior["completed"]),
            revert_local=lambda: self._replace(section_id, task_id, **prior),
            invalidate_keys=(MOVE_DETAILS_CACHE_KEY,),
            description=f"Toggle custom task in section {section_id}",
            error_message="Failed to update task status",
        )

    def create_custom_task(self, section_id: int, title: str, description: str = "") -> MutationResult:
        """Create a custom task; it appears locally only after the server returns it.

        Raises:
            ValueError: If the title is empty or the section unknown (nothing is sent)
        """
        try:
            title, description = validate_custom_task_input(section_id, title, description)
        except ValueError as e:
            self.notifier.warn(str(e))
            raise

        def apply(record: Dict[str, Any]) -> None:
            with self._lock:
                tasks = self._section_tasks(section_id)
                task = normalize_custom_task(record, section_id, fallback_id=f"{section_id}-unknown-{len(tasks)}")
                if any(existing.id == task.id for existing in tasks):
                    logger.warning(f"Custom task {task.id} already present in section {section_id}")
                    return
                tasks.append(task)

        return self.coordinator.execute_confirmed(
            key=f"create:{section_id}",
            api_call=lambda: self.client.create_custom_task(section_id, title, description),
            apply_local=apply,
            invalidate_keys=(MOVE_DETAILS_CACHE_KEY,),
            description=f"Create custom task in section {section_id}",
            error_message="Failed to add custom task",
            success_message="Custom task added",
        )

    def delete_custom_task(self, section_id: int, task_id: str) -> Optional[MutationResult]:
        """Remove a custom task optimistically; it reappears in place if the server refuses."""
        removed: Dict[str, Any] = {}

        def mutate() -> bool:
            with self._lock:
                index, task = self._find(section_id, task_id)
                if task is None:
                    return False
                removed.update(index=index, task=task)
                del self.custom_tasks[section_id][index]
                return True

        def revert() -> None:
            with self._lock:
                tasks = self._section_tasks(section_id)
                if not any(t.id == task_id for t in tasks):
                    tasks.insert(min(removed["index"], len(tasks)), removed["task"])

        return self.coordinator.execute(
            key=task_id,
            mutate_local=mutate,
            api_call=lambda: self.client.delete_custom_task(task_id, section_id),
            revert_local=revert,
            invalidate_keys=(MOVE_DETAILS_CACHE_KEY,),
            description=f"Delete custom task in section {section_id}",
            error_message="Failed to remove task",
            success_message="Custom task removed",
        )

    # Recommended tasks

    def get_recommended_state(self, section_id: int, task_id: str) -> Optional[Dict[str, Any]]:
        with self._lock:
            state = self.recommended_task_states.get(section_id, {}).get(task_id)
            return dict(state) if state is not None else None

    def toggle_recommended_task(self, section_id: int, task_id: str) -> Optional[MutationResult]:
        """Flip a built-in recommended task's completion state."""
        if not is_valid_section(section_id):
            raise ValueError(f"Unknown section {section_id!r}")
        prior: Dict[str, Any] = {}

        def mutate() -> bool:
            with self._lock:
                section_states = self.recommended_task_states.setdefault(section_id, {})
                prior["state"] = section_states.get(task_id)
                completed = not (prior["state"] or {}).get("completed", False)
                section_states[task_id] = {"completed": completed, "completedDate": _today() if completed else None}
                return True

        def revert() -> None:
            with self._lock:
                section_states = self.recommended_task_states.setdefault(section_id, {})
                if prior["state"] is None:
                    section_states.pop(task_id, None)
                else:
                    section_states[task_id] = prior["state"]

        def call() -> Dict[str, Any]:
            completed = self.recommended_task_states[section_id][task_id]["completed"]
            return self.client.toggle_recommended_task(section_id, task_id, completed)

        return self.coordinator.execute(
            key=f"recommended:{section_id}:{task_id}",
            mutate_local=mutate,
            api_call=call,
            revert_local=revert,
            invalidate_keys=(MOVE_DETAILS_CACHE_KEY,),
            description=f"Toggle recommended task in section {section_id}",
            error_message="Failed to update task status",
        )

    # Move details

    def set_active_section(self, section_id: int) -> Optional[MutationResult]:
        """Switch the active section and persist it."""
        if not is_valid_section(section_id):
            raise ValueError(f"Unknown section {section_id!r}")
        prior: Dict[str, int] = {}

        def mutate() -> bool:
            with self._lock:
                if self.active_section == section_id:
                    return False
                prior["section"] = self.active_section
                self.active_section = section_id
                return True

        def revert() -> None:
            with self._lock:
                self.active_section = prior["section"]

        return self.coordinator.execute(
            key="active-section",
            mutate_local=mutate,
            api_call=lambda: self.client.update_move_details({"activeSection": section_id}),
            revert_local=revert,
            invalidate_keys=(MOVE_DETAILS_CACHE_KEY,),
            description="Save active section",
            error_message="Failed to save your current section",
        )

    def update_personal_details(self, details: PersonalDetails) -> MutationResult:
        prior: Dict[str, PersonalDetails] = {}

        def mutate() -> bool:
            with self._lock:
                prior["details"] = self.personal_details
                self.personal_details = details
                return True

        def revert() -> None:
            with self._lock:
                self.personal_details = prior["details"]

        return self.coordinator.execute(
            key="personal-details",
            mutate_local=mutate,
            api_call=lambda: self.client.update_move_details(details.to_payload()),
            revert_local=revert,
            invalidate_keys=(MOVE_DETAILS_CACHE_KEY,),
            description="Save personal details",
            error_message="Failed to save move details",
            success_message="Move details updated",
        )
