"""Upcoming-task selection and category grouping for the dashboard."""

from typing import Dict, Iterable, List, Mapping, Optional
from pydantic import BaseModel, Field

from moovey.models.task import Task, TaskCategory
from moovey.models.section import MOVE_SECTIONS, get_section
from moovey.models.constants import UPCOMING_TASK_LIMIT, DISPLAY_CATEGORIES
from moovey.engine.progress import belongs_to_section, section_progress


# Display title for each lifecycle phase
CATEGORY_TITLES = {
    TaskCategory.PRE_MOVE: "Pre-Move",
    TaskCategory.IN_MOVE: "In-Move",
    TaskCategory.POST_MOVE: "Post-Move",
}


class UpcomingTask(BaseModel):
    """A task shown in the 'up next' widget."""

    task: Task
    section_id: Optional[int] = Field(None, description="Section the task was drawn from (None for CTA tasks)")
    section_label: str = Field("", description="Short label of that section, or the CTA origin")
    priority: str = Field(..., description="'high' for CTA tasks, 'medium' active section, 'low' next section")
    is_cta_task: bool = Field(False)


def get_upcoming_tasks(
    cta_tasks: Iterable[Task],
    custom_tasks: Mapping[int, List[Task]],
    academy_tasks: Iterable[Task],
    active_section: int,
    limit: int = UPCOMING_TASK_LIMIT,
) -> List[UpcomingTask]:
    """Pick up to `limit` tasks: CTA tasks, then the active section, then the next unfinished one."""
    academy = list(academy_tasks)
    upcoming: List[UpcomingTask] = [
        UpcomingTask(
            task=task,
            section_label="Academy" if task.source == "lesson" else "Custom",
            priority="high",
            is_cta_task=True,
        )
        for task in cta_tasks
    ]

    if len(upcoming) < limit:
        upcoming.extend(_open_section_tasks(custom_tasks, active_section, "medium", limit - len(upcoming)))

    if len(upcoming) < limit:
        next_section = next(
            (
                s for s in MOVE_SECTIONS
                if s.id > active_section and section_progress(s.id, custom_tasks, academy).percentage < 100
            ),
            None,
        )
        if next_section:
            upcoming.extend(_open_section_tasks(custom_tasks, next_section.id, "low", limit - len(upcoming)))

    return upcoming[:limit]


def _open_section_tasks(
    custom_tasks: Mapping[int, List[Task]], section_id: int, priority: str, count: int
) -> List[UpcomingTask]:
    section = get_section(section_id)
    label = section.short_label if section else ""
    open_tasks = [task for task in custom_tasks.get(section_id) or [] if not task.completed][:count]
    return [
        UpcomingTask(task=task, section_id=section_id, section_label=label, priority=priority)
        for task in open_tasks
    ]


def group_tasks_by_category(tasks: Iterable[Task]) -> Dict[str, List[Task]]:
    """Group CTA/user tasks under the three display categories (case-insensitive)."""
    grouped: Dict[str, List[Task]] = {category: [] for category in DISPLAY_CATEGORIES}
    by_key = {category.lower(): category for category in DISPLAY_CATEGORIES}
    for task in tasks:
        display = by_key.get((task.category or "").lower())
        if display is not None:
            grouped[display].append(task)
    return grouped


def academy_tasks_by_category(
    academy_tasks: Iterable[Task], category: TaskCategory, section_id: int
) -> List[Task]:
    """Academy tasks of one phase shown in a section (case-insensitive category match)."""
    wanted = CATEGORY_TITLES[TaskCategory(category)].lower()
    return [
        task for task in academy_tasks
        if (task.category or "").lower() == wanted and belongs_to_section(task, section_id)
    ]
