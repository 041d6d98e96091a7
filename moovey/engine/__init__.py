"""Progress engine for Moovey."""

from moovey.engine.progress import (
    section_progress,
    all_section_progress,
    overall_progress,
    academy_tasks_for_section,
    belongs_to_section,
)
from moovey.engine.upcoming import get_upcoming_tasks, group_tasks_by_category, academy_tasks_by_category

__all__ = [
    "section_progress",
    "all_section_progress",
    "overall_progress",
    "academy_tasks_for_section",
    "belongs_to_section",
    "get_upcoming_tasks",
    "group_tasks_by_category",
    "academy_tasks_by_category",
]
