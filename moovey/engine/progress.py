"""Move progress calculation for Moovey.

Section progress counts a section's custom tasks together with the academy
tasks assigned to it. Academy tasks without a section belong to
UNASSIGNED_SECTION_FALLBACK and to no other section; the rule lives in
`academy_tasks_for_section` so every progress figure applies it the same way.

All functions here are pure: same inputs always produce the same outputs.
"""

import math
from typing import Dict, Iterable, List, Mapping, Optional

from moovey.models.task import Task, SectionProgress
from moovey.models.section import SECTION_IDS
from moovey.models.constants import UNASSIGNED_SECTION_FALLBACK


def round_half_up(value: float) -> int:
    """Round to the nearest integer with .5 going up (Python's round() does not)."""
    return int(math.floor(value + 0.5))


def belongs_to_section(task: Task, section_id: int) -> bool:
    """Whether an academy task counts toward a section."""
    if task.section_id is None:
        return section_id == UNASSIGNED_SECTION_FALLBACK
    return task.section_id == section_id


def academy_tasks_for_section(academy_tasks: Iterable[Task], section_id: int) -> List[Task]:
    return [task for task in academy_tasks if belongs_to_section(task, section_id)]


def section_progress(
    section_id: int,
    custom_tasks: Mapping[int, List[Task]],
    academy_tasks: Iterable[Task],
) -> SectionProgress:
    """Compute completion for one section.

    Args:
        section_id: Section to compute (1..9)
        custom_tasks: Custom tasks keyed by section id
        academy_tasks: Flat list of normalized academy tasks

    Returns:
        SectionProgress; percentage is 0 when the section has no tasks
    """
    custom = custom_tasks.get(section_id) or []
    academy = academy_tasks_for_section(academy_tasks, section_id)

    total = len(custom) + len(academy)
    if total == 0:
        return SectionProgress(completed=0, total=0, percentage=0)

    completed = sum(1 for task in custom if task.completed) + sum(1 for task in academy if task.completed)
    return SectionProgress(
        completed=completed,
        total=total,
        percentage=round_half_up(100 * completed / total),
    )


def all_section_progress(
    custom_tasks: Mapping[int, List[Task]],
    academy_tasks: Iterable[Task],
    section_ids: Optional[List[int]] = None,
) -> Dict[int, SectionProgress]:
    """Progress for every section, keyed by section id."""
    academy = list(academy_tasks)
    return {
        section_id: section_progress(section_id, custom_tasks, academy)
        for section_id in (section_ids or SECTION_IDS)
    }


def average_percentage(percentages: Iterable[int]) -> int:
    """Rounded mean of section percentages; empty sections count as 0."""
    values = list(percentages)
    if not values:
        return 0
    return round_half_up(sum(values) / len(values))


def overall_progress(
    custom_tasks: Mapping[int, List[Task]],
    academy_tasks: Iterable[Task],
    section_ids: Optional[List[int]] = None,
) -> int:
    """Headline percentage: the mean of every section's percentage.

    Sections with no tasks are not skipped, they pull the average down.
    """
    progress = all_section_progress(custom_tasks, academy_tasks, section_ids)
    return average_percentage(p.percentage for p in progress.values())
