"""Task normalization for Moovey.

The API hands back tasks in several shapes depending on where they came from:
custom tasks use a boolean `completed` plus `completedDate`, user/lesson tasks
use a `status` string and a `completed_at` timestamp, and section ids may be a
number, a numeric string or a nested `section` object. Everything in here turns
those raw payloads into the one `Task` model the progress engine works on.

A single bad record never stops the rest of a list from loading: it is either
given a fallback id or skipped, with a warning in the log.
"""

import logging
import re
from typing import Any, Dict, Iterable, List, Optional, Tuple

from moovey.models.task import Task, TaskSource, PriorityTask
from moovey.models.section import SECTION_IDS, category_for_section, is_valid_section
from moovey.models.constants import (
    DEFAULT_TASK_TITLE,
    DEFAULT_ACADEMY_CATEGORY,
    MAX_TITLE_LENGTH,
    MAX_DESCRIPTION_LENGTH,
)

logger = logging.getLogger(__name__)

_LEADING_INT = re.compile(r"^\s*([+-]?\d+)")

# Keys a list endpoint may wrap its records in
_LIST_KEYS = ("tasks", "user_tasks", "data")


def _is_blank(value: Any) -> bool:
    return value is None or value == "" or value is False


def is_completed(record: Dict[str, Any]) -> bool:
    """Decide completion from any of the three signals a source may carry.

    A task is completed if ANY of these hold: a truthy `completed` flag,
    `status == "completed"`, or a non-empty completion timestamp
    (`completed_at` or `completedDate`).
    """
    if record.get("status") == "completed":
        return True
    if bool(record.get("completed")):
        return True
    for key in ("completed_at", "completedDate"):
        if not _is_blank(record.get(key)):
            return True
    return False


def parse_section_id(raw: Any) -> Optional[int]:
    """Parse a section id from a number, numeric string or `{"id": ...}` object.

    Returns None (never 0 or NaN-like values) when the value is absent or
    unparsable. A literal 0 is returned as 0 so callers can tell it apart from
    "no section".
    """
    if isinstance(raw, dict):
        raw = raw.get("id")
    if raw is None or isinstance(raw, bool):
        return None
    if isinstance(raw, int):
        return raw
    if isinstance(raw, float):
        return int(raw) if raw.is_integer() else None
    if isinstance(raw, str):
        match = _LEADING_INT.match(raw)
        return int(match.group(1)) if match else None
    return None


def extract_section_id(record: Dict[str, Any]) -> Optional[int]:
    """Pull the section id out of `section_id`, `sectionId` or `section`."""
    for key in ("section_id", "sectionId", "section"):
        raw = record.get(key)
        if raw is not None and raw != "":
            return parse_section_id(raw)
    return None


def extract_source(record: Dict[str, Any]) -> Optional[str]:
    """Top-level `source`, falling back to `metadata.source`."""
    source = record.get("source")
    if source is None:
        metadata = record.get("metadata")
        if isinstance(metadata, dict):
            source = metadata.get("source")
    return source


def to_task_source(source: Optional[str]) -> TaskSource:
    if source == TaskSource.LESSON.value:
        return TaskSource.LESSON
    if source == TaskSource.CUSTOM.value:
        return TaskSource.CUSTOM
    return TaskSource.CTA


def _extract_id(record: Dict[str, Any], fallback: str) -> str:
    raw_id = record.get("id")
    if raw_id is None or raw_id == "":
        raw_id = record.get("task_id")
    if raw_id is None or raw_id == "":
        logger.warning(f"Task record without id ({record.get('title')!r}); using fallback id {fallback}")
        return fallback
    return str(raw_id)


def _completed_date(record: Dict[str, Any]) -> Optional[str]:
    for key in ("completedDate", "completed_at"):
        value = record.get(key)
        if not _is_blank(value):
            # Timestamps like '2024-01-01 10:00:00' are trimmed to the date
            return str(value)[:10]
    return None


def unwrap_task_list(payload: Any) -> List[Any]:
    """Accept a bare list or an object wrapping it in `tasks`/`user_tasks`/`data`."""
    if isinstance(payload, list):
        return payload
    if isinstance(payload, dict):
        for key in _LIST_KEYS:
            value = payload.get(key)
            if isinstance(value, list):
                return value
    return []


def normalize_task(record: Dict[str, Any], fallback_id: str) -> Task:
    """Normalize one raw user/lesson/CTA task record."""
    return Task(
        id=_extract_id(record, fallback_id),
        title=record.get("title") or DEFAULT_TASK_TITLE,
        description=record.get("description") or "",
        category=record.get("category") or DEFAULT_ACADEMY_CATEGORY,
        completed=is_completed(record),
        completed_date=_completed_date(record),
        source=to_task_source(extract_source(record)),
        section_id=extract_section_id(record),
        urgency=record.get("urgency"),
    )


def normalize_tasks(payload: Any) -> List[Task]:
    """Normalize every record of a task list, skipping ones that are not objects."""
    tasks: List[Task] = []
    for index, record in enumerate(unwrap_task_list(payload)):
        if not isinstance(record, dict):
            logger.warning(f"Skipping malformed task record at index {index}: {type(record).__name__}")
            continue
        tasks.append(normalize_task(record, fallback_id=f"unknown-{index}"))
    return tasks


def normalize_academy_tasks(payload: Any) -> List[Task]:
    """Normalize `/api/tasks` and keep only lesson-derived tasks.

    A record qualifies when its source is absent or exactly "lesson".
    """
    academy: List[Task] = []
    for index, record in enumerate(unwrap_task_list(payload)):
        if not isinstance(record, dict):
            logger.warning(f"Skipping malformed task record at index {index}: {type(record).__name__}")
            continue
        source = extract_source(record)
        if source and source != TaskSource.LESSON.value:
            continue
        academy.append(normalize_task(record, fallback_id=f"unknown-{index}"))
    return academy


def normalize_custom_task(record: Dict[str, Any], section_id: int, fallback_id: str) -> Task:
    """Normalize one custom task as returned by the move-details endpoints."""
    return Task(
        id=_extract_id(record, fallback_id),
        title=record.get("title") or DEFAULT_TASK_TITLE,
        description=record.get("description"),
        category=record.get("category") or category_for_section(section_id).value,
        completed=is_completed(record),
        completed_date=_completed_date(record),
        source=TaskSource.CUSTOM,
        section_id=section_id,
    )


def normalize_custom_tasks(grouped: Any) -> Dict[int, List[Task]]:
    """Normalize `customTasks` (section key -> list) into one list per section.

    Every known section gets an entry, empty if the server sent nothing for it.
    Unknown section keys are dropped.
    """
    result: Dict[int, List[Task]] = {section_id: [] for section_id in SECTION_IDS}
    if not isinstance(grouped, dict):
        return result
    for key, records in grouped.items():
        section_id = parse_section_id(key)
        if not is_valid_section(section_id):
            logger.warning(f"Dropping custom tasks for unknown section {key!r}")
            continue
        for index, record in enumerate(records or []):
            if not isinstance(record, dict):
                logger.warning(f"Skipping malformed custom task in section {section_id} at index {index}")
                continue
            result[section_id].append(
                normalize_custom_task(record, section_id, fallback_id=f"{section_id}-unknown-{index}")
            )
    return result


def priority_task_from_task(task: Task) -> PriorityTask:
    return PriorityTask(
        id=task.id,
        title=task.title,
        description=task.description,
        category=task.category,
    )


def normalize_priority_tasks(records: Iterable[Any]) -> List[PriorityTask]:
    """Normalize `priority_tasks` from `GET /api/priority-tasks`, dropping duplicates."""
    seen = set()
    priority: List[PriorityTask] = []
    for index, record in enumerate(records or []):
        if not isinstance(record, dict):
            logger.warning(f"Skipping malformed priority task at index {index}")
            continue
        task_id = _extract_id(record, f"unknown-{index}")
        if task_id in seen:
            continue
        seen.add(task_id)
        priority.append(
            PriorityTask(
                id=task_id,
                title=record.get("title") or DEFAULT_TASK_TITLE,
                description=record.get("description"),
                category=record.get("category"),
            )
        )
    return priority


def validate_custom_task_input(section_id: int, title: str, description: Optional[str]) -> Tuple[str, str]:
    """Check a new custom task before anything is sent.

    Returns:
        (title, description) stripped of surrounding whitespace

    Raises:
        ValueError: If the section is unknown or the title is empty/too long
    """
    if not is_valid_section(section_id):
        raise ValueError(f"Unknown section {section_id!r}")
    title = (title or "").strip()
    if not title:
        raise ValueError("Please enter a task title first")
    if len(title) > MAX_TITLE_LENGTH:
        raise ValueError(f"Task title must be at most {MAX_TITLE_LENGTH} characters")
    description = (description or "").strip()
    if len(description) > MAX_DESCRIPTION_LENGTH:
        raise ValueError(f"Task description must be at most {MAX_DESCRIPTION_LENGTH} characters")
    return title, description
