"""Data models for Moovey."""

from moovey.models.task import Task, TaskSource, TaskCategory, PriorityTask, SectionProgress
from moovey.models.section import MoveSection, MOVE_SECTIONS, SECTION_IDS
from moovey.models.move_details import PersonalDetails, MovingType

__all__ = [
    "Task",
    "TaskSource",
    "TaskCategory",
    "PriorityTask",
    "SectionProgress",
    "MoveSection",
    "MOVE_SECTIONS",
    "SECTION_IDS",
    "PersonalDetails",
    "MovingType",
]
