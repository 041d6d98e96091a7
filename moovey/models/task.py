"""Task data models for Moovey."""

from typing import Optional
from enum import Enum
from pydantic import BaseModel, Field


class TaskSource(str, Enum):
    """Where a task came from."""
    LESSON = "lesson"
    CUSTOM = "custom"
    CTA = "cta"  # Anything else: system-suggested call-to-action


class TaskCategory(str, Enum):
    """Move-lifecycle phase."""
    PRE_MOVE = "pre-move"
    IN_MOVE = "in-move"
    POST_MOVE = "post-move"


class Task(BaseModel):
    """Normalized task shared by custom, academy and CTA sources."""

    id: str = Field(..., description="Task identifier (server ids coerced to string)")
    title: str = Field(..., description="Task title")
    description: Optional[str] = Field(None, description="Task description")
    category: str = Field(TaskCategory.PRE_MOVE.value, description="Display category, e.g. 'Pre-Move'")
    completed: bool = Field(False, description="Whether the task is done")
    completed_date: Optional[str] = Field(None, description="Completion date (YYYY-MM-DD)")
    source: TaskSource = Field(TaskSource.CTA, description="Task origin")
    section_id: Optional[int] = Field(None, description="Move section (1..9); None means unassigned")
    urgency: Optional[str] = Field(None, description="Urgency hint from the server")

    class Config:
        """Pydantic configuration."""
        use_enum_values = True

    @property
    def is_custom(self) -> bool:
        return self.source == TaskSource.CUSTOM


class PriorityTask(BaseModel):
    """A task reference pinned to the dashboard priority list."""

    id: str = Field(..., description="Id of the underlying task")
    title: str = Field(..., description="Task title")
    description: Optional[str] = Field(None, description="Task description")
    category: Optional[str] = Field(None, description="Display category")
    completed: bool = Field(False, description="Priority entries are always open")
    due_label: str = Field("From Academy", description="Label shown in place of a due date")
    urgency: str = Field("moderate", description="Urgency shown on the dashboard")
    estimated_time: str = Field("15 mins", description="Rough effort estimate")


class SectionProgress(BaseModel):
    """Derived completion figures for one move section."""

    completed: int = Field(0, ge=0)
    total: int = Field(0, ge=0)
    percentage: int = Field(0, ge=0, le=100)
