"""The fixed move stages."""

from typing import List, Optional
from pydantic import BaseModel, Field

from moovey.models.task import TaskCategory


class MoveSection(BaseModel):
    """One stage of the house-moving lifecycle."""

    id: int = Field(..., ge=1, description="Stage identifier (1..9)")
    label: str = Field(..., description="Display label")
    short_label: str = Field(..., description="Compact label for navigation")
    icon: str = Field(..., description="Icon name")
    description: str = Field(..., description="What the stage covers")


MOVE_SECTIONS: List[MoveSection] = [
    MoveSection(id=1, label="Planning & Budgeting", short_label="Planning", icon="planning",
                description="Set your moving goals, timeline, and budget"),
    MoveSection(id=2, label="Sell/Prep Current Home", short_label="Prep Home", icon="home",
                description="Prepare your current property for sale or transition"),
    MoveSection(id=3, label="Find New Property", short_label="Find Property", icon="search",
                description="Search and secure your new home"),
    MoveSection(id=4, label="Secure Finances", short_label="Finances", icon="money",
                description="Arrange mortgage, deposits, and financial requirements"),
    MoveSection(id=5, label="Legal & Admin", short_label="Legal", icon="legal",
                description="Handle contracts, surveys, and legal requirements"),
    MoveSection(id=6, label="Packing & Removal", short_label="Packing", icon="box",
                description="Organize packing and book removal services"),
    MoveSection(id=7, label="Move Day Execution", short_label="Move Day", icon="truck",
                description="Coordinate and execute the moving day"),
    MoveSection(id=8, label="Settling In", short_label="Settling", icon="settling",
                description="Unpack and establish yourself in your new home"),
    MoveSection(id=9, label="Post Move Integration", short_label="Integration", icon="sparkle",
                description="Complete address changes and community integration"),
]

SECTION_IDS: List[int] = [section.id for section in MOVE_SECTIONS]


def get_section(section_id: int) -> Optional[MoveSection]:
    """Look up a section by id, or None if it does not exist."""
    for section in MOVE_SECTIONS:
        if section.id == section_id:
            return section
    return None


def is_valid_section(section_id) -> bool:
    return isinstance(section_id, int) and not isinstance(section_id, bool) and section_id in SECTION_IDS


def category_for_section(section_id: int) -> TaskCategory:
    """Map a section to its lifecycle phase (6-7 in-move, 8-9 post-move, rest pre-move)."""
    if section_id in (6, 7):
        return TaskCategory.IN_MOVE
    if section_id in (8, 9):
        return TaskCategory.POST_MOVE
    return TaskCategory.PRE_MOVE
