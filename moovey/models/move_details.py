"""Personal move details persisted via PATCH /api/move-details."""

from typing import Optional, Dict, Any
from enum import Enum
import logging
from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)


# Wire names used by the server (camelCase)
_WIRE_NAMES = {
    "current_address": "currentAddress",
    "new_address": "newAddress",
    "moving_date": "movingDate",
    "budget": "budget",
    "moving_type": "movingType",
    "target_area": "targetArea",
    "property_requirements": "propertyRequirements",
    "solicitor_contact": "solicitorContact",
    "key_dates": "keyDates",
}


class MovingType(str, Enum):
    """Kind of move."""
    RENTAL = "rental"
    PURCHASE = "purchase"
    SALE = "sale"
    RENTAL_TO_RENTAL = "rental-to-rental"


class PersonalDetails(BaseModel):
    """User-entered facts about the move."""

    current_address: Optional[str] = Field(None, max_length=255)
    new_address: Optional[str] = Field(None, max_length=255)
    moving_date: Optional[str] = Field(None, description="YYYY-MM-DD")
    budget: Optional[str] = Field(None, max_length=255)
    moving_type: Optional[MovingType] = Field(None)
    target_area: Optional[str] = Field(None, max_length=255)
    property_requirements: Optional[str] = Field(None)
    solicitor_contact: Optional[str] = Field(None, max_length=255)
    key_dates: Optional[str] = Field(None)

    class Config:
        """Pydantic configuration."""
        use_enum_values = True

    @classmethod
    def from_payload(cls, payload: Optional[Dict[str, Any]]) -> "PersonalDetails":
        """Build from the server's camelCase `personalDetails` object."""
        payload = payload or {}
        values = {}
        for field_name, wire_name in _WIRE_NAMES.items():
            value = payload.get(wire_name)
            if value in (None, ""):
                continue
            if field_name == "moving_type" and value not in {t.value for t in MovingType}:
                logger.warning(f"Ignoring unknown moving type {value!r}")
                continue
            values[field_name] = value
        return cls(**values)

    def to_payload(self, only_set: bool = True) -> Dict[str, Any]:
        """Serialize to camelCase, skipping unset fields by default."""
        data = self.model_dump(exclude_none=only_set)
        return {_WIRE_NAMES[name]: value for name, value in data.items()}
