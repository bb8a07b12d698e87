"""Provider weekly availability models.

Times are naive time-of-day in the provider's declared local time. Days run
0 (Sunday) through 6 (Saturday).
"""

from datetime import datetime, time
from uuid import UUID

from pydantic import BaseModel, Field, model_validator


class SlotCreate(BaseModel):
    """Data required to add a recurring weekly slot."""

    day_of_week: int = Field(..., ge=0, le=6)
    start_time: time
    end_time: time

    @model_validator(mode="after")
    def validate_window(self) -> "SlotCreate":
        """Ensure start precedes end."""
        if self.start_time >= self.end_time:
            raise ValueError("start_time must be before end_time")
        return self


class AvailabilitySlot(BaseModel):
    """Full availability slot entity as stored."""

    id: UUID
    provider_id: UUID
    day_of_week: int
    start_time: time
    end_time: time
    is_available: bool
    removed_at: datetime | None = None
    created_at: datetime
    updated_at: datetime
    version: int = 1

    model_config = {"from_attributes": True}

    @property
    def is_removed(self) -> bool:
        return self.removed_at is not None


class TimeWindow(BaseModel):
    """A bookable [start, end) window on a concrete date."""

    start_time: time
    end_time: time
