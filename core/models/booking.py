"""Booking domain models.

Amounts are stored in cents (integer) to avoid floating point issues.
"""

from datetime import date, datetime, time
from enum import Enum
from uuid import UUID

from pydantic import BaseModel, Field, model_validator

from core.models.task import PricingType


class BookingStatus(str, Enum):
    """Booking lifecycle status."""

    PENDING = "pending"
    CONFIRMED = "confirmed"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


ACTIVE_BOOKING_STATUSES = (BookingStatus.PENDING, BookingStatus.CONFIRMED)


class BookingCreate(BaseModel):
    """Data required to book a provider's offering for a time window."""

    provider_id: UUID
    offering_id: UUID
    booking_date: date
    start_time: time
    end_time: time
    location: str = Field(..., min_length=1, max_length=500)
    description: str | None = Field(None, max_length=2000)
    pricing_type: PricingType = PricingType.HOURLY
    agreed_price_cents: int | None = None
    task_id: UUID | None = None

    @model_validator(mode="after")
    def validate_window(self) -> "BookingCreate":
        """Ensure the window is non-empty."""
        if self.start_time >= self.end_time:
            raise ValueError("start_time must be before end_time")
        return self


class Booking(BaseModel):
    """Full booking entity as stored."""

    id: UUID
    customer_id: UUID
    provider_id: UUID
    offering_id: UUID
    service_id: str
    task_id: UUID | None = None
    booking_date: date
    start_time: time
    end_time: time
    location: str
    status: BookingStatus
    pricing_type: PricingType
    total_amount_cents: int
    description: str | None
    created_at: datetime
    updated_at: datetime
    version: int = 1

    model_config = {"from_attributes": True}

    @property
    def is_active(self) -> bool:
        """Whether booking still holds its time window."""
        return self.status in ACTIVE_BOOKING_STATUSES

    def involves(self, user_id: UUID) -> bool:
        return user_id in (self.customer_id, self.provider_id)
