"""Task and application domain models.

Budgets are stored in cents (integer). $45.00 = 4500 cents.
"""

from datetime import datetime
from enum import Enum
from uuid import UUID

from pydantic import BaseModel, Field, model_validator


class TaskStatus(str, Enum):
    """Task lifecycle status."""

    OPEN = "open"
    ASSIGNED = "assigned"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class PricingType(str, Enum):
    """How a task or booking is priced."""

    FIXED = "fixed"    # Agreed price, immutable once booked
    HOURLY = "hourly"  # Rate x duration


class ApplicationState(str, Enum):
    """Derived state of an application; never stored."""

    PENDING = "pending"
    ACCEPTED = "accepted"
    CLOSED = "closed"


class TaskCreate(BaseModel):
    """Data required to post a task."""

    title: str = Field(..., min_length=1, max_length=255)
    description: str = Field(..., min_length=1, max_length=5000)
    category_id: str = Field(..., min_length=1, max_length=100)
    location: str = Field(..., min_length=1, max_length=500)
    budget_min_cents: int | None = Field(None, ge=0)
    budget_max_cents: int | None = Field(None, ge=0)
    pricing_type: PricingType = PricingType.FIXED
    urgent: bool = False

    @model_validator(mode="after")
    def validate_budget(self) -> "TaskCreate":
        """Ensure the budget range is ordered."""
        if (
            self.budget_min_cents is not None
            and self.budget_max_cents is not None
            and self.budget_min_cents > self.budget_max_cents
        ):
            raise ValueError("budget_min_cents cannot exceed budget_max_cents")
        return self


class Task(BaseModel):
    """Full task entity as stored."""

    id: UUID
    customer_id: UUID
    title: str
    description: str
    category_id: str
    location: str
    budget_min_cents: int | None
    budget_max_cents: int | None
    pricing_type: PricingType
    urgent: bool
    status: TaskStatus
    assigned_provider_id: UUID | None = None
    assigned_application_id: UUID | None = None
    created_at: datetime
    updated_at: datetime
    version: int = 1

    model_config = {"from_attributes": True}

    def display_price_cents(self, default_cents: int) -> int:
        """Budget max, falling back to budget min, then to a default."""
        if self.budget_max_cents is not None:
            return self.budget_max_cents
        if self.budget_min_cents is not None:
            return self.budget_min_cents
        return default_cents


class Application(BaseModel):
    """A provider's expression of interest in an open task."""

    id: UUID
    task_id: UUID
    provider_id: UUID
    message: str | None = None
    created_at: datetime

    model_config = {"from_attributes": True}
