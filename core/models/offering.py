"""Service offering domain models.

Rates are stored in cents per hour. $35.00/h = 3500.
"""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field


class OfferingUpsert(BaseModel):
    """Data for creating or replacing a provider's offering of a service."""

    service_id: str = Field(..., min_length=1, max_length=100)
    hourly_rate_cents: int
    description: str = Field("", max_length=1000)
    category_id: str | None = Field(None, max_length=100)


class ServiceOffering(BaseModel):
    """Full service offering entity as stored."""

    id: UUID
    provider_id: UUID
    service_id: str
    category_id: str | None = None
    hourly_rate_cents: int
    description: str
    is_active: bool
    created_at: datetime
    updated_at: datetime
    version: int = 1

    model_config = {"from_attributes": True}
