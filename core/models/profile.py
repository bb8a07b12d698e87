"""Read-only profile records supplied by the identity & profile store."""

from uuid import UUID

from pydantic import BaseModel, Field


class ProviderProfile(BaseModel):
    """Public profile fields used for search and ranking."""

    id: UUID
    display_name: str
    location: str | None = None
    rating: float | None = Field(None, ge=0, le=5)
    review_count: int = Field(0, ge=0)
