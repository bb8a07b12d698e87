"""Search query and result models."""

from datetime import date
from enum import Enum

from pydantic import BaseModel, Field, model_validator

from core.models.offering import ServiceOffering
from core.models.profile import ProviderProfile


class SortKey(str, Enum):
    """Result ordering."""

    NEWEST = "newest"
    PRICE_LOW = "price_low"
    PRICE_HIGH = "price_high"
    RATING = "rating"


class DateWindow(BaseModel):
    """Inclusive calendar date range."""

    start: date
    end: date

    @model_validator(mode="after")
    def validate_order(self) -> "DateWindow":
        if self.start > self.end:
            raise ValueError("Date window start must not be after end")
        return self

    def contains(self, d: date) -> bool:
        return self.start <= d <= self.end


class SearchQuery(BaseModel):
    """Filters are optional and AND-combined."""

    free_text: str | None = Field(None, max_length=200)
    category_id: str | None = None
    location: str | None = Field(None, max_length=200)
    date_window: DateWindow | None = None
    sort_key: SortKey = SortKey.NEWEST


class ProviderMatch(BaseModel):
    """One provider search hit: an active offering plus its provider profile."""

    offering: ServiceOffering
    profile: ProviderProfile
