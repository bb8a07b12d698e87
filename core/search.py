"""
Search and ranking over open tasks and active provider offerings.

Results are lazy: building a SearchResults reads nothing. Each iteration
reads the store again and yields a fresh ranked sequence, so a result object
can be held and re-walked. Paging is the caller's business via window().

Ranking is deterministic. Every sort key ends with ascending id.
"""

import logging
from datetime import timedelta
from itertools import islice
from typing import Callable, Generic, Iterator, List, TypeVar

from clients.identity import ProfileDirectory
from clients.store import RecordStore
from core.models import (
    AvailabilitySlot,
    DateWindow,
    ProviderMatch,
    SearchQuery,
    ServiceOffering,
    SortKey,
    Task,
    TaskStatus,
)
from utils.timezone import day_of_week

logger = logging.getLogger(__name__)

T = TypeVar("T")


class SearchResults(Generic[T]):
    """Finite, restartable ranked sequence."""

    def __init__(self, loader: Callable[[], List[T]]):
        self._loader = loader

    def __iter__(self) -> Iterator[T]:
        return iter(self._loader())

    def window(self, offset: int = 0, limit: int = 20) -> list[T]:
        """
        One page of results.

        Raises:
            ValueError: If offset or limit is negative
        """
        if offset < 0 or limit < 0:
            raise ValueError("offset and limit must be non-negative")
        return list(islice(iter(self), offset, offset + limit))


def _contains(haystack: str | None, needle: str) -> bool:
    return haystack is not None and needle.casefold() in haystack.casefold()


def _weekdays_in(window: DateWindow) -> set[int]:
    """Weekday indexes (0 = Sunday) of the dates inside the window."""
    span = (window.end - window.start).days + 1
    return {day_of_week(window.start + timedelta(days=i)) for i in range(min(span, 7))}


class SearchEngine:
    """Filters and ranks tasks and providers against a SearchQuery."""

    def __init__(
        self,
        store: RecordStore,
        profiles: ProfileDirectory,
        default_task_price_cents: int = 5000,
        default_rating: float = 4.5,
    ):
        self.store = store
        self.profiles = profiles
        self.default_task_price_cents = default_task_price_cents
        self.default_rating = default_rating

    # =========================================================================
    # TASKS
    # =========================================================================

    def search_tasks(self, query: SearchQuery) -> SearchResults[Task]:
        """
        Search open tasks.

        Free text matches title or description; location is a substring
        match; the date window applies to the posting date.
        """
        return SearchResults(lambda: self._rank_tasks(query))

    def _rank_tasks(self, query: SearchQuery) -> list[Task]:
        rows = self.store.list("tasks", filters={"status": TaskStatus.OPEN.value})
        tasks = [t for t in (Task.model_validate(r) for r in rows) if self._task_matches(t, query)]

        tasks.sort(key=lambda t: str(t.id))
        if query.sort_key == SortKey.NEWEST:
            tasks.sort(key=lambda t: t.created_at, reverse=True)
        elif query.sort_key == SortKey.PRICE_LOW:
            tasks.sort(key=self._task_price)
        elif query.sort_key == SortKey.PRICE_HIGH:
            tasks.sort(key=self._task_price, reverse=True)
        # Tasks carry no rating; RATING leaves them in id order

        logger.debug(f"Task search matched {len(tasks)} task(s)")
        return tasks

    def _task_price(self, task: Task) -> int:
        return task.display_price_cents(self.default_task_price_cents)

    @staticmethod
    def _task_matches(task: Task, query: SearchQuery) -> bool:
        if query.free_text and not (
            _contains(task.title, query.free_text) or _contains(task.description, query.free_text)
        ):
            return False
        if query.category_id is not None and task.category_id != query.category_id:
            return False
        if query.location and not _contains(task.location, query.location):
            return False
        if query.date_window is not None and not query.date_window.contains(task.created_at.date()):
            return False
        return True

    # =========================================================================
    # PROVIDERS
    # =========================================================================

    def search_providers(self, query: SearchQuery) -> SearchResults[ProviderMatch]:
        """
        Search active offerings together with their provider profiles.

        Free text matches the offering's service or description, or the
        provider's display name. Location matches the profile. With a date
        window, only providers holding an available slot on a weekday inside
        the window qualify. Offerings whose provider has no profile are not
        listed.
        """
        return SearchResults(lambda: self._rank_providers(query))

    def _rank_providers(self, query: SearchQuery) -> list[ProviderMatch]:
        rows = self.store.list("service_offerings", filters={"is_active": True})
        offerings = [ServiceOffering.model_validate(r) for r in rows]
        if query.category_id is not None:
            offerings = [o for o in offerings if o.category_id == query.category_id]

        profiles = self.profiles.get_profiles({o.provider_id for o in offerings})
        matches = [
            ProviderMatch(offering=o, profile=profiles[o.provider_id])
            for o in offerings
            if o.provider_id in profiles
        ]
        matches = [m for m in matches if self._provider_matches(m, query)]

        if query.date_window is not None:
            open_days = self._open_weekdays({m.offering.provider_id for m in matches})
            wanted = _weekdays_in(query.date_window)
            matches = [m for m in matches if open_days.get(m.offering.provider_id, set()) & wanted]

        matches.sort(key=lambda m: str(m.offering.id))
        if query.sort_key == SortKey.NEWEST:
            matches.sort(key=lambda m: m.offering.created_at, reverse=True)
        elif query.sort_key == SortKey.PRICE_LOW:
            matches.sort(key=lambda m: m.offering.hourly_rate_cents)
        elif query.sort_key == SortKey.PRICE_HIGH:
            matches.sort(key=lambda m: m.offering.hourly_rate_cents, reverse=True)
        elif query.sort_key == SortKey.RATING:
            matches.sort(key=self._rating_key, reverse=True)

        logger.debug(f"Provider search matched {len(matches)} offering(s)")
        return matches

    def _rating_key(self, match: ProviderMatch) -> tuple[float, int]:
        rating = match.profile.rating
        return (self.default_rating if rating is None else rating, match.profile.review_count)

    @staticmethod
    def _provider_matches(match: ProviderMatch, query: SearchQuery) -> bool:
        if query.free_text and not (
            _contains(match.offering.service_id, query.free_text)
            or _contains(match.offering.description, query.free_text)
            or _contains(match.profile.display_name, query.free_text)
        ):
            return False
        if query.location and not _contains(match.profile.location, query.location):
            return False
        return True

    def _open_weekdays(self, provider_ids: set) -> dict:
        if not provider_ids:
            return {}
        rows = self.store.list(
            "availability_slots",
            filters={
                "provider_id": list(provider_ids),
                "is_available": True,
                "removed_at": None,
            },
        )
        days: dict = {}
        for slot in (AvailabilitySlot.model_validate(r) for r in rows):
            days.setdefault(slot.provider_id, set()).add(slot.day_of_week)
        return days
