"""Fresh-read retry for optimistic concurrency conflicts."""

import functools
import logging
from typing import Callable, TypeVar

from core.exceptions import Conflict

logger = logging.getLogger(__name__)

T = TypeVar("T")


def with_conflict_retry(method: Callable[..., T]) -> Callable[..., T]:
    """
    Re-run a service method after a Conflict.

    The wrapped method must do its own read-validate-write, so a re-run sees
    fresh state and re-validates. The number of retries comes from the
    service's ``conflict_retries`` attribute (default 1). Only Conflict is
    retried; every other error propagates on the first attempt.
    """

    @functools.wraps(method)
    def wrapper(self, *args, **kwargs) -> T:
        retries = getattr(self, "conflict_retries", 1)
        attempt = 0
        while True:
            try:
                return method(self, *args, **kwargs)
            except Conflict as e:
                if attempt >= retries:
                    raise
                attempt += 1
                logger.warning(
                    f"{method.__qualname__} hit a conflict on {e.table} {e.entity_id}, "
                    f"retrying with a fresh read ({attempt}/{retries})"
                )

    return wrapper
