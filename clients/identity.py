"""
Identity & profile collaborators.

Authentication and profile storage live outside the marketplace core. The
core only needs two questions answered: who is calling, and what public
profile data (name, rating, reviews) belongs to a provider.
"""

import logging
import threading
from typing import Dict, Iterable, Protocol
from uuid import UUID

from core.models import Actor, ProviderProfile

logger = logging.getLogger(__name__)


class UnknownIdentityError(Exception):
    """Token does not resolve to a user."""


class IdentityProvider(Protocol):
    """Resolves a bearer token to the acting user."""

    def current_user(self, token: str) -> Actor:
        """
        Raises:
            UnknownIdentityError: If the token is invalid or expired
        """
        ...


class ProfileDirectory(Protocol):
    """Looks up public provider profiles."""

    def get_profiles(self, user_ids: Iterable[UUID]) -> Dict[UUID, ProviderProfile]:
        """Return profiles for the ids that exist; unknown ids are omitted."""
        ...


class InMemoryProfileDirectory:
    """ProfileDirectory kept in process memory (local runs and tests)."""

    def __init__(self, profiles: Iterable[ProviderProfile] = ()):
        self._profiles: Dict[UUID, ProviderProfile] = {p.id: p for p in profiles}
        self._lock = threading.Lock()

    def put(self, profile: ProviderProfile) -> None:
        with self._lock:
            self._profiles[profile.id] = profile

    def get_profiles(self, user_ids: Iterable[UUID]) -> Dict[UUID, ProviderProfile]:
        with self._lock:
            return {uid: self._profiles[uid] for uid in user_ids if uid in self._profiles}


class StaticTokenIdentity:
    """IdentityProvider over a fixed token -> actor table."""

    def __init__(self, actors_by_token: Dict[str, Actor] | None = None):
        self._actors = dict(actors_by_token or {})

    def register(self, token: str, actor: Actor) -> None:
        self._actors[token] = actor

    def current_user(self, token: str) -> Actor:
        actor = self._actors.get(token)
        if actor is None:
            logger.warning("Rejected unknown bearer token")
            raise UnknownIdentityError("Unknown or expired token")
        return actor
