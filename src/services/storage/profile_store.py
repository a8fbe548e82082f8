"""Persisted respondent profile for the operator device."""

import logging

from pydantic import ValidationError

from src.core.exceptions import ProfileIncompleteError
from src.core.models import UserProfile
from src.services.storage.kv_store import KeyValueStore

logger = logging.getLogger(__name__)

PROFILE_KEY = "user_meta"


class ProfileStore:
    """Loads and saves the current :class:`UserProfile`."""

    def __init__(self, kv: KeyValueStore) -> None:
        self._kv = kv

    async def load(self) -> UserProfile | None:
        """Return the saved profile, or None if nothing usable is stored."""
        raw = await self._kv.get_item(PROFILE_KEY)
        if raw is None:
            return None
        try:
            return UserProfile.model_validate_json(raw)
        except ValidationError:
            logger.warning("Ignoring unreadable saved profile")
            return None

    async def save(self, profile: UserProfile) -> UserProfile:
        """Persist *profile*.

        Raises:
            ProfileIncompleteError: If name or age is blank.
        """
        if not profile.name.strip() or not profile.age.strip():
            raise ProfileIncompleteError()
        await self._kv.set_item(PROFILE_KEY, profile.model_dump_json())
        return profile

    async def reset(self) -> None:
        await self._kv.remove_item(PROFILE_KEY)
