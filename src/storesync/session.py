"""Session store: the current identity and its persisted form."""

from __future__ import annotations

import json
import logging

from storesync.codec import decode_session, encode_session
from storesync.storage.base import AsyncStorage
from storesync.types import Session

logger = logging.getLogger(__name__)

SESSION_KEY = "storesync:session"


class SessionStore:
    """Holds the active session and persists it as one blob.

    Token and profile are written together under a single key, so a
    persisted session is never half-present. ``generation`` changes every
    time a session is established or cleared; in-flight work compares it
    before applying results.
    """

    def __init__(self, storage: AsyncStorage, *, key: str = SESSION_KEY) -> None:
        self._storage = storage
        self._key = key
        self._current: Session | None = None
        self._generation = 0

    @property
    def current(self) -> Session | None:
        return self._current

    @property
    def token(self) -> str | None:
        return self._current.token if self._current else None

    @property
    def is_active(self) -> bool:
        return self._current is not None

    @property
    def is_admin(self) -> bool:
        return self._current is not None and self._current.is_admin

    @property
    def generation(self) -> int:
        return self._generation

    async def restore(self) -> Session | None:
        """Load the persisted session; corrupt data is discarded, never raised."""
        raw = await self._storage.get(self._key)
        if raw is None:
            return None
        try:
            session = decode_session(json.loads(raw))
        except Exception as exc:  # noqa: BLE001 - corrupt state is discarded
            logger.warning("Discarding corrupt persisted session: %s", exc)
            await self._storage.delete(self._key)
            return None
        self._current = session
        self._generation += 1
        logger.info("Restored session for user %s", session.profile.id)
        return session

    async def establish(self, session: Session) -> None:
        """Persist and activate ``session``."""
        await self._storage.set(self._key, json.dumps(encode_session(session)))
        self._current = session
        self._generation += 1
        logger.info("Established session for user %s", session.profile.id)

    async def clear(self, *extra_keys: str) -> None:
        """Drop the session and delete it (plus ``extra_keys``) from storage.

        Cache and pending-operation clearing is the owner's responsibility.
        """
        had_session = self._current is not None
        self._current = None
        self._generation += 1
        await self._storage.delete(self._key, *extra_keys)
        if had_session:
            logger.info("Cleared session")
