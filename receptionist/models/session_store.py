"""
Per-call dialogue state management for the text-turn path.

This module provides the SessionStateStore class which keeps the slots collected
for every active call, keyed by call identifier. Entries expire after a period of
inactivity measured from their last mutation; expired entries are evicted lazily
when they are read rather than by a background sweep.

The store also owns the per-call turn counters used to derive idempotent
telemetry identifiers, and hands out one asyncio lock per call so that
overlapping turns for the same call cannot lose updates.
"""

import asyncio
import logging
import time
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from typing import Any, AsyncIterator, Callable, Dict, Mapping, Optional, Union

from receptionist.config.constants import DEFAULT_SESSION_TTL_SECONDS, LOGGER_NAME
from receptionist.models.call_session import CallSession, ExtractedFields
from receptionist.models.idempotency import TurnCounter

logger = logging.getLogger(LOGGER_NAME)

Partial = Union[CallSession, ExtractedFields, Mapping[str, Any]]


@dataclass
class _Entry:
    session: CallSession
    updated_at: float


@dataclass
class _CallLock:
    lock: asyncio.Lock = field(default_factory=asyncio.Lock)
    users: int = 0


class SessionStateStore:
    """
    Keyed, TTL-expiring store of per-call dialogue slots.

    All operations are total: reading an unknown call returns None and clearing
    an absent call is not an error. The clock is injectable so tests can move
    time forward without sleeping.
    """

    def __init__(
        self,
        ttl_seconds: float = DEFAULT_SESSION_TTL_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ):
        """
        Args:
            ttl_seconds: Inactivity period after which a session reads as absent
            clock: Source of the current time in seconds
        """
        self.ttl_seconds = ttl_seconds
        self.clock = clock
        self.entries: Dict[str, _Entry] = {}
        self.turn_counter = TurnCounter()
        # Only calls with a turn holding or waiting on the lock have an entry
        self._locks: Dict[str, _CallLock] = {}

    def _expired(self, entry: _Entry) -> bool:
        return self.clock() - entry.updated_at > self.ttl_seconds

    def get(self, call_id: str) -> Optional[CallSession]:
        """
        Get the session for a call.

        Args:
            call_id: Identifier of the call

        Returns:
            The stored session, or None if it was never created or has expired
        """
        entry = self.entries.get(call_id)
        if entry is None:
            return None
        if self._expired(entry):
            logger.info(f"Session expired for call: {call_id}")
            self.entries.pop(call_id, None)
            return None
        return entry.session

    def merge(self, call_id: str, partial: Partial) -> CallSession:
        """
        Apply the non-null fields of ``partial`` to the session for a call.

        The session is created with every field null on first use. The mutation
        time is refreshed on every merge.

        Args:
            call_id: Identifier of the call
            partial: Incoming fields; null values are ignored

        Returns:
            The resulting session
        """
        current = self.get(call_id) or CallSession()
        merged = current.merged(partial)
        self.entries[call_id] = _Entry(session=merged, updated_at=self.clock())
        return merged

    def clear(self, call_id: str) -> None:
        """
        Remove the session for a call. Removing an absent call is a no-op.

        Args:
            call_id: Identifier of the call
        """
        if self.entries.pop(call_id, None) is not None:
            logger.info(f"Session cleared for call: {call_id}")

    def next_turn_index(self, call_id: str) -> int:
        """Return the current turn index for a call and advance the counter."""
        return self.turn_counter.next(call_id)

    @asynccontextmanager
    async def lock(self, call_id: str) -> AsyncIterator[None]:
        """
        Mutual-exclusion section for merge + resolve on one call.

        The underlying lock is dropped once no turn holds or waits on it, so
        finished calls leave nothing behind.

        Usage:
            async with store.lock(call_id):
                ...
        """
        entry = self._locks.get(call_id)
        if entry is None:
            entry = self._locks[call_id] = _CallLock()
        entry.users += 1
        try:
            async with entry.lock:
                yield
        finally:
            entry.users -= 1
            if entry.users == 0 and self._locks.get(call_id) is entry:
                del self._locks[call_id]
