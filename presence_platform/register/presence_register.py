"""
PresenceRegister module for Presence Platform.

Responsibilities:
    - Record visitor heartbeats (insert or refresh last_seen)
    - Count currently active visitors with lazy, on-read expiry
    - Remove a visitor on explicit leave

Design notes:
    - Lazy expiry: stale rows are deleted as a side effect of count_active;
      there is no background sweeper, timer, or worker thread.
    - One cutoff per call: count_active computes `cutoff = now - window`
      once, deletes rows at or before it, then counts only rows newer than
      it. A row removed by the cleanup step can therefore never be counted
      by the same call, even when the two steps are separate statements.
    - A row that expires between two calls is simply not counted by the
      next one (conservative undercount).
    - Store failures propagate unchanged. There is no retry, no cached
      count and no fallback to zero.
    - The clock is injected so tests can move time without sleeping.

LLM Prompt Example:
    "Explain why computing a single cutoff and filtering the count by it
    keeps a delete-then-count sequence consistent without a transaction."
"""

import logging
from datetime import datetime, timedelta, timezone
from typing import Callable, Optional, Union

from ..config import ACTIVE_WINDOW
from ..storage.base import BasePresenceStore

log = logging.getLogger("presence.register")

Identity = Union[str, int]
Clock = Callable[[], datetime]


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class PresenceRegister:
    """
    Tracks which identities are currently present.

    LLM Prompt Example:
        "Show how to unit test a TTL-based presence counter with a fake
        clock and an in-memory store."
    """

    def __init__(
        self,
        store: BasePresenceStore,
        clock: Clock = utcnow,
        window: timedelta = ACTIVE_WINDOW,
    ):
        """
        Args:
            store (BasePresenceStore): Backend holding the presence records.
            clock (Callable[[], datetime]): Source of the current time (tz-aware UTC).
            window (timedelta): How long after its last heartbeat a visitor stays active.
        """
        self.store = store
        self.clock = clock
        self.window = window

    @staticmethod
    def _key(identity: Identity) -> str:
        return str(identity)

    def record_heartbeat(
        self,
        identity: Identity,
        page: Optional[str] = None,
        user_agent: Optional[str] = None,
    ) -> None:
        """
        Insert or refresh the record for `identity` with last_seen = now.

        Idempotent: repeating it only moves last_seen forward.

        Raises:
            StoreUnavailable: If the backend cannot be reached.
        """
        self.store.upsert(self._key(identity), self.clock(), page=page, user_agent=user_agent)

    def count_active(self) -> int:
        """
        Remove expired records, then count the ones still inside the window.

        A record is active iff `now - last_seen < window`; a record exactly
        `window` old is expired.

        Returns:
            int: Number of active identities, possibly zero.

        Raises:
            StoreUnavailable: If the backend cannot be reached. Callers must
            treat this as "count unknown", never as zero.
        """
        cutoff = self.clock() - self.window
        removed = self.store.delete_older_than(cutoff)
        if removed:
            log.debug("Expired %d presence record(s) at or before %s", removed, cutoff.isoformat())
        return self.store.count(newer_than=cutoff)

    def leave(self, identity: Identity) -> bool:
        """Remove `identity` immediately. Returns True if it was present."""
        return self.store.remove(self._key(identity))
