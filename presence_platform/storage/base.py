"""
Base storage interface for Presence Platform.

Purpose:
    Define a small, stable contract that multiple presence backends
    (in-memory, SQL) can implement without requiring changes to the
    register or the HTTP layer.

Testing & Coverage:
    These are abstract methods and are not executed directly in tests.
    We annotate them with `# pragma: no cover` so coverage tools don't
    penalize the project for un-runnable abstract declarations.

LLM Prompt Example:
    "Show how a narrow upsert / delete-older-than / count interface lets a
    presence counter run against an in-memory fake in tests and Postgres
    in production."
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

__all__ = ["PresenceRecord", "BasePresenceStore"]


@dataclass(frozen=True)
class PresenceRecord:
    """One visitor's last heartbeat."""
    identity: str
    last_seen: datetime
    page: str = "/"
    user_agent: Optional[str] = None


class BasePresenceStore(ABC):
    """Abstract base class for presence backends."""

    @abstractmethod  # pragma: no cover
    def upsert(
        self,
        identity: str,
        last_seen: datetime,
        page: Optional[str] = None,
        user_agent: Optional[str] = None,
    ) -> None:
        """
        Insert a record for `identity` or refresh its `last_seen`.

        Concurrent upserts for the same identity are last-write-wins.
        """
        raise NotImplementedError

    @abstractmethod  # pragma: no cover
    def delete_older_than(self, cutoff: datetime) -> int:
        """
        Remove every record whose `last_seen` is at or before `cutoff`.

        Returns:
            int: Number of records removed.
        """
        raise NotImplementedError

    @abstractmethod  # pragma: no cover
    def count(self, newer_than: Optional[datetime] = None) -> int:
        """
        Count stored records, only those with `last_seen > newer_than` when given.
        """
        raise NotImplementedError

    @abstractmethod  # pragma: no cover
    def remove(self, identity: str) -> bool:
        """
        Delete the record for `identity`.

        Returns:
            bool: True if a record was removed.
        """
        raise NotImplementedError

    @abstractmethod  # pragma: no cover
    def get(self, identity: str) -> Optional[PresenceRecord]:
        """Return the record for `identity` or None."""
        raise NotImplementedError
