"""
Storage module for Presence Platform (in-memory implementation).

Responsibilities:
    - Upsert visitor heartbeats keyed by identity
    - Delete records at or before a cutoff
    - Count records, optionally only those newer than a cutoff

Design:
    - In-memory reference implementation of the BasePresenceStore contract.
    - A single lock guards the dict so concurrent request threads see
      each operation as atomic.
    - Per-process only; use the Postgres backend when several workers
      must share one view of who is online.
"""

import threading
from datetime import datetime
from typing import Dict, Optional

from .base import BasePresenceStore, PresenceRecord


class MemoryPresenceStore(BasePresenceStore):
    def __init__(self):
        """
        Initialize an empty store.

        Internal schema:
            self.records = {identity: PresenceRecord(...)}
        """
        self.records: Dict[str, PresenceRecord] = {}
        self._lock = threading.Lock()

    def upsert(
        self,
        identity: str,
        last_seen: datetime,
        page: Optional[str] = None,
        user_agent: Optional[str] = None,
    ) -> None:
        record = PresenceRecord(
            identity=identity,
            last_seen=last_seen,
            page=page or "/",
            user_agent=user_agent,
        )
        with self._lock:
            self.records[identity] = record

    def delete_older_than(self, cutoff: datetime) -> int:
        with self._lock:
            expired = [k for k, rec in self.records.items() if rec.last_seen <= cutoff]
            for k in expired:
                del self.records[k]
        return len(expired)

    def count(self, newer_than: Optional[datetime] = None) -> int:
        with self._lock:
            if newer_than is None:
                return len(self.records)
            return sum(1 for rec in self.records.values() if rec.last_seen > newer_than)

    def remove(self, identity: str) -> bool:
        with self._lock:
            return self.records.pop(identity, None) is not None

    def get(self, identity: str) -> Optional[PresenceRecord]:
        with self._lock:
            return self.records.get(identity)
