"""
Storage factory – switch presence backend from config (lazy env version)
========================================================================

Centralizes selection of the presence backend (in-memory vs Postgres) so the
rest of the app stays ignorant of where heartbeats live.

- Reads environment **at call time** to avoid stale values in tests.
- Imports the DB backend **only if** the selected backend is "postgres".

Environment variables
---------------------
- PRESENCE_STORAGE_BACKEND: "memory" (default) or "postgres"
- PRESENCE_DB_DSN:          DSN string if backend=="postgres"
"""

import logging
import os
from typing import Optional

from presence_platform.config import settings
from presence_platform.storage.base import BasePresenceStore
from presence_platform.storage.storage import MemoryPresenceStore

log = logging.getLogger("presence.storage")


def get_store(backend: Optional[str] = None, **kwargs) -> BasePresenceStore:
    """
    Return a presence store based on configuration.

    Parameters
    ----------
    backend : str, optional
        "memory" (default) or "postgres". If omitted, reads PRESENCE_STORAGE_BACKEND.
    kwargs : dict
        Extra args for the backend. For postgres: dsn="...", connect_timeout=5.

    Raises
    ------
    ValueError
        Unknown backend, or postgres selected without a DSN.
    """
    be = (backend or os.getenv("PRESENCE_STORAGE_BACKEND", "memory")).strip().lower()
    log.debug("Selected presence backend: %r", be)

    if be == "memory":
        return MemoryPresenceStore()

    if be == "postgres":
        dsn = kwargs.get("dsn") or os.getenv("PRESENCE_DB_DSN", "")
        if not dsn:
            raise ValueError("DB_DSN is required for postgres backend (env PRESENCE_DB_DSN)")
        from presence_platform.storage.db_storage import DBPresenceStore
        timeout = kwargs.get("connect_timeout", settings.DB_CONNECT_TIMEOUT)
        return DBPresenceStore(dsn=dsn, connect_timeout=timeout)

    raise ValueError(f"Unknown storage backend: {be!r}")
