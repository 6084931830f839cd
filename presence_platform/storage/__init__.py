from .base import BasePresenceStore, PresenceRecord
from .storage import MemoryPresenceStore
from .storage_factory import get_store

__all__ = ["BasePresenceStore", "PresenceRecord", "MemoryPresenceStore", "get_store"]
