"""
Storage module - Database, device persistence, and offline queue.
"""

from src.services.storage.database import (
    Base,
    close_db,
    create_engine_for,
    get_engine,
    get_session,
    init_db,
    reset_engine,
)
from src.services.storage.kv_store import KeyValueStore
from src.services.storage.models_db import KeyValue, SentenceRecord, UploadRecord
from src.services.storage.profile_store import ProfileStore
from src.services.storage.queue_store import OfflineQueueStore
from src.services.storage.repository import DatasetRepository

__all__ = [
    "Base",
    "DatasetRepository",
    "KeyValue",
    "KeyValueStore",
    "OfflineQueueStore",
    "ProfileStore",
    "SentenceRecord",
    "UploadRecord",
    "close_db",
    "create_engine_for",
    "get_engine",
    "get_session",
    "init_db",
    "reset_engine",
]
