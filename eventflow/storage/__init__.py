"""
Record store backends.
Supports InMemoryRecordStore, SqlRecordStore and RedisRecordStore.
"""

from .base import EVENTS, PARTICIPANTS, RecordStore
from .memory import InMemoryRecordStore
from .sql_store import SqlRecordStore
from .redis_store import RedisRecordStore

__all__ = [
    "EVENTS",
    "PARTICIPANTS",
    "RecordStore",
    "InMemoryRecordStore",
    "SqlRecordStore",
    "RedisRecordStore",
]
