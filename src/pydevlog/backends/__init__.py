"""Collaborator protocols and the backends shipped with pydevlog."""

from pydevlog.backends.memory import MemoryEventStore, MemoryResultCache, ProjectEntry, StaticProjectDirectory
from pydevlog.backends.protocols import ColumnLabelLookup, EventStore, ResultCache, SecretLookup
from pydevlog.backends.redis_cache import RedisResultCache
from pydevlog.backends.sqlite import SqliteEventStore

__all__ = [
    "ColumnLabelLookup",
    "EventStore",
    "MemoryEventStore",
    "MemoryResultCache",
    "ProjectEntry",
    "RedisResultCache",
    "ResultCache",
    "SecretLookup",
    "SqliteEventStore",
    "StaticProjectDirectory",
]
