"""Signal store adapters: event queries and the entity directory."""

from .directory import EntityDirectory, SQLiteEntityDirectory
from .event_store import EventStore, SQLiteEventStore

__all__ = ["EventStore", "SQLiteEventStore", "EntityDirectory", "SQLiteEntityDirectory"]
