"""Quiz Storage - Persistencia sobre KV store."""

from .quiz_store import (
    AgentFSKeyValueStore,
    InMemoryKeyValueStore,
    KeyValueStore,
    ScheduleStore,
    UsedQuestionStore,
)

__all__ = [
    "KeyValueStore",
    "AgentFSKeyValueStore",
    "InMemoryKeyValueStore",
    "ScheduleStore",
    "UsedQuestionStore",
]
