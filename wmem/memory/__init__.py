"""Hybrid recall and capture engine."""

from wmem.memory.engine import ForgetOutcome, MemoryEngine, MemoryStats, StoreOutcome
from wmem.memory.models import MemoryEntry, SearchResult
from wmem.memory.store import StoreState, WeaviateMemoryStore

__all__ = [
    "ForgetOutcome",
    "MemoryEngine",
    "MemoryEntry",
    "MemoryStats",
    "SearchResult",
    "StoreOutcome",
    "StoreState",
    "WeaviateMemoryStore",
]
