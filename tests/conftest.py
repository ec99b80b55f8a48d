"""Shared test fixtures."""

import re
import uuid

import pytest

from wmem.config import MemoryConfig
from wmem.errors import InvalidIdentifier
from wmem.memory.embeddings import BackendEmbedding
from wmem.memory.engine import MemoryEngine
from wmem.memory.models import MemoryEntry
from wmem.memory.scoring import rank
from wmem.memory.store import is_valid_memory_id

RAW_CONFIG = {
    "weaviate": {"url": "http://localhost:8080"},
    "embedding": {"provider": "weaviate"},
    "collectionName": "TestMemory",
}


def _words(text: str) -> set[str]:
    return set(re.findall(r"\w+", text.lower()))


def similarity(a: str, b: str) -> float:
    """Jaccard overlap of word sets; 1.0 for identical text."""
    wa, wb = _words(a), _words(b)
    if not wa or not wb:
        return 0.0
    return len(wa & wb) / len(wa | wb)


class FakeMemoryStore:
    """In-memory stand-in for WeaviateMemoryStore.

    Similarity is word overlap, reported as a cosine distance for vector
    queries and as a fused score for hybrid ones, so the real scoring code
    still runs.
    """

    def __init__(self) -> None:
        self.entries: dict[str, MemoryEntry] = {}
        self.deleted: list[str] = []
        self.closed = False
        self._clock = 1_700_000_000_000

    async def store(
        self,
        text,
        importance,
        category,
        source,
        session_key="",
        vector=None,
    ) -> MemoryEntry:
        self._clock += 1
        entry = MemoryEntry(
            id=str(uuid.uuid4()),
            text=text,
            importance=importance,
            category=category,
            source=source,
            session_key=session_key,
            created_at=self._clock,
        )
        self.entries[entry.id] = entry
        return entry

    def _ranked(self, query: str, limit: int) -> list[tuple[MemoryEntry, float]]:
        scored = [(e, similarity(query, e.text)) for e in self.entries.values()]
        scored.sort(key=lambda pair: pair[1], reverse=True)
        return scored[:limit]

    async def search(self, query_text, vector=None, limit=5, min_score=0.5):
        pairs = [(e, 2 * (1 - s)) for e, s in self._ranked(query_text, limit)]
        return rank(pairs, "vector", min_score)

    async def hybrid_search(self, query_text, limit=5, min_score=0.5, alpha=0.75, vector=None):
        return rank(self._ranked(query_text, limit), "hybrid", min_score)

    async def delete(self, memory_id: str) -> bool:
        if not is_valid_memory_id(memory_id):
            raise InvalidIdentifier(memory_id)
        self.entries.pop(memory_id, None)
        self.deleted.append(memory_id)
        return True

    async def count(self) -> int:
        return len(self.entries)

    async def close(self) -> None:
        self.closed = True


@pytest.fixture
def raw_config() -> dict:
    return {**RAW_CONFIG}


@pytest.fixture
def config() -> MemoryConfig:
    return MemoryConfig.parse(RAW_CONFIG)


@pytest.fixture
def fake_store() -> FakeMemoryStore:
    return FakeMemoryStore()


@pytest.fixture
def engine(config: MemoryConfig, fake_store: FakeMemoryStore) -> MemoryEngine:
    """Engine over the in-memory store, installed as the shared instance."""
    e = MemoryEngine(config, store=fake_store, embedding=BackendEmbedding())
    MemoryEngine.install(e)
    return e


@pytest.fixture(autouse=True)
def _reset_engine():
    MemoryEngine._reset()
    yield
    MemoryEngine._reset()
