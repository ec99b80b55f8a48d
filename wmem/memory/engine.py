"""Memory lifecycle engine: recall, store, forget, stats.

Both the agent tools and the CLI go through this class so that
thresholds, deduplication, and delete disambiguation behave the same
everywhere.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Literal

from wmem.config import load_config
from wmem.memory.dedup import find_duplicate
from wmem.memory.embeddings import EmbeddingStrategy, build_embedding
from wmem.memory.models import (
    DEFAULT_IMPORTANCE,
    MEMORY_CATEGORIES,
    MEMORY_SOURCES,
    MemoryEntry,
    SearchResult,
)
from wmem.memory.scoring import (
    AUTO_DELETE_SCORE,
    DEFAULT_ALPHA,
    FORGET_MIN_SCORE,
    KEYWORD_ALPHA,
    RECALL_MIN_SCORE,
)
from wmem.memory.store import WeaviateMemoryStore

if TYPE_CHECKING:
    from wmem.config import MemoryConfig

logger = logging.getLogger(__name__)

RecallMode = Literal["hybrid", "vector", "keyword"]
RECALL_MODES: tuple[str, ...] = ("hybrid", "vector", "keyword")

FORGET_CANDIDATE_LIMIT = 5


@dataclass
class StoreOutcome:
    """Result of a store call: a new entry, or the duplicate that blocked it."""

    action: Literal["created", "duplicate"]
    entry: MemoryEntry | None = None
    existing: SearchResult | None = None


@dataclass
class ForgetOutcome:
    action: Literal["deleted", "not_found", "candidates"]
    memory_id: str | None = None
    text: str | None = None
    candidates: list[SearchResult] = field(default_factory=list)


@dataclass
class MemoryStats:
    count: int
    collection: str
    url: str


class MemoryEngine:
    """Orchestrates the store, embeddings, and policy thresholds.

    Get the shared instance via ``MemoryEngine.get()``; the plugin installs
    one at registration time, otherwise it is built from the config file.
    """

    _instance: MemoryEngine | None = None

    def __init__(
        self,
        config: MemoryConfig,
        store: WeaviateMemoryStore | None = None,
        embedding: EmbeddingStrategy | None = None,
    ) -> None:
        self.config = config
        self.backend = store or WeaviateMemoryStore(config)
        self.embedding = embedding or build_embedding(config)

    @classmethod
    def get(cls) -> MemoryEngine:
        """Return the shared engine, building it from the config file if needed."""
        if cls._instance is None:
            cls._instance = cls(load_config())
        return cls._instance

    @classmethod
    def install(cls, engine: MemoryEngine) -> None:
        cls._instance = engine

    @classmethod
    def _reset(cls) -> None:
        """Reset the singleton (for testing)."""
        cls._instance = None

    # -- Recall --------------------------------------------------------------

    async def recall(
        self,
        query: str,
        limit: int = 5,
        mode: RecallMode = "hybrid",
        min_score: float = RECALL_MIN_SCORE,
        alpha: float = DEFAULT_ALPHA,
    ) -> list[SearchResult]:
        """Search memories. An empty list means nothing relevant, not an error."""
        if mode == "vector":
            vector = await self.embedding.embed(query)
            return await self.backend.search(query, vector, limit=limit, min_score=min_score)
        if mode == "keyword":
            return await self.backend.hybrid_search(
                query, limit=limit, min_score=min_score, alpha=KEYWORD_ALPHA
            )
        if mode == "hybrid":
            vector = await self.embedding.embed(query)
            return await self.backend.hybrid_search(
                query, limit=limit, min_score=min_score, alpha=alpha, vector=vector
            )
        msg = f"Unknown recall mode: {mode}"
        raise ValueError(msg)

    # -- Store ---------------------------------------------------------------

    async def store(
        self,
        text: str,
        importance: float = DEFAULT_IMPORTANCE,
        category: str = "other",
        source: str = "manual",
        session_key: str = "",
    ) -> StoreOutcome:
        """Store *text* unless a near-duplicate already exists."""
        if not text or not text.strip():
            raise ValueError("Memory text must not be empty")
        if not 0.0 <= importance <= 1.0:
            msg = f"Importance must be between 0 and 1, got {importance}"
            raise ValueError(msg)
        if category not in MEMORY_CATEGORIES:
            msg = f"Unknown category '{category}'. Must be one of: {', '.join(MEMORY_CATEGORIES)}"
            raise ValueError(msg)
        if source not in MEMORY_SOURCES:
            msg = f"Unknown source '{source}'"
            raise ValueError(msg)

        vector = await self.embedding.embed(text)
        existing = await find_duplicate(self.backend, text, vector)
        if existing is not None:
            logger.info("Skipped duplicate of memory %s", existing.entry.id)
            return StoreOutcome(action="duplicate", existing=existing)

        entry = await self.backend.store(
            text,
            importance=importance,
            category=category,
            source=source,
            session_key=session_key,
            vector=vector,
        )
        return StoreOutcome(action="created", entry=entry)

    # -- Forget --------------------------------------------------------------

    async def forget(
        self,
        memory_id: str | None = None,
        query: str | None = None,
    ) -> ForgetOutcome:
        """Delete by ID, or by query when one match clearly dominates.

        If both are given, *memory_id* wins and *query* is ignored.
        """
        if memory_id:
            await self.backend.delete(memory_id)
            return ForgetOutcome(action="deleted", memory_id=memory_id)

        if not query:
            raise ValueError("Provide query or memoryId.")

        vector = await self.embedding.embed(query)
        results = await self.backend.hybrid_search(
            query,
            limit=FORGET_CANDIDATE_LIMIT,
            min_score=FORGET_MIN_SCORE,
            vector=vector,
        )
        if not results:
            return ForgetOutcome(action="not_found")

        if len(results) == 1 and results[0].score > AUTO_DELETE_SCORE:
            match = results[0].entry
            await self.backend.delete(match.id)
            return ForgetOutcome(action="deleted", memory_id=match.id, text=match.text)

        return ForgetOutcome(action="candidates", candidates=results)

    # -- Stats ---------------------------------------------------------------

    async def stats(self) -> MemoryStats:
        count = await self.backend.count()
        return MemoryStats(
            count=count,
            collection=self.config.collection_name,
            url=self.config.weaviate.url,
        )

    async def close(self) -> None:
        await self.backend.close()
