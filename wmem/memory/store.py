"""Weaviate-backed memory store.

The connection is opened lazily on first use. Initialization is a small
state machine (``StoreState``) with one shared in-flight task, so
concurrent first callers wait on the same connect instead of racing to
open several clients.
"""

from __future__ import annotations

import asyncio
import enum
import logging
import re
import time
import uuid
from typing import TYPE_CHECKING, Any
from urllib.parse import urlparse

import weaviate
from weaviate.classes.config import Configure, DataType, Property
from weaviate.classes.init import Auth
from weaviate.classes.query import MetadataQuery

from wmem.config import DEFAULT_GRPC_PORT, DEFAULT_WEAVIATE_PORT
from wmem.errors import BackendError, InvalidIdentifier
from wmem.memory.models import (
    DEFAULT_IMPORTANCE,
    MEMORY_CATEGORIES,
    MEMORY_SOURCES,
    MemoryEntry,
    SearchResult,
)
from wmem.memory.scoring import DEFAULT_ALPHA, rank

if TYPE_CHECKING:
    from weaviate import WeaviateAsyncClient
    from weaviate.collections import CollectionAsync

    from wmem.config import MemoryConfig

logger = logging.getLogger(__name__)

UUID_PATTERN = re.compile(
    r"^[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}$",
    re.IGNORECASE,
)

RETURN_PROPERTIES = ["text", "importance", "category", "source", "sessionKey", "createdAt"]


class StoreState(enum.Enum):
    UNINITIALIZED = "uninitialized"
    INITIALIZING = "initializing"
    READY = "ready"
    CLOSED = "closed"


def is_valid_memory_id(memory_id: str) -> bool:
    return bool(UUID_PATTERN.fullmatch(memory_id))


def create_client(config: MemoryConfig) -> WeaviateAsyncClient:
    """Build (but do not connect) an async Weaviate client for *config*."""
    parsed = urlparse(config.weaviate.url)
    headers = {}
    if config.embedding.api_key:
        # Lets a text2vec-openai vectorizer authenticate on our behalf.
        headers["X-OpenAI-Api-Key"] = config.embedding.api_key
    auth = Auth.api_key(config.weaviate.api_key) if config.weaviate.api_key else None
    return weaviate.use_async_with_local(
        host=parsed.hostname or "localhost",
        port=parsed.port or DEFAULT_WEAVIATE_PORT,
        grpc_port=DEFAULT_GRPC_PORT,
        headers=headers or None,
        auth_credentials=auth,
    )


def entry_from_object(obj: Any) -> MemoryEntry:
    """Convert a Weaviate result object into a MemoryEntry."""
    props = obj.properties or {}
    category = props.get("category")
    source = props.get("source")
    importance = props.get("importance")
    return MemoryEntry(
        id=str(obj.uuid),
        text=str(props.get("text") or ""),
        importance=float(importance) if importance is not None else DEFAULT_IMPORTANCE,
        category=category if category in MEMORY_CATEGORIES else "other",
        source=source if source in MEMORY_SOURCES else "manual",
        session_key=str(props.get("sessionKey") or ""),
        created_at=int(props.get("createdAt") or 0),
    )


class WeaviateMemoryStore:
    """Memory persistence and retrieval against one Weaviate collection."""

    def __init__(self, config: MemoryConfig) -> None:
        self._config = config
        self._client: WeaviateAsyncClient | None = None
        self._collection: CollectionAsync | None = None
        self._state = StoreState.UNINITIALIZED
        self._init_task: asyncio.Task[None] | None = None

    @property
    def state(self) -> StoreState:
        return self._state

    @property
    def collection_name(self) -> str:
        return self._config.collection_name

    # -- Lifecycle -----------------------------------------------------------

    async def _ensure_ready(self) -> CollectionAsync:
        if self._state is StoreState.READY and self._collection is not None:
            return self._collection
        if self._state is StoreState.CLOSED:
            raise BackendError("Memory store is closed")

        if self._init_task is None:
            self._state = StoreState.INITIALIZING
            self._init_task = asyncio.create_task(self._initialize())

        # shield: a cancelled caller must not cancel everyone's init
        await asyncio.shield(self._init_task)
        if self._collection is None:
            raise BackendError("Memory store is closed")
        return self._collection

    async def _initialize(self) -> None:
        name = self._config.collection_name
        client = None
        try:
            client = create_client(self._config)
            await client.connect()
            if not await client.collections.exists(name):
                await self._create_collection(client)
                logger.info("Created Weaviate collection %s", name)
            collection = client.collections.get(name)
        except Exception as exc:
            if self._state is StoreState.INITIALIZING:
                # allow the next caller to retry
                self._state = StoreState.UNINITIALIZED
                self._init_task = None
            if client is not None:
                await _close_client(client)
            msg = f"Failed to connect to Weaviate at {self._config.weaviate.url}: {exc}"
            raise BackendError(msg) from exc

        if self._state is StoreState.CLOSED:
            # close() ran while we were connecting
            await _close_client(client)
            return

        self._client = client
        self._collection = collection
        self._state = StoreState.READY
        logger.info("Memory store ready (collection: %s)", name)

    async def _create_collection(self, client: WeaviateAsyncClient) -> None:
        properties = [
            Property(name="text", data_type=DataType.TEXT),
            Property(name="importance", data_type=DataType.NUMBER, skip_vectorization=True),
            Property(name="category", data_type=DataType.TEXT, skip_vectorization=True),
            Property(name="source", data_type=DataType.TEXT, skip_vectorization=True),
            Property(name="sessionKey", data_type=DataType.TEXT, skip_vectorization=True),
            Property(name="createdAt", data_type=DataType.INT, skip_vectorization=True),
        ]

        if self._config.embedding.provider == "weaviate":
            await client.collections.create(
                self._config.collection_name,
                properties=properties,
                vectorizer_config=Configure.Vectorizer.text2vec_openai(
                    model=self._config.embedding.model,
                    vectorize_collection_name=False,
                ),
            )
        else:
            # We supply vectors ourselves
            await client.collections.create(
                self._config.collection_name,
                properties=properties,
                vectorizer_config=Configure.Vectorizer.none(),
                vector_index_config=Configure.VectorIndex.hnsw(),
            )

    async def close(self) -> None:
        """Close the connection. The store cannot be used afterwards."""
        self._state = StoreState.CLOSED
        self._init_task = None
        self._collection = None
        if self._client is not None:
            client, self._client = self._client, None
            await _close_client(client)

    # -- Write ---------------------------------------------------------------

    async def store(
        self,
        text: str,
        importance: float,
        category: str,
        source: str,
        session_key: str = "",
        vector: list[float] | None = None,
    ) -> MemoryEntry:
        """Persist a new memory. The store assigns ``id`` and ``created_at``."""
        collection = await self._ensure_ready()
        entry = MemoryEntry(
            id=str(uuid.uuid4()),
            text=text,
            importance=importance,
            category=category,
            source=source,
            session_key=session_key,
            created_at=int(time.time() * 1000),
        )
        try:
            await collection.data.insert(
                properties=entry.to_properties(),
                uuid=entry.id,
                vector=vector,
            )
        except Exception as exc:
            msg = f"Failed to store memory: {exc}"
            raise BackendError(msg) from exc

        logger.debug("Stored memory [%s/%s]: %s", source, category, text[:80])
        return entry

    # -- Read ----------------------------------------------------------------

    async def search(
        self,
        query_text: str,
        vector: list[float] | None = None,
        limit: int = 5,
        min_score: float = 0.5,
    ) -> list[SearchResult]:
        """Nearest-neighbour search.

        Uses *vector* when given, otherwise lets Weaviate vectorize
        *query_text*. Scores are ``1 - distance / 2``.
        """
        collection = await self._ensure_ready()
        try:
            if vector is not None:
                response = await collection.query.near_vector(
                    near_vector=vector,
                    limit=limit,
                    return_metadata=MetadataQuery(distance=True),
                    return_properties=RETURN_PROPERTIES,
                )
            else:
                response = await collection.query.near_text(
                    query=query_text,
                    limit=limit,
                    return_metadata=MetadataQuery(distance=True),
                    return_properties=RETURN_PROPERTIES,
                )
        except Exception as exc:
            msg = f"Vector search failed: {exc}"
            raise BackendError(msg) from exc

        objects = response.objects if response is not None else []
        return rank(
            ((entry_from_object(o), _metadata(o, "distance")) for o in objects),
            "vector",
            min_score,
        )

    async def hybrid_search(
        self,
        query_text: str,
        limit: int = 5,
        min_score: float = 0.5,
        alpha: float = DEFAULT_ALPHA,
        vector: list[float] | None = None,
    ) -> list[SearchResult]:
        """Blend of vector and BM25 relevance, weighted by *alpha*."""
        collection = await self._ensure_ready()
        try:
            response = await collection.query.hybrid(
                query=query_text,
                alpha=alpha,
                vector=vector,
                limit=limit,
                return_metadata=MetadataQuery(score=True),
                return_properties=RETURN_PROPERTIES,
            )
        except Exception as exc:
            msg = f"Hybrid search failed: {exc}"
            raise BackendError(msg) from exc

        objects = response.objects if response is not None else []
        return rank(
            ((entry_from_object(o), _metadata(o, "score")) for o in objects),
            "hybrid",
            min_score,
        )

    async def count(self) -> int:
        collection = await self._ensure_ready()
        try:
            result = await collection.aggregate.over_all(total_count=True)
        except Exception as exc:
            msg = f"Failed to count memories: {exc}"
            raise BackendError(msg) from exc
        return result.total_count or 0

    # -- Delete --------------------------------------------------------------

    async def delete(self, memory_id: str) -> bool:
        """Delete a memory by ID. The ID format is checked before any I/O."""
        if not is_valid_memory_id(memory_id):
            raise InvalidIdentifier(memory_id)
        collection = await self._ensure_ready()
        try:
            await collection.data.delete_by_id(memory_id)
        except Exception as exc:
            msg = f"Failed to delete memory {memory_id}: {exc}"
            raise BackendError(msg) from exc
        logger.info("Deleted memory: %s", memory_id)
        return True


def _metadata(obj: Any, name: str) -> float | None:
    metadata = getattr(obj, "metadata", None)
    return getattr(metadata, name, None) if metadata is not None else None


async def _close_client(client: WeaviateAsyncClient) -> None:
    try:
        await client.close()
    except Exception:
        logger.warning("Error while closing Weaviate client", exc_info=True)
