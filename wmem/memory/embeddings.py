"""Embedding strategies.

Chosen once from config:

- ``ExternalEmbedding``: we call OpenAI and hand vectors to Weaviate.
- ``BackendEmbedding``: Weaviate's own vectorizer embeds the text, so
  there is nothing to compute client-side.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

from wmem.errors import BackendError

if TYPE_CHECKING:
    from openai import AsyncOpenAI

    from wmem.config import MemoryConfig

logger = logging.getLogger(__name__)


class EmbeddingStrategy(ABC):
    """How vectors for stored and queried text are produced."""

    #: True when ``embed`` returns vectors we must pass to the store.
    supplies_vectors: bool = False

    @abstractmethod
    async def embed(self, text: str) -> list[float] | None:
        """Return a vector for *text*, or None if the backend vectorizes."""
        ...


class BackendEmbedding(EmbeddingStrategy):
    supplies_vectors = False

    async def embed(self, text: str) -> list[float] | None:
        return None


class ExternalEmbedding(EmbeddingStrategy):
    """OpenAI embeddings API."""

    supplies_vectors = True

    def __init__(self, api_key: str, model: str, dimensions: int) -> None:
        self._api_key = api_key
        self.model = model
        self.dimensions = dimensions
        self._client: AsyncOpenAI | None = None

    def _get_client(self) -> AsyncOpenAI:
        if self._client is None:
            from openai import AsyncOpenAI

            self._client = AsyncOpenAI(api_key=self._api_key)
        return self._client

    async def embed(self, text: str) -> list[float] | None:
        try:
            response = await self._get_client().embeddings.create(model=self.model, input=text)
        except Exception as exc:
            msg = f"Embedding request failed: {exc}"
            raise BackendError(msg) from exc

        vector = list(response.data[0].embedding)
        if len(vector) != self.dimensions:
            msg = (
                f"Embedding model {self.model} returned {len(vector)} dimensions, "
                f"expected {self.dimensions}"
            )
            raise BackendError(msg)
        return vector


def build_embedding(config: MemoryConfig) -> EmbeddingStrategy:
    """Pick the strategy for the configured provider."""
    if config.embedding.provider == "openai":
        dims = config.embedding.dimensions
        logger.debug("Using OpenAI embeddings (%s, %d dims)", config.embedding.model, dims)
        return ExternalEmbedding(config.embedding.api_key or "", config.embedding.model, dims)
    logger.debug("Using Weaviate vectorizer (%s)", config.embedding.model)
    return BackendEmbedding()
