"""Near-duplicate suppression for memory writes.

The lookup and the following insert are not atomic. Two concurrent writers
of the same text can both miss each other and both store; deduplication is
eventual, not strict.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from wmem.memory.scoring import DUPLICATE_MIN_SCORE

if TYPE_CHECKING:
    from wmem.memory.models import SearchResult
    from wmem.memory.store import WeaviateMemoryStore

logger = logging.getLogger(__name__)


async def find_duplicate(
    store: WeaviateMemoryStore,
    text: str,
    vector: list[float] | None = None,
    min_score: float = DUPLICATE_MIN_SCORE,
) -> SearchResult | None:
    """Return the closest existing memory if it scores at least *min_score*.

    Vector search when we have an embedding, hybrid search otherwise.
    """
    if vector is not None:
        matches = await store.search(text, vector, limit=1, min_score=min_score)
    else:
        matches = await store.hybrid_search(text, limit=1, min_score=min_score)

    if not matches:
        return None
    logger.debug("Near-duplicate of %s (%.2f): %s", matches[0].entry.id, matches[0].score, text[:80])
    return matches[0]
