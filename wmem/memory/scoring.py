"""Relevance scoring and threshold filtering.

Weaviate reports a cosine *distance* for vector queries and a fused
*score* for hybrid queries. Both are mapped onto one comparable
relevance score here, then filtered by a per-call minimum.
"""

from collections.abc import Iterable
from typing import Literal

from wmem.memory.models import MemoryEntry, SearchResult

RetrievalMode = Literal["vector", "hybrid"]

# 1.0 = pure vector, 0.0 = pure keyword (BM25)
DEFAULT_ALPHA = 0.75
KEYWORD_ALPHA = 0.0

# Thresholds, one per call site
RECALL_MIN_SCORE = 0.1
AUTO_RECALL_MIN_SCORE = 0.3
FORGET_MIN_SCORE = 0.7
AUTO_DELETE_SCORE = 0.9  # strictly greater than
DUPLICATE_MIN_SCORE = 0.95


def distance_to_score(distance: float | None) -> float:
    """Map cosine distance (0 identical, 2 opposite) to a score in [0, 1].

    A missing distance counts as orthogonal (score 0.5).
    """
    if distance is None:
        distance = 1.0
    distance = min(max(distance, 0.0), 2.0)
    return 1 - distance / 2


def hybrid_score(score: float | None) -> float:
    """Hybrid scores are already fused by the backend; use them as-is."""
    return score if score is not None else 0.0


def rank(
    candidates: Iterable[tuple[MemoryEntry, float | None]],
    mode: RetrievalMode,
    min_score: float,
) -> list[SearchResult]:
    """Score raw ``(entry, signal)`` pairs and drop those below *min_score*.

    *signal* is a distance in vector mode and a fused score in hybrid mode.
    Backend order is kept.
    """
    convert = distance_to_score if mode == "vector" else hybrid_score
    results = []
    for entry, signal in candidates:
        score = convert(signal)
        if score >= min_score:
            results.append(SearchResult(entry=entry, score=score))
    return results
