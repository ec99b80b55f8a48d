"""Tests for the memory lifecycle engine."""

from unittest.mock import AsyncMock, MagicMock

import pytest

from wmem.errors import BackendError, InvalidIdentifier
from wmem.memory.embeddings import BackendEmbedding
from wmem.memory.engine import MemoryEngine
from wmem.memory.models import MemoryEntry, SearchResult

VALID_ID = "3f2b8c1e-0d4a-4c6e-9a77-1b2c3d4e5f60"


def _result(text: str, score: float, memory_id: str = VALID_ID) -> SearchResult:
    return SearchResult(entry=MemoryEntry(id=memory_id, text=text, created_at=1), score=score)


def _engine_with(config, backend, embedding=None) -> MemoryEngine:
    return MemoryEngine(config, store=backend, embedding=embedding or BackendEmbedding())


def _external_embedding(vector: list[float]) -> MagicMock:
    embedding = MagicMock()
    embedding.supplies_vectors = True
    embedding.embed = AsyncMock(return_value=vector)
    return embedding


# -- recall ------------------------------------------------------------------


async def test_recall_round_trip_keeps_category_and_importance(engine: MemoryEngine) -> None:
    await engine.store("I prefer dark roast coffee", importance=0.9, category="preference")

    results = await engine.recall("dark roast coffee")

    assert len(results) == 1
    assert results[0].entry.category == "preference"
    assert results[0].entry.importance == 0.9


async def test_recall_empty_store(engine: MemoryEngine) -> None:
    assert await engine.recall("anything at all") == []


async def test_recall_hybrid_mode(config) -> None:
    backend = AsyncMock()
    backend.hybrid_search.return_value = []
    await _engine_with(config, backend).recall("coffee", limit=3)

    backend.hybrid_search.assert_awaited_once_with(
        "coffee", limit=3, min_score=0.1, alpha=0.75, vector=None
    )


async def test_recall_keyword_mode_is_pure_bm25_hybrid(config) -> None:
    backend = AsyncMock()
    backend.hybrid_search.return_value = []
    await _engine_with(config, backend).recall("coffee", mode="keyword")

    backend.hybrid_search.assert_awaited_once_with("coffee", limit=5, min_score=0.1, alpha=0.0)
    backend.search.assert_not_called()


async def test_recall_vector_mode_embeds_query(config) -> None:
    backend = AsyncMock()
    backend.search.return_value = []
    embedding = _external_embedding([0.1, 0.2])

    await _engine_with(config, backend, embedding).recall("coffee", mode="vector")

    embedding.embed.assert_awaited_once_with("coffee")
    backend.search.assert_awaited_once_with("coffee", [0.1, 0.2], limit=5, min_score=0.1)


async def test_recall_hybrid_passes_vector_when_available(config) -> None:
    backend = AsyncMock()
    backend.hybrid_search.return_value = []
    embedding = _external_embedding([0.5])

    await _engine_with(config, backend, embedding).recall("coffee")

    assert backend.hybrid_search.call_args.kwargs["vector"] == [0.5]


async def test_recall_unknown_mode(engine: MemoryEngine) -> None:
    with pytest.raises(ValueError, match="Unknown recall mode"):
        await engine.recall("coffee", mode="fuzzy")


async def test_recall_propagates_backend_errors(config) -> None:
    backend = AsyncMock()
    backend.hybrid_search.side_effect = BackendError("Hybrid search failed: down")
    with pytest.raises(BackendError):
        await _engine_with(config, backend).recall("coffee")


# -- store -------------------------------------------------------------------


async def test_store_creates_entry(engine: MemoryEngine, fake_store) -> None:
    outcome = await engine.store("We decided to use Postgres", category="decision")

    assert outcome.action == "created"
    assert outcome.entry.text == "We decided to use Postgres"
    assert outcome.entry.importance == 0.7
    assert outcome.entry.source == "manual"
    assert await fake_store.count() == 1


async def test_store_identical_text_twice_reports_duplicate(engine: MemoryEngine, fake_store) -> None:
    first = await engine.store("My name is Alex", category="entity")
    second = await engine.store("My name is Alex", category="entity")

    assert second.action == "duplicate"
    assert second.entry is None
    assert second.existing.entry.id == first.entry.id
    assert second.existing.entry.text == "My name is Alex"
    assert await fake_store.count() == 1


async def test_store_dedups_with_vector_when_embedding_external(config) -> None:
    backend = AsyncMock()
    backend.search.return_value = []
    backend.store.return_value = MemoryEntry(id=VALID_ID, text="I prefer tea", created_at=1)
    embedding = _external_embedding([0.3, 0.4])

    await _engine_with(config, backend, embedding).store("I prefer tea")

    backend.search.assert_awaited_once_with("I prefer tea", [0.3, 0.4], limit=1, min_score=0.95)
    backend.hybrid_search.assert_not_called()
    assert backend.store.call_args.kwargs["vector"] == [0.3, 0.4]


async def test_store_records_session_and_source(engine: MemoryEngine) -> None:
    outcome = await engine.store("I live in Lisbon", source="auto-capture", session_key="s-42")
    assert outcome.entry.source == "auto-capture"
    assert outcome.entry.session_key == "s-42"


@pytest.mark.parametrize(
    ("kwargs", "message"),
    [
        ({"text": ""}, "must not be empty"),
        ({"text": "   "}, "must not be empty"),
        ({"text": "ok text", "importance": 1.5}, "between 0 and 1"),
        ({"text": "ok text", "importance": -0.1}, "between 0 and 1"),
        ({"text": "ok text", "category": "workstream"}, "Unknown category"),
        ({"text": "ok text", "source": "automatic"}, "Unknown source"),
    ],
)
async def test_store_rejects_invalid_input(engine: MemoryEngine, fake_store, kwargs, message) -> None:
    with pytest.raises(ValueError, match=message):
        await engine.store(**kwargs)
    assert await fake_store.count() == 0


async def test_store_failure_propagates(config) -> None:
    backend = AsyncMock()
    backend.hybrid_search.return_value = []
    backend.store.side_effect = BackendError("Failed to store memory: boom")
    with pytest.raises(BackendError):
        await _engine_with(config, backend).store("I prefer tea")


# -- forget ------------------------------------------------------------------


async def test_forget_by_id(engine: MemoryEngine, fake_store) -> None:
    created = await engine.store("We decided to use Postgres")
    outcome = await engine.forget(memory_id=created.entry.id)

    assert outcome.action == "deleted"
    assert outcome.memory_id == created.entry.id
    assert await fake_store.count() == 0


async def test_forget_invalid_id_fails_before_delete(engine: MemoryEngine, fake_store) -> None:
    with pytest.raises(InvalidIdentifier, match="not-a-uuid"):
        await engine.forget(memory_id="not-a-uuid")
    assert fake_store.deleted == []


async def test_forget_id_takes_precedence_over_query(config) -> None:
    backend = AsyncMock()
    outcome = await _engine_with(config, backend).forget(memory_id=VALID_ID, query="coffee")

    assert outcome.action == "deleted"
    backend.delete.assert_awaited_once_with(VALID_ID)
    backend.hybrid_search.assert_not_called()


async def test_forget_requires_id_or_query(engine: MemoryEngine) -> None:
    with pytest.raises(ValueError, match="Provide query or memoryId"):
        await engine.forget()


async def test_forget_query_no_matches(config) -> None:
    backend = AsyncMock()
    backend.hybrid_search.return_value = []

    outcome = await _engine_with(config, backend).forget(query="coffee")

    assert outcome.action == "not_found"
    backend.hybrid_search.assert_awaited_once_with("coffee", limit=5, min_score=0.7, vector=None)
    backend.delete.assert_not_called()


async def test_forget_query_single_confident_match_deletes(config) -> None:
    backend = AsyncMock()
    backend.hybrid_search.return_value = [_result("I prefer tea", 0.93)]

    outcome = await _engine_with(config, backend).forget(query="I prefer tea")

    assert outcome.action == "deleted"
    assert outcome.memory_id == VALID_ID
    assert outcome.text == "I prefer tea"
    backend.delete.assert_awaited_once_with(VALID_ID)


async def test_forget_query_single_match_at_threshold_is_not_deleted(config) -> None:
    backend = AsyncMock()
    backend.hybrid_search.return_value = [_result("I prefer tea", 0.9)]

    outcome = await _engine_with(config, backend).forget(query="tea")

    assert outcome.action == "candidates"
    backend.delete.assert_not_called()


async def test_forget_query_ambiguous_returns_candidates(config) -> None:
    other_id = "0b6f1a2c-3d4e-4f50-8a1b-2c3d4e5f6071"
    backend = AsyncMock()
    backend.hybrid_search.return_value = [
        _result("I prefer green tea", 0.75),
        _result("I prefer black tea", 0.75, memory_id=other_id),
    ]

    outcome = await _engine_with(config, backend).forget(query="tea")

    assert outcome.action == "candidates"
    assert [c.entry.id for c in outcome.candidates] == [VALID_ID, other_id]
    backend.delete.assert_not_called()


async def test_forget_query_end_to_end(engine: MemoryEngine, fake_store) -> None:
    await engine.store("We decided to use Postgres")
    outcome = await engine.forget(query="We decided to use Postgres")
    assert outcome.action == "deleted"
    assert await fake_store.count() == 0


# -- stats -------------------------------------------------------------------


async def test_stats_is_idempotent(engine: MemoryEngine) -> None:
    await engine.store("I prefer tea")
    first = await engine.stats()
    second = await engine.stats()

    assert first.count == second.count == 1
    assert first.collection == "TestMemory"
    assert first.url == "http://localhost:8080"


async def test_close_closes_backend(engine: MemoryEngine, fake_store) -> None:
    await engine.close()
    assert fake_store.closed


# -- singleton ---------------------------------------------------------------


def test_get_returns_installed_engine(engine: MemoryEngine) -> None:
    assert MemoryEngine.get() is engine


def test_get_builds_from_config_file(monkeypatch, config) -> None:
    monkeypatch.setattr("wmem.memory.engine.load_config", lambda: config)
    built = MemoryEngine.get()
    assert built.config is config
    assert MemoryEngine.get() is built
