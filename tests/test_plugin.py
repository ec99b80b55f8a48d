"""Tests for plugin registration and wiring."""

import pytest

from wmem.errors import ConfigurationError
from wmem.memory.engine import MemoryEngine
from wmem.memory.hooks import AgentEndEvent, AgentStartEvent
from wmem.memory.store import StoreState, WeaviateMemoryStore
from wmem.plugin import PLUGIN_ID, MemoryPlugin


def test_registration_is_lazy(raw_config) -> None:
    plugin = MemoryPlugin(raw_config)

    assert plugin.id == PLUGIN_ID == "memory-weaviate"
    assert plugin.kind == "memory"
    assert isinstance(plugin.engine.backend, WeaviateMemoryStore)
    assert plugin.engine.backend.state is StoreState.UNINITIALIZED
    assert MemoryEngine.get() is plugin.engine


def test_invalid_config_fails_registration() -> None:
    with pytest.raises(ConfigurationError):
        MemoryPlugin({"embedding": {"provider": "openai"}})


def test_missing_config_fails_registration() -> None:
    with pytest.raises(ConfigurationError, match="memory-weaviate config required"):
        MemoryPlugin(None)


def test_tool_schemas(raw_config) -> None:
    plugin = MemoryPlugin(raw_config)
    names = {s["name"] for s in plugin.tool_schemas()}
    assert names == {"memory_recall", "memory_store", "memory_forget", "memory_stats"}


def test_hooks_follow_config(raw_config) -> None:
    plugin = MemoryPlugin(raw_config)
    assert set(plugin.hooks()) == {"before_agent_start", "agent_end"}

    quiet = MemoryPlugin({**raw_config, "autoCapture": False, "autoRecall": False})
    assert quiet.hooks() == {}

    recall_only = MemoryPlugin({**raw_config, "autoCapture": False})
    assert set(recall_only.hooks()) == {"before_agent_start"}


async def test_execute_tool_round_trip(raw_config, engine: MemoryEngine) -> None:
    plugin = MemoryPlugin(raw_config, engine=engine)

    stored = await plugin.execute_tool("memory_store", {"text": "I prefer dark roast coffee"})
    recalled = await plugin.execute_tool("memory_recall", {"query": "dark roast coffee"})

    assert stored.data["action"] == "created"
    assert recalled.data["memories"][0]["id"] == stored.data["id"]


async def test_capture_then_recall_through_hooks(raw_config, engine: MemoryEngine) -> None:
    plugin = MemoryPlugin(raw_config, engine=engine)
    end = AgentEndEvent(
        success=True,
        messages=[{"role": "user", "content": "I prefer dark roast coffee"}],
        session_key="s-1",
    )

    assert await plugin.on_agent_end(end) == 1
    context = await plugin.on_before_agent_start(AgentStartEvent(prompt="dark roast coffee please"))

    assert "[preference] I prefer dark roast coffee" in context["prepend_context"]


async def test_stop_closes_engine(raw_config, engine: MemoryEngine, fake_store) -> None:
    plugin = MemoryPlugin(raw_config, engine=engine)
    await plugin.start()
    await plugin.stop()
    assert fake_store.closed
