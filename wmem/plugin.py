"""Plugin wiring: config, engine, tools, lifecycle hooks, and service start/stop.

The host calls ``MemoryPlugin(raw_config)`` once at registration, exposes
``tool_schemas()`` to the agent, routes tool calls to ``execute_tool``,
fires ``on_before_agent_start`` / ``on_agent_end`` around each run, and
calls ``start`` / ``stop`` with the service lifecycle.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from wmem.config import MemoryConfig
from wmem.memory import hooks
from wmem.memory.engine import MemoryEngine
from wmem.tools import registry

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

    from wmem.tools.base import ToolResult

logger = logging.getLogger(__name__)

PLUGIN_ID = "memory-weaviate"
PLUGIN_NAME = "Memory (Weaviate)"
PLUGIN_DESCRIPTION = (
    "Weaviate-backed long-term vector memory with hybrid search, auto-recall, and auto-capture"
)


class MemoryPlugin:
    """One registered instance of the memory plugin."""

    id = PLUGIN_ID
    name = PLUGIN_NAME
    description = PLUGIN_DESCRIPTION
    kind = "memory"

    def __init__(self, raw_config: Any, engine: MemoryEngine | None = None) -> None:
        self.config = MemoryConfig.parse(raw_config)
        self.engine = engine or MemoryEngine(self.config)
        MemoryEngine.install(self.engine)
        logger.info(
            "%s: registered (url: %s, collection: %s, embedding: %s, lazy init)",
            PLUGIN_ID,
            self.config.weaviate.url,
            self.config.collection_name,
            self.config.embedding.provider,
        )

    # -- Tools ---------------------------------------------------------------

    def tool_schemas(self) -> list[dict[str, Any]]:
        return registry.get_schemas()

    async def execute_tool(self, name: str, arguments: dict[str, Any]) -> ToolResult:
        return await registry.execute(name, arguments)

    # -- Hooks ---------------------------------------------------------------

    def hooks(self) -> dict[str, Callable[[Any], Awaitable[Any]]]:
        """Event name → handler, for the hooks enabled in config."""
        handlers: dict[str, Callable[[Any], Awaitable[Any]]] = {}
        if self.config.auto_recall:
            handlers["before_agent_start"] = self.on_before_agent_start
        if self.config.auto_capture:
            handlers["agent_end"] = self.on_agent_end
        return handlers

    async def on_before_agent_start(self, event: hooks.AgentStartEvent) -> dict | None:
        return await hooks.before_agent_start(self.engine, event)

    async def on_agent_end(self, event: hooks.AgentEndEvent) -> int:
        return await hooks.agent_end(self.engine, event)

    # -- Service -------------------------------------------------------------

    async def start(self) -> None:
        logger.info(
            "%s: started (%s, collection: %s)",
            PLUGIN_ID,
            self.config.weaviate.url,
            self.config.collection_name,
        )

    async def stop(self) -> None:
        await self.engine.close()
        logger.info("%s: stopped", PLUGIN_ID)
