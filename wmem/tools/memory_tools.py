"""Agent-facing memory tools.

Each tool returns a short human-readable ``text`` plus a structured
``data`` payload the agent can act on (IDs, scores, candidates).
"""

from typing import Literal

from pydantic import Field

from wmem.memory.engine import MemoryEngine
from wmem.memory.models import DEFAULT_IMPORTANCE, MemoryCategory
from wmem.tools.base import ToolParams, ToolResult
from wmem.tools.registry import registry

# -- memory_recall -----------------------------------------------------------


class RecallParams(ToolParams):
    query: str = Field(description="Search query")
    limit: int = Field(default=5, ge=1, description="Max results (default: 5)")
    mode: Literal["hybrid", "vector", "keyword"] = Field(
        default="hybrid",
        description="Search mode: hybrid (default), vector, or keyword",
    )


@registry.tool(
    name="memory_recall",
    label="Memory Recall (Weaviate)",
    description=(
        "Search long-term memory using semantic + keyword hybrid search. Use when "
        "you need context about user preferences, past decisions, people, projects, "
        "or previously discussed topics."
    ),
    category="memory",
    params_model=RecallParams,
)
async def memory_recall(query: str, limit: int = 5, mode: str = "hybrid") -> ToolResult:
    engine = MemoryEngine.get()
    results = await engine.recall(query, limit=limit, mode=mode)
    if not results:
        return ToolResult(text="No relevant memories found.", data={"count": 0})

    lines = [
        f"{i}. [{r.entry.category}] {r.entry.text} ({r.score * 100:.0f}% match)"
        for i, r in enumerate(results, start=1)
    ]
    memories = [
        {
            "id": r.entry.id,
            "text": r.entry.text,
            "category": r.entry.category,
            "importance": r.entry.importance,
            "source": r.entry.source,
            "score": r.score,
            "createdAt": r.entry.created_at,
        }
        for r in results
    ]
    return ToolResult(
        text=f"Found {len(results)} memories:\n\n" + "\n".join(lines),
        data={"count": len(results), "memories": memories},
    )


# -- memory_store ------------------------------------------------------------


class StoreParams(ToolParams):
    text: str = Field(min_length=1, description="Information to remember")
    importance: float = Field(
        default=DEFAULT_IMPORTANCE,
        ge=0.0,
        le=1.0,
        description="Importance 0.0-1.0 (default: 0.7)",
    )
    category: MemoryCategory = Field(default="other", description="Memory category")


@registry.tool(
    name="memory_store",
    label="Memory Store (Weaviate)",
    description=(
        "Save important information to long-term memory. Use for preferences, "
        "facts, decisions, people, projects."
    ),
    category="memory",
    params_model=StoreParams,
)
async def memory_store(
    text: str,
    importance: float = DEFAULT_IMPORTANCE,
    category: str = "other",
) -> ToolResult:
    engine = MemoryEngine.get()
    outcome = await engine.store(text, importance=importance, category=category, source="agent")

    if outcome.action == "duplicate":
        existing = outcome.existing.entry
        return ToolResult(
            text=f'Similar memory already exists: "{existing.text}"',
            data={
                "action": "duplicate",
                "existingId": existing.id,
                "existingText": existing.text,
            },
        )

    preview = text[:100] + ("..." if len(text) > 100 else "")
    return ToolResult(
        text=f'Stored: "{preview}"',
        data={"action": "created", "id": outcome.entry.id},
    )


# -- memory_forget -----------------------------------------------------------


class ForgetParams(ToolParams):
    query: str | None = Field(default=None, description="Search to find memory to delete")
    memory_id: str | None = Field(
        default=None,
        alias="memoryId",
        description="Specific memory UUID to delete",
    )


@registry.tool(
    name="memory_forget",
    label="Memory Forget (Weaviate)",
    description=(
        "Delete specific memories by ID or search query. If a query matches "
        "several memories, the candidates are returned and nothing is deleted."
    ),
    category="memory",
    params_model=ForgetParams,
)
async def memory_forget(query: str | None = None, memory_id: str | None = None) -> ToolResult:
    if not query and not memory_id:
        return ToolResult(error="Provide query or memoryId.")

    engine = MemoryEngine.get()
    outcome = await engine.forget(memory_id=memory_id, query=query)

    if outcome.action == "not_found":
        return ToolResult(text="No matching memories found.", data={"found": 0})

    if outcome.action == "deleted":
        text = (
            f'Forgotten: "{outcome.text}"'
            if outcome.text is not None
            else f"Memory {outcome.memory_id} forgotten."
        )
        return ToolResult(text=text, data={"action": "deleted", "id": outcome.memory_id})

    listing = "\n".join(
        f"- [{r.entry.id[:8]}] {r.entry.text[:80]}..." for r in outcome.candidates
    )
    candidates = [
        {
            "id": r.entry.id,
            "text": r.entry.text,
            "category": r.entry.category,
            "score": r.score,
        }
        for r in outcome.candidates
    ]
    return ToolResult(
        text=f"Found {len(candidates)} candidates. Specify memoryId:\n{listing}",
        data={"action": "candidates", "candidates": candidates},
    )


# -- memory_stats ------------------------------------------------------------


@registry.tool(
    name="memory_stats",
    label="Memory Stats (Weaviate)",
    description="Show memory database statistics.",
    category="memory",
)
async def memory_stats() -> ToolResult:
    stats = await MemoryEngine.get().stats()
    return ToolResult(
        text=(
            f'Memory store: {stats.count} memories in collection "{stats.collection}" '
            f"on {stats.url}"
        ),
        data={"count": stats.count, "collection": stats.collection},
    )
