"""Passive lifecycle hooks: auto-recall before a run, auto-capture after.

Both are best-effort. Any failure is logged and swallowed so memory
problems never block or break a conversation.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from wmem.memory.capture import CONTEXT_MARKER, should_capture
from wmem.memory.classify import detect_category
from wmem.memory.models import DEFAULT_IMPORTANCE
from wmem.memory.scoring import AUTO_RECALL_MIN_SCORE, DEFAULT_ALPHA

if TYPE_CHECKING:
    from wmem.memory.engine import MemoryEngine
    from wmem.memory.models import SearchResult

logger = logging.getLogger(__name__)

MIN_PROMPT_LENGTH = 5
AUTO_RECALL_LIMIT = 3
MAX_CAPTURES_PER_RUN = 5
CAPTURE_ROLES = ("user", "assistant")


@dataclass
class AgentStartEvent:
    prompt: str | None = None


@dataclass
class AgentEndEvent:
    success: bool = False
    messages: list[Any] = field(default_factory=list)
    session_key: str = ""


# -- Auto-recall -------------------------------------------------------------


def format_memory_context(results: list[SearchResult]) -> str:
    """Wrap recalled memories in the marker block prepended to the prompt."""
    lines = [
        f"- [{r.entry.category}] {r.entry.text} ({r.score * 100:.0f}% relevance)"
        for r in results
    ]
    closing = CONTEXT_MARKER.replace("<", "</", 1)
    return (
        f"{CONTEXT_MARKER}\n"
        "The following long-term memories may be relevant:\n"
        + "\n".join(lines)
        + f"\n{closing}"
    )


async def before_agent_start(engine: MemoryEngine, event: AgentStartEvent) -> dict | None:
    """Return ``{"prepend_context": ...}`` when relevant memories exist."""
    if not engine.config.auto_recall:
        return None
    if not event.prompt or len(event.prompt) < MIN_PROMPT_LENGTH:
        return None

    try:
        results = await engine.recall(
            event.prompt,
            limit=AUTO_RECALL_LIMIT,
            mode="hybrid",
            min_score=AUTO_RECALL_MIN_SCORE,
            alpha=DEFAULT_ALPHA,
        )
    except Exception as exc:
        logger.warning("Memory recall failed: %s", exc)
        return None

    if not results:
        return None

    logger.info("Injecting %d memories into context", len(results))
    return {"prepend_context": format_memory_context(results)}


# -- Auto-capture ------------------------------------------------------------


def _field(obj: Any, name: str) -> Any:
    if isinstance(obj, dict):
        return obj.get(name)
    return getattr(obj, name, None)


def extract_texts(messages: list[Any]) -> list[str]:
    """Flatten text out of user/assistant messages.

    Content may be a plain string or a list of blocks; only blocks of
    ``type == "text"`` with string ``text`` are kept.
    """
    texts: list[str] = []
    for msg in messages:
        if msg is None or _field(msg, "role") not in CAPTURE_ROLES:
            continue

        content = _field(msg, "content")
        if isinstance(content, str):
            texts.append(content)
        elif isinstance(content, list):
            for block in content:
                if _field(block, "type") == "text" and isinstance(_field(block, "text"), str):
                    texts.append(_field(block, "text"))
    return texts


async def capture_texts(engine: MemoryEngine, texts: list[str], session_key: str = "") -> int:
    """Store the memory-worthy subset of *texts*. Returns how many were stored."""
    candidates = [t for t in texts if t and should_capture(t)]
    stored = 0
    for text in candidates[:MAX_CAPTURES_PER_RUN]:
        outcome = await engine.store(
            text,
            importance=DEFAULT_IMPORTANCE,
            category=detect_category(text),
            source="auto-capture",
            session_key=session_key,
        )
        if outcome.action == "created":
            stored += 1
    return stored


async def agent_end(engine: MemoryEngine, event: AgentEndEvent) -> int:
    """Capture memories from a finished run. Never raises."""
    if not engine.config.auto_capture:
        return 0
    if not event.success or not event.messages:
        return 0

    try:
        stored = await capture_texts(engine, extract_texts(event.messages), event.session_key)
    except Exception as exc:
        logger.warning("Memory capture failed: %s", exc)
        return 0

    if stored:
        logger.info("Auto-captured %d memories", stored)
    return stored
