"""Data models for stored memories and search results."""

from typing import Literal, get_args

from pydantic import BaseModel, ConfigDict, Field

MemoryCategory = Literal["preference", "fact", "decision", "entity", "conversation", "other"]
MemorySource = Literal["manual", "auto-capture", "agent"]

MEMORY_CATEGORIES: tuple[str, ...] = get_args(MemoryCategory)
MEMORY_SOURCES: tuple[str, ...] = get_args(MemorySource)

DEFAULT_IMPORTANCE = 0.7


class MemoryEntry(BaseModel):
    """A stored fact. Never mutated after creation."""

    model_config = ConfigDict(frozen=True)

    id: str
    text: str
    importance: float = Field(default=DEFAULT_IMPORTANCE, ge=0.0, le=1.0)
    category: MemoryCategory = "other"
    source: MemorySource = "manual"
    session_key: str = ""
    created_at: int

    def to_properties(self) -> dict[str, object]:
        """Weaviate property dict (camelCase, without the id)."""
        return {
            "text": self.text,
            "importance": self.importance,
            "category": self.category,
            "source": self.source,
            "sessionKey": self.session_key,
            "createdAt": self.created_at,
        }


class SearchResult(BaseModel):
    """A memory paired with its relevance score for one query."""

    model_config = ConfigDict(frozen=True)

    entry: MemoryEntry
    score: float
