"""Base types for the tool-calling framework."""

import json
from dataclasses import dataclass
from typing import Any

from pydantic import BaseModel, ConfigDict


@dataclass
class ToolResult:
    """Result of a tool execution.

    ``text`` is the human-readable summary shown to the agent; ``data`` is
    the structured payload alongside it.
    """

    data: dict[str, Any] | None = None
    error: str | None = None
    text: str | None = None

    @property
    def success(self) -> bool:
        return self.error is None

    def to_content(self) -> str:
        """Serialize the structured payload for a tool_result block."""
        if self.error:
            return json.dumps({"error": self.error})
        return json.dumps(self.data or {})

    def to_blocks(self) -> list[dict[str, str]]:
        """Text content blocks for hosts that render tool output directly."""
        if self.error:
            return [{"type": "text", "text": f"Error: {self.error}"}]
        return [{"type": "text", "text": self.text or self.to_content()}]


class ToolParams(BaseModel):
    """Base class for tool parameter models.

    Subclass with Field() definitions. The JSON schema is auto-generated
    via model_json_schema() for the agent's tool definitions.
    """

    model_config = ConfigDict(populate_by_name=True)
