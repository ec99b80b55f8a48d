"""Tool framework. Importing this package registers the memory tools."""

# Import tool modules so their @registry.tool() decorators execute.
from wmem.tools import memory_tools  # noqa: F401
from wmem.tools.registry import registry

__all__ = ["registry"]
