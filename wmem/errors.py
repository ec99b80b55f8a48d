"""Exception types raised by the memory plugin."""


class MemoryPluginError(Exception):
    """Base class for all wmem errors."""


class ConfigurationError(MemoryPluginError):
    """The plugin configuration is missing, malformed, or inconsistent.

    Fatal at startup: nothing runs with a partially valid config.
    """


class InvalidIdentifier(MemoryPluginError, ValueError):
    """A memory ID is not a well-formed UUID."""

    def __init__(self, memory_id: str) -> None:
        super().__init__(f"Invalid memory ID format: {memory_id}")
        self.memory_id = memory_id


class BackendError(MemoryPluginError):
    """Weaviate or the embedding provider failed."""
