"""Plugin configuration and process settings.

Two layers:

- ``MemoryConfig``: the plugin config (Weaviate connection, embedding
  provider, collection, feature toggles). Parsed once from a JSON-shaped dict
  with camelCase keys and treated as immutable afterwards.
- ``Settings``: process-level knobs read from ``WMEM_*`` environment
  variables (where the config file lives, log level).
"""

import json
import os
import re
from pathlib import Path
from typing import Any, Literal

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    ValidationError,
    field_validator,
    model_validator,
)
from pydantic.alias_generators import to_camel
from pydantic_settings import BaseSettings, SettingsConfigDict

from wmem.errors import ConfigurationError

DEFAULT_EMBEDDING_MODEL = "text-embedding-3-small"
DEFAULT_EXTRACTION_MODEL = "gpt-4o-mini"
DEFAULT_EXTRACTION_MAX_TOKENS = 1024
DEFAULT_COLLECTION = "ClawdbotMemory"
DEFAULT_WEAVIATE_PORT = 8080
DEFAULT_GRPC_PORT = 50051

EmbeddingProvider = Literal["openai", "weaviate"]

# Only needed for the openai provider, where we supply vectors ourselves.
EMBEDDING_DIMENSIONS: dict[str, int] = {
    "text-embedding-3-small": 1536,
    "text-embedding-3-large": 3072,
}

_ENV_REF = re.compile(r"\$\{([^}]+)\}")


def vector_dims_for_model(model: str) -> int:
    """Return the embedding dimension for a known OpenAI model."""
    dims = EMBEDDING_DIMENSIONS.get(model)
    if dims is None:
        raise ConfigurationError(f"Unsupported embedding model: {model}")
    return dims


def resolve_env_vars(value: str) -> str:
    """Expand ``${VAR}`` references. Unset variables are an error."""

    def _sub(match: re.Match[str]) -> str:
        name = match.group(1)
        env_value = os.environ.get(name)
        if not env_value:
            msg = f"Environment variable {name} is not set"
            raise ValueError(msg)
        return env_value

    return _ENV_REF.sub(_sub, value)


def resolve_optional_env_vars(value: str) -> str:
    """Expand ``${VAR}`` references, leaving unset ones untouched."""
    return _ENV_REF.sub(lambda m: os.environ.get(m.group(1), m.group(0)), value)


# -- Plugin config -----------------------------------------------------------


class _ConfigSection(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="forbid",
        frozen=True,
    )


class WeaviateConfig(_ConfigSection):
    url: str
    api_key: str | None = None

    @field_validator("url")
    @classmethod
    def _expand_url(cls, v: str) -> str:
        return resolve_env_vars(v)

    @field_validator("api_key")
    @classmethod
    def _expand_api_key(cls, v: str | None) -> str | None:
        return resolve_env_vars(v) if v is not None else None


class EmbeddingConfig(_ConfigSection):
    provider: EmbeddingProvider = "openai"
    api_key: str | None = None
    model: str = DEFAULT_EMBEDDING_MODEL

    @field_validator("api_key")
    @classmethod
    def _expand_api_key(cls, v: str | None) -> str | None:
        return resolve_env_vars(v) if v is not None else None

    @model_validator(mode="after")
    def _check_provider(self) -> "EmbeddingConfig":
        if self.provider == "openai":
            if not self.api_key:
                msg = "embedding.apiKey is required when provider is 'openai'"
                raise ValueError(msg)
            if self.model not in EMBEDDING_DIMENSIONS:
                msg = f"Unsupported embedding model: {self.model}"
                raise ValueError(msg)
        return self

    @property
    def dimensions(self) -> int | None:
        """Vector size we supply on insert, or None when Weaviate vectorizes."""
        if self.provider != "openai":
            return None
        return vector_dims_for_model(self.model)


class ExtractionConfig(_ConfigSection):
    """OpenAI-compatible chat endpoint for model-based extraction.

    ``base_url`` points at e.g. Ollama (``http://localhost:11434/v1``) or LM
    Studio; ``api_key`` is optional for local providers.
    """

    base_url: str | None = None
    api_key: str | None = None
    model: str = DEFAULT_EXTRACTION_MODEL
    max_tokens: int = Field(default=DEFAULT_EXTRACTION_MAX_TOKENS, gt=0)

    @field_validator("base_url")
    @classmethod
    def _expand_base_url(cls, v: str | None) -> str | None:
        return resolve_optional_env_vars(v) if v is not None else None

    @field_validator("api_key")
    @classmethod
    def _expand_api_key(cls, v: str | None) -> str | None:
        return resolve_env_vars(v) if v is not None else None


class MemoryConfig(_ConfigSection):
    """Resolved plugin configuration. Build it with ``MemoryConfig.parse``."""

    weaviate: WeaviateConfig
    embedding: EmbeddingConfig = Field(default_factory=dict, validate_default=True)
    extraction: ExtractionConfig = Field(default_factory=dict, validate_default=True)
    collection_name: str = DEFAULT_COLLECTION
    auto_capture: bool = True
    auto_recall: bool = True

    @classmethod
    def parse(cls, raw: Any) -> "MemoryConfig":
        """Validate a raw config dict, raising ConfigurationError on any problem."""
        if not raw or not isinstance(raw, dict):
            raise ConfigurationError("memory-weaviate config required")
        try:
            return cls.model_validate(raw)
        except ValidationError as exc:
            raise ConfigurationError(_describe_errors(exc)) from exc

    @property
    def extraction_api_key(self) -> str | None:
        """Extraction key, falling back to the embedding key.

        The fallback only applies when no ``extraction.baseUrl`` is set, so a
        local endpoint never receives the OpenAI key.
        """
        if self.extraction.api_key:
            return self.extraction.api_key
        if self.extraction.base_url:
            return None
        return self.embedding.api_key


def _describe_errors(exc: ValidationError) -> str:
    parts = []
    for err in exc.errors():
        loc = ".".join(str(p) for p in err["loc"])
        msg = err["msg"].removeprefix("Value error, ")
        parts.append(f"{loc}: {msg}" if loc else msg)
    return "; ".join(parts)


# -- Process settings --------------------------------------------------------


def _env_file() -> str | None:
    if os.getenv("PYTEST_CURRENT_TEST"):
        return None
    return ".env"


class Settings(BaseSettings):
    """Process-level settings from ``WMEM_*`` environment variables."""

    config_path: Path = Field(default=Path("wmem.json"))
    log_level: str = Field(default="INFO")

    model_config = SettingsConfigDict(
        env_prefix="WMEM_",
        env_file=_env_file(),
        env_file_encoding="utf-8",
        extra="ignore",
    )

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings,
        env_settings,
        dotenv_settings,
        file_secret_settings,
    ):
        if os.getenv("PYTEST_CURRENT_TEST"):
            return (init_settings,)
        return (init_settings, env_settings, dotenv_settings, file_secret_settings)


settings = Settings()


def load_config(path: Path | None = None) -> MemoryConfig:
    """Read and validate the plugin config from a JSON file."""
    config_path = path or settings.config_path
    try:
        raw = json.loads(config_path.read_text(encoding="utf-8"))
    except FileNotFoundError as exc:
        msg = f"Config file not found: {config_path}"
        raise ConfigurationError(msg) from exc
    except json.JSONDecodeError as exc:
        msg = f"Config file {config_path} is not valid JSON: {exc}"
        raise ConfigurationError(msg) from exc
    return MemoryConfig.parse(raw)
