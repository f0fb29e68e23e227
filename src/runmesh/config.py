"""
Configuration settings for the application.

:class:`Settings` is read from the environment (or a ``.env`` file) at the edges of the program only.
The engine itself never looks at it: chat clients are built from an explicit :class:`ClientConfig`,
usually via :meth:`ClientConfig.from_settings`.
"""

from typing import (
    Any,
    Dict,
    Optional,
)
from urllib.parse import urlparse

from pydantic import (
    BaseModel,
    Field,
    ValidationError,
    field_validator,
)
from pydantic_settings import BaseSettings

from runmesh.core.errors import ConfigurationError


class Settings(BaseSettings):
    """Pydantic settings class for the application."""

    # Define the settings with default values and types
    # These will be loaded from environment variables or a .env file if not provided
    DEBUG: bool = False
    LOG_LEVEL: str = "info"  # Options: debug, info, warning, error, critical

    # LLM Configuration
    PROVIDER: str = "openai"  # Options: openai, openrouter, custom
    OPENAI_API_KEY: str | None = None
    OPENAI_MODEL: str | None = None  # Unset: the provider preset decides
    OPENAI_BASE_URL: str | None = None
    OPENAI_ORGANIZATION: str | None = None
    REQUEST_TIMEOUT: float = 30.0  # seconds
    REQUEST_RETRIES: int = 0

    # Agent Configuration
    MAX_TOOL_ROUNDS: int = 5

    class Config:
        """Configuration for Pydantic settings."""

        # Load environment variables from a .env file
        env_file = ".env"
        env_file_encoding = "utf-8"
        extra = "ignore"


settings = Settings()


# ---------------------------------------------------------------------------
# Provider presets
# ---------------------------------------------------------------------------
DEFAULT_MODEL = "gpt-4o-mini"

PROVIDER_CONFIGS: Dict[str, Dict[str, Any]] = {
    "openai": {
        "base_url": "https://api.openai.com/v1",
        "default_model": "gpt-4o",
    },
    "openrouter": {
        "base_url": "https://openrouter.ai/api/v1",
        "default_model": "anthropic/claude-3.5-sonnet",
        "headers": {"HTTP-Referer": "https://runmesh.dev", "X-Title": "RunMesh"},
    },
    "custom": {},
}


def get_provider_config(provider: str) -> Dict[str, Any]:
    """Preset for *provider*; unknown providers get the empty ``custom`` preset."""
    return PROVIDER_CONFIGS.get(provider.lower(), PROVIDER_CONFIGS["custom"])


class ClientConfig(BaseModel):
    """Explicit configuration for building a chat client."""

    api_key: str
    default_model: str
    provider: str = "openai"
    base_url: Optional[str] = None
    organization: Optional[str] = None
    timeout: float = Field(30.0, gt=0)  # seconds
    retries: int = Field(0, ge=0)
    headers: Dict[str, str] = Field(default_factory=dict)

    @field_validator("api_key")
    @classmethod
    def _check_api_key(cls, value: str) -> str:
        if len(value) < 10:
            raise ValueError("API key appears to be invalid (too short)")
        return value

    @field_validator("base_url")
    @classmethod
    def _check_base_url(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return value
        parsed = urlparse(value)
        if parsed.scheme not in {"http", "https"} or not parsed.netloc:
            raise ValueError(f"base URL {value!r} is not a valid http(s) URL")
        return value

    @classmethod
    def from_settings(cls, source: Settings | None = None, **overrides: Any) -> "ClientConfig":
        """
        Build a client configuration from *source* (default: the process settings).

        Provider presets fill in the model, base URL and headers the settings leave unset (the model
        falls back to ``DEFAULT_MODEL`` when the preset has none); *overrides*
        win over everything.

        Raises
        ------
        ConfigurationError
            If the resulting configuration is invalid (missing or malformed key, bad URL, ...).
        """
        source = source or settings
        preset = get_provider_config(source.PROVIDER)
        values: Dict[str, Any] = {
            "api_key": source.OPENAI_API_KEY,
            "default_model": source.OPENAI_MODEL or preset.get("default_model") or DEFAULT_MODEL,
            "provider": source.PROVIDER,
            "base_url": source.OPENAI_BASE_URL or preset.get("base_url"),
            "organization": source.OPENAI_ORGANIZATION,
            "timeout": source.REQUEST_TIMEOUT,
            "retries": source.REQUEST_RETRIES,
            "headers": dict(preset.get("headers", {})),
        }
        values.update(overrides)
        if not values.get("api_key"):
            raise ConfigurationError(
                "OPENAI_API_KEY environment variable is required but not set. "
                "Please set it to your provider API key."
            )
        try:
            return cls(**values)
        except ValidationError as exc:
            raise ConfigurationError(f"Invalid client configuration: {exc}", exc) from exc
