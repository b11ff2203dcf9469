"""
Settings for the prompt relay.

Values come from environment variables (optionally seeded from a `.env`
file). The credential is read once when a Settings object is built and is
never re-read per request.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import Literal

from dotenv import find_dotenv, load_dotenv

LogLevel = Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
LogFormat = Literal["text", "json"]

DEFAULT_MODEL = "gemini-2.5-flash-preview-09-2025"
DEFAULT_BASE_URL = "https://generativelanguage.googleapis.com/v1beta"
DEFAULT_ENDPOINT_PATH = "/api/generate-content"
API_KEY_ENV_VAR = "GEMINI_API_KEY"


@dataclass(frozen=True)
class LoggingConfig:
    """Configuration for logging."""

    level: LogLevel = "INFO"
    format: LogFormat = "json"

    def __post_init__(self):
        valid_levels = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")
        if self.level not in valid_levels:
            raise ValueError(f"Invalid log level: {self.level}. Must be one of {valid_levels}")
        valid_formats = ("text", "json")
        if self.format not in valid_formats:
            raise ValueError(f"Invalid log format: {self.format}. Must be one of {valid_formats}")


@dataclass(frozen=True)
class Settings:
    """
    Process-wide, read-only configuration.

    `api_key` may be None: a missing credential is reported per request as a
    configuration error rather than failing at startup.
    """

    api_key: str | None = None
    model: str = DEFAULT_MODEL
    base_url: str = DEFAULT_BASE_URL
    endpoint_path: str = DEFAULT_ENDPOINT_PATH
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    def __post_init__(self):
        if not self.model:
            raise ValueError("model must not be empty")
        if not self.base_url.startswith(("http://", "https://")):
            raise ValueError("base_url must be a valid HTTP(S) URL")
        if not self.endpoint_path.startswith("/"):
            raise ValueError("endpoint_path must start with '/'")

    @property
    def has_credential(self) -> bool:
        return bool(self.api_key)

    def generate_content_url(self) -> str:
        """URL of the generateContent method, without the credential."""
        return f"{self.base_url.rstrip('/')}/models/{self.model}:generateContent"

    @classmethod
    def from_env(cls, prefix: str = "RELAY_") -> Settings:
        """
        Load settings from environment variables.

        Example:
            GEMINI_API_KEY=...
            RELAY_GEMINI_MODEL=gemini-2.5-flash
            RELAY_LOG_FORMAT=text
        """
        logging_config = LoggingConfig(
            level=os.getenv(f"{prefix}LOG_LEVEL", "INFO").upper(),  # type: ignore[arg-type]
            format=os.getenv(f"{prefix}LOG_FORMAT", "json").lower(),  # type: ignore[arg-type]
        )
        return cls(
            api_key=os.getenv(API_KEY_ENV_VAR) or None,
            model=os.getenv(f"{prefix}GEMINI_MODEL", DEFAULT_MODEL),
            base_url=os.getenv(f"{prefix}GEMINI_BASE_URL", DEFAULT_BASE_URL),
            endpoint_path=os.getenv(f"{prefix}ENDPOINT_PATH", DEFAULT_ENDPOINT_PATH),
            logging=logging_config,
        )


# =============================================================================
# Global Settings & Helpers
# =============================================================================

_global_settings: Settings | None = None


def get_settings() -> Settings:
    """Get the global settings instance, loading it from the environment on first use."""
    global _global_settings
    if _global_settings is None:
        _global_settings = Settings.from_env()
    return _global_settings


def configure(settings: Settings | None = None) -> Settings:
    """Replace the global settings (or reload them from the environment)."""
    global _global_settings
    _global_settings = settings if settings is not None else Settings.from_env()
    return _global_settings


def load_env(path: str | None = None, *, override: bool = False) -> bool:
    """
    Load environment variables from a .env file.

    Args:
        path: Optional path to a .env file. If not provided, uses find_dotenv().
        override: Whether to override existing environment variables.

    Returns:
        True if a .env file was found and loaded, False otherwise.
    """
    env_path = path or find_dotenv(usecwd=True)
    if not env_path:
        return False
    return load_dotenv(env_path, override=override)


__all__ = [
    "API_KEY_ENV_VAR",
    "DEFAULT_BASE_URL",
    "DEFAULT_ENDPOINT_PATH",
    "DEFAULT_MODEL",
    "LoggingConfig",
    "Settings",
    "configure",
    "get_settings",
    "load_env",
]
