"""
Settings for the flashcard API, read with Pydantic Settings.

Groups:
- Service identity and listen address
- Routing (where the flashcard router is mounted)
- Ollama inference backend
- Token authenticator
- Logging and Prometheus metrics

Every field can be set through a FLASHCARD_API_-prefixed environment
variable or a .env file; the defaults reproduce a local Ollama setup.
"""

from functools import lru_cache
from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


class Settings(BaseSettings):
    """
    Runtime configuration.

    Example:
        FLASHCARD_API_OLLAMA_MODEL=gemma2:9b  ->  settings.ollama_model == "gemma2:9b"
    """

    # =========================================================================
    # Service
    # =========================================================================

    app_name: str = Field(default="Japanese Flashcard API", description="Reported by /health and in logs")
    app_version: str = Field(default="0.1.0", description="Reported by /health")
    environment: Literal["development", "staging", "production"] = Field(
        default="development",
        description="Deployment environment tag"
    )
    debug: bool = Field(default=False, description="Starlette debug tracebacks")

    host: str = Field(default="0.0.0.0", description="Listen host")
    port: int = Field(default=8080, gt=0, lt=65536, description="Listen port")

    flashcard_prefix: str = Field(
        default="/api/flash_card",
        description="Path the flashcard router is mounted at, without trailing slash"
    )

    # =========================================================================
    # Ollama
    # =========================================================================

    ollama_url: str = Field(
        default="http://localhost:11434/api/generate",
        description="Generate endpoint of the inference backend"
    )
    ollama_model: str = Field(
        default="schroneko/gemma-2-2b-jpn-it:latest",
        description="Model asked to write the flashcards"
    )
    ollama_stream: bool = Field(default=False, description="Value of the 'stream' payload field")
    ollama_timeout: float = Field(
        default=120.0,
        gt=0,
        description="Seconds allowed for one backend exchange, connect to last byte"
    )

    # =========================================================================
    # Authenticator
    # =========================================================================

    auth_enabled: bool = Field(default=False, description="Install the token authenticator")
    auth_header: str = Field(default="token", description="Header the token is read from")
    auth_token: str = Field(default="bearer", min_length=1, description="Token value that is let through")

    # =========================================================================
    # Observability
    # =========================================================================

    log_level: str = Field(default="INFO", description="One of " + "|".join(LOG_LEVELS))
    log_format: Literal["json", "text"] = Field(default="json", description="Renderer for log lines")
    metrics_enabled: bool = Field(default=True, description="Serve Prometheus metrics at /metrics")

    @field_validator("log_level")
    @classmethod
    def normalize_log_level(cls, v: str) -> str:
        """Accept any case, store upper case."""
        level = v.upper()
        if level not in LOG_LEVELS:
            raise ValueError(f"log_level must be one of {list(LOG_LEVELS)}, got: {v}")
        return level

    @field_validator("flashcard_prefix")
    @classmethod
    def check_flashcard_prefix(cls, v: str) -> str:
        """A mount path: leading slash, not the root, no trailing slash."""
        if not v.startswith("/") or v.endswith("/"):
            raise ValueError(
                f"flashcard_prefix must start with '/' and not end with '/', got: {v}"
            )
        return v

    @property
    def address(self) -> str:
        """Listen address in host:port form."""
        return f"{self.host}:{self.port}"

    model_config = SettingsConfigDict(
        env_prefix="FLASHCARD_API_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        validate_default=True,
    )


@lru_cache()
def get_settings() -> Settings:
    """Settings from the process environment, loaded once."""
    return Settings()


def clear_settings_cache() -> None:
    """Forget the cached settings so the next get_settings() re-reads the environment."""
    get_settings.cache_clear()
