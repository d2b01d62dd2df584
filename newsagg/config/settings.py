"""
NewsAgg Configuration
=====================

Environment-driven settings with Pydantic models. Nested sections are set
with ``NEWSAGG_<SECTION>__<FIELD>`` variables, e.g.
``NEWSAGG_AI__ENABLED=true`` or ``NEWSAGG_INGESTION__MAX_ARTICLES_PER_SOURCE=20``.
"""

from pathlib import Path
from typing import Optional
from enum import Enum

from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings

from ..utils.exceptions import ConfigurationError, ErrorCode


DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/91.0.4472.124 Safari/537.36"
)


class LogLevel(str, Enum):
    """Available log levels."""
    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class IngestionSettings(BaseModel):
    """Feed ingestion configuration."""
    max_articles_per_source: int = Field(default=10, ge=1, le=200, description="Feed entries examined per source per run")
    min_content_length: int = Field(default=100, ge=1, le=10000, description="Articles with less body text are skipped")
    parallel_sources: int = Field(default=1, ge=1, le=20, description="Sources ingested concurrently (1 = sequential)")
    poll_interval_minutes: int = Field(default=30, ge=1, le=1440, description="Scheduler interval between runs")
    feed_timeout: int = Field(default=10, ge=1, le=120, description="Feed download timeout in seconds")


class ExtractionSettings(BaseModel):
    """Article page extraction configuration."""
    request_timeout: int = Field(default=10, ge=1, le=120, description="Page download timeout in seconds")
    max_content_length: int = Field(default=50000, ge=1000, le=1000000, description="Extracted text is truncated past this length")
    user_agent: str = Field(default=DEFAULT_USER_AGENT, description="User-Agent sent with feed and page requests")


class SourceHealthSettings(BaseModel):
    """Source circuit breaker configuration."""
    error_threshold: int = Field(default=5, ge=1, le=100, description="Consecutive failures before a source is disabled")


class AISettings(BaseModel):
    """Remote AI backend configuration (OpenAI-compatible chat completions)."""
    enabled: bool = Field(default=False, description="Use the remote backend for categories and summaries")
    api_url: str = Field(default="http://localhost:1234/v1", description="Base URL of the completion API")
    api_key: str = Field(default="lm-studio", description="API key sent to the backend (local servers ignore it)")
    model: str = Field(default="", description="Model identifier; empty means 'local-model'")
    timeout: int = Field(default=60, ge=1, le=600, description="Completion request timeout in seconds")
    probe_timeout: int = Field(default=5, ge=1, le=60, description="Availability probe timeout in seconds")
    temperature: float = Field(default=0.3, ge=0.0, le=2.0, description="Sampling temperature")
    classification_max_tokens: int = Field(default=50, ge=1, le=1000, description="Token cap for category requests")
    summary_max_tokens: int = Field(default=200, ge=1, le=4000, description="Token cap for summary requests")
    max_consecutive_failures: int = Field(default=3, ge=1, le=100, description="Failures before the backend is bypassed")
    failure_cooldown_seconds: int = Field(default=300, ge=0, le=86400, description="How long the backend is bypassed")

    @field_validator('api_url')
    @classmethod
    def strip_trailing_slash(cls, v):
        """Normalize the base URL."""
        return v.strip().rstrip('/')

    @property
    def effective_model(self) -> str:
        return self.model.strip() or "local-model"


class DatabaseSettings(BaseModel):
    """Database configuration."""
    path: str = Field(default="data/newsagg.db", description="SQLite database file path")
    pool_size: int = Field(default=5, ge=1, le=20, description="Connection pool size")


class LoggingSettings(BaseModel):
    """Logging configuration."""
    level: LogLevel = Field(default=LogLevel.INFO, description="Global log level")
    file_path: Optional[str] = Field(default="logs/newsagg.log", description="Log file path")
    max_file_size_mb: int = Field(default=10, ge=1, le=100, description="Max log file size in MB")
    backup_count: int = Field(default=5, ge=1, le=20, description="Number of log backup files")
    structured_logging: bool = Field(default=False, description="Use structured JSON logging")
    console_logging: bool = Field(default=True, description="Enable console logging")


class NewsAggSettings(BaseSettings):
    """Main application settings."""

    ingestion: IngestionSettings = Field(default_factory=IngestionSettings)
    extraction: ExtractionSettings = Field(default_factory=ExtractionSettings)
    health: SourceHealthSettings = Field(default_factory=SourceHealthSettings)
    ai: AISettings = Field(default_factory=AISettings)
    database: DatabaseSettings = Field(default_factory=DatabaseSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)

    app_name: str = Field(default="NewsAgg", description="Application name")
    version: str = Field(default="1.0.0", description="Application version")
    debug: bool = Field(default=False, description="Enable debug mode")

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "case_sensitive": False,
        "env_nested_delimiter": "__",
        "env_prefix": "NEWSAGG_",
        "extra": "ignore",
    }

    def validate_configuration(self) -> None:
        """Validate cross-field configuration and prepare directories."""
        errors = []

        if self.ai.enabled and not self.ai.api_url:
            errors.append("AI backend is enabled but NEWSAGG_AI__API_URL is empty")
        if self.ai.api_url and not self.ai.api_url.startswith(("http://", "https://")):
            errors.append(f"AI api_url must be an http(s) URL: {self.ai.api_url}")

        if self.database.path != ":memory:":
            try:
                Path(self.database.path).parent.mkdir(parents=True, exist_ok=True)
            except OSError as e:
                errors.append(f"Invalid database path: {e}")

        if self.logging.file_path:
            try:
                Path(self.logging.file_path).parent.mkdir(parents=True, exist_ok=True)
            except OSError as e:
                errors.append(f"Invalid log file path: {e}")

        if errors:
            raise ConfigurationError(
                f"Configuration validation failed: {'; '.join(errors)}",
                error_code=ErrorCode.CONFIG_INVALID
            )

    def get_effective_log_level(self) -> str:
        """Log level, forced to DEBUG in debug mode."""
        if self.debug:
            return "DEBUG"
        return self.logging.level.value


def load_settings() -> NewsAggSettings:
    """Load settings from the environment, ``.env`` and defaults.

    Raises:
        ConfigurationError: If configuration is invalid
    """
    from dotenv import load_dotenv
    load_dotenv()

    try:
        settings = NewsAggSettings()
        settings.validate_configuration()
        return settings
    except ConfigurationError:
        raise
    except Exception as e:
        raise ConfigurationError(
            f"Failed to initialize settings: {e}",
            error_code=ErrorCode.CONFIG_INVALID
        ) from e


_settings: Optional[NewsAggSettings] = None


def get_settings(reload: bool = False) -> NewsAggSettings:
    """Get the global settings instance.

    Args:
        reload: Force reload of settings
    """
    global _settings

    if _settings is None or reload:
        _settings = load_settings()

    return _settings
