"""
Centralized configuration management powered by pydantic-settings.
"""

from __future__ import annotations

from enum import Enum
from functools import lru_cache
from pathlib import Path
from typing import Annotated
from urllib.parse import urlsplit

from pydantic import BaseModel, Field, PositiveInt, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict


class Environment(str, Enum):
    """Supported runtime environments."""

    LOCAL = "local"
    DEVELOPMENT = "development"
    STAGING = "staging"
    PRODUCTION = "production"


def _split_csv(value: object) -> object:
    """Turn a comma separated env string into a list of stripped items."""
    if value is None:
        return []
    if isinstance(value, str):
        return [item.strip() for item in value.split(",") if item.strip()]
    return value


class AppSettings(BaseModel):
    """Application metadata and runtime toggles."""

    name: str = Field(default="lessonbot", description="Human-readable service name.")
    version: str = Field(default="0.1.0", description="Deployed application version.")
    environment: Environment = Field(
        default=Environment.LOCAL, description="Deployment environment identifier."
    )
    debug: bool = Field(default=False, description="Enable debug features and verbose logs.")


class DatabaseSettings(BaseModel):
    """Embedded SQLite store settings."""

    path: Path = Field(
        default=Path("data/bot.db"),
        description="Location of the SQLite database file.",
    )
    echo: bool = Field(default=False, description="Enable SQL echo for debugging.")

    @property
    def url(self) -> str:
        """SQLAlchemy async URL for the configured file."""
        return f"sqlite+aiosqlite:///{self.path}"


class TelegramBotSettings(BaseModel):
    """Telegram bot integration parameters."""

    token: str = Field(default="", description="Bot API token issued by BotFather.")
    admin_ids: Annotated[list[int], NoDecode] = Field(
        default_factory=list,
        description="Telegram user IDs allowed to manage content (comma separated).",
    )
    channel_username: str = Field(
        default="", description="Public channel username used for post links."
    )
    channel_id: int | None = Field(
        default=None, description="Numeric channel ID accepted as forward source."
    )
    chat_url: str = Field(default="", description="Discussion chat invite URL.")
    web_app_url: str = Field(
        default="", description="URL for Telegram Web App (must be HTTPS)."
    )
    news_tag: str = Field(
        default="#news",
        description="Marker that files a channel post as news automatically. Empty disables.",
    )

    @field_validator("admin_ids", mode="before")
    @classmethod
    def parse_admin_ids(cls, v: object) -> object:
        """Parse "1, 2,3" into [1, 2, 3]; zero and blank entries are dropped."""
        items = _split_csv(v)
        if isinstance(items, list):
            return [int(item) for item in items if str(item).strip() not in ("", "0")]
        return items

    @field_validator("channel_username", mode="before")
    @classmethod
    def strip_at(cls, v: object) -> object:
        """Accept both "@channel" and "channel"."""
        if isinstance(v, str):
            return v.strip().lstrip("@")
        return v

    @field_validator("channel_id", mode="before")
    @classmethod
    def parse_channel_id(cls, v: object) -> object:
        if v == "" or v is None:
            return None
        return v

    @property
    def web_app_origin(self) -> str:
        """Scheme and host of the Web App URL, or an empty string."""
        if not self.web_app_url:
            return ""
        parts = urlsplit(self.web_app_url.strip())
        if not parts.scheme or not parts.netloc:
            return ""
        return f"{parts.scheme}://{parts.netloc}"


class ApiSettings(BaseModel):
    """HTTP API binding and access control."""

    host: str = Field(default="0.0.0.0", description="Interface the API binds to.")
    port: PositiveInt = Field(default=3000, description="Port the API listens on.")
    workers: PositiveInt = Field(default=1, description="Granian worker processes.")
    admin_secret: str = Field(
        default="", description="Shared secret expected in the X-Admin-Secret header."
    )
    fallback_origins: Annotated[list[str], NoDecode] = Field(
        default_factory=lambda: ["https://easypi9.github.io"],
        description="Origins always allowed by CORS.",
    )
    local_origins: Annotated[list[str], NoDecode] = Field(
        default_factory=lambda: ["http://127.0.0.1:8080", "http://localhost:8080"],
        description="Local development origins allowed by CORS.",
    )

    @field_validator("fallback_origins", "local_origins", mode="before")
    @classmethod
    def parse_origins(cls, v: object) -> object:
        return _split_csv(v)


class LoggingSettings(BaseModel):
    """Logging configuration shared across the project."""

    level: str = Field(default="INFO", description="Root logging level.")
    format: str = Field(
        default="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
        description="Standard logging format string.",
    )
    directory: Path = Field(default=Path("logs"), description="Directory for log files.")
    file_name: str = Field(default="app.log", description="Primary log file name.")
    max_bytes: PositiveInt = Field(
        default=5 * 1024 * 1024, description="Maximum file size before rotating."
    )
    backup_count: PositiveInt = Field(default=5, description="Number of rotated log files to keep.")


class Settings(BaseSettings):
    """Top-level application settings loaded from the environment."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
        extra="ignore",
    )

    app: AppSettings = AppSettings()
    database: DatabaseSettings = DatabaseSettings()
    telegram: TelegramBotSettings = TelegramBotSettings()
    api: ApiSettings = ApiSettings()
    logging: LoggingSettings = LoggingSettings()


@lru_cache
def get_settings() -> Settings:
    """Return a cached Settings instance loaded from the current environment."""

    return Settings()


__all__ = [
    "ApiSettings",
    "AppSettings",
    "DatabaseSettings",
    "Environment",
    "LoggingSettings",
    "Settings",
    "TelegramBotSettings",
    "get_settings",
]
