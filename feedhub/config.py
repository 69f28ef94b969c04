"""Application configuration using pydantic-settings."""

from functools import lru_cache

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_NITTER_INSTANCES = (
    "https://nitter.poast.org,"
    "https://nitter.privacydev.net,"
    "https://nitter.woodland.cafe"
)


class CrawlerSettings(BaseSettings):
    """Settings shared by every connector."""

    model_config = SettingsConfigDict(
        env_prefix="CRAWLER_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    headless: bool = Field(default=True, description="Run browser in headless mode")
    navigation_timeout_ms: int = Field(default=30000, description="Page navigation timeout in ms")
    selector_timeout_ms: int = Field(default=10000, description="Wait-for-selector timeout in ms")
    request_timeout: float = Field(default=30.0, description="HTTP request timeout in seconds")
    job_timeout: float = Field(default=600.0, description="Upper bound for one connector call in seconds")
    max_retries: int = Field(default=2, description="Retries for transient network errors")
    retry_delay: float = Field(default=1.0, description="Initial delay between retries in seconds")
    default_max_items: int = Field(default=500, description="Default item cap per job")
    max_idle_pages: int = Field(default=3, description="Stop after this many pages without new items")
    max_browser_sessions: int = Field(default=2, description="Concurrent browser sessions per connector")
    page_delay: float = Field(default=0.1, description="Pause between API pages in seconds")
    scroll_delay: float = Field(default=1.0, description="Pause between scroll iterations in seconds")


class YouTubeSettings(BaseSettings):
    """YouTube Data API settings."""

    model_config = SettingsConfigDict(
        env_prefix="YOUTUBE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    api_key: str = Field(default="", description="YouTube Data API v3 key")


class TelegramSettings(BaseSettings):
    """Telegram Bot API settings."""

    model_config = SettingsConfigDict(
        env_prefix="TELEGRAM_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    bot_token: str = Field(default="", description="Bot token issued by @BotFather")


class FacebookSettings(BaseSettings):
    """Facebook Graph API settings."""

    model_config = SettingsConfigDict(
        env_prefix="FACEBOOK_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    app_id: str = Field(default="")
    app_secret: str = Field(default="")
    graph_version: str = Field(default="v19.0")

    @property
    def configured(self) -> bool:
        return bool(self.app_id and self.app_secret)


class XSettings(BaseSettings):
    """X (Twitter) settings. Content is read through public Nitter front-ends."""

    model_config = SettingsConfigDict(
        env_prefix="X_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    nitter_instances: str = Field(
        default=DEFAULT_NITTER_INSTANCES,
        description="Comma separated Nitter base URLs",
    )

    @field_validator("nitter_instances")
    @classmethod
    def validate_instances(cls, v: str) -> str:
        """Validate that at least one instance is configured."""
        if not [i for i in v.split(",") if i.strip()]:
            raise ValueError("nitter_instances must list at least one URL")
        return v

    def get_instances(self) -> list[str]:
        """Parse and return instances without trailing slashes."""
        return [i.strip().rstrip("/") for i in self.nitter_instances.split(",") if i.strip()]


class DatabaseSettings(BaseSettings):
    """Database settings."""

    model_config = SettingsConfigDict(
        env_prefix="DB_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    url: str = Field(default="sqlite:///data/feedhub.db", description="SQLAlchemy database URL")


class Settings(BaseSettings):
    """Main application settings."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    debug: bool = Field(default=False)
    log_level: str = Field(default="INFO")

    @property
    def crawler(self) -> CrawlerSettings:
        return CrawlerSettings()

    @property
    def youtube(self) -> YouTubeSettings:
        return YouTubeSettings()

    @property
    def telegram(self) -> TelegramSettings:
        return TelegramSettings()

    @property
    def facebook(self) -> FacebookSettings:
        return FacebookSettings()

    @property
    def x(self) -> XSettings:
        return XSettings()

    @property
    def database(self) -> DatabaseSettings:
        return DatabaseSettings()


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


def reload_settings() -> Settings:
    """Reload settings (clear cache and return new instance).

    Call this when .env file is updated to pick up new values.
    """
    get_settings.cache_clear()
    return get_settings()
