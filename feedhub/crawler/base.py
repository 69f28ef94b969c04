"""Canonical content types and the connector contract.

All connector implementations should:
1. Set the `platform` attribute and stamp it on every returned item
2. Normalize text, hashtags and language through `feedhub.crawler.normalize`
3. Drop items without a platform id instead of returning them half-built
4. Raise `SourceError` for any failure of the call itself
"""

import asyncio
import logging
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Self

from pydantic import BaseModel, Field, PrivateAttr, ValidationError, field_validator

logger = logging.getLogger(__name__)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Platform(str, Enum):
    """Supported external platforms."""

    YOUTUBE = "youtube"
    TIKTOK = "tiktok"
    INSTAGRAM = "instagram"
    TELEGRAM = "telegram"
    X = "x"
    FACEBOOK = "facebook"


class ContentType(str, Enum):
    """Kind of content a canonical item represents."""

    VIDEO = "video"
    IMAGE = "image"
    TEXT = "text"
    REEL = "reel"
    STORY = "story"


class Author(BaseModel):
    """Author of a content item.

    Attributes:
        id: Platform-specific author/channel ID
        name: Display name
        handle: Username or handle
        avatar_url: Avatar image URL, if known
        profile_url: Link to the author's profile
    """

    id: str
    name: str
    handle: str
    avatar_url: str | None = None
    profile_url: str = ""


class PlatformMetrics(BaseModel):
    """Engagement numbers as reported by the source at fetch time."""

    views: int | None = None
    likes: int | None = None
    comments: int | None = None
    shares: int | None = None
    last_updated: datetime = Field(default_factory=utcnow)


class ContentItem(BaseModel):
    """Canonical content item, identified by (platform, platform_id).

    Only platform-sourced fields live here. Site-local state (share/view
    counters, moderation flags, priority) is owned by the store.
    """

    platform: Platform
    platform_id: str = Field(min_length=1)
    content_type: ContentType
    title: str
    description: str = ""
    thumbnail_url: str = ""
    content_url: str
    embed_url: str | None = None
    media_urls: list[str] = []
    author: Author
    platform_metrics: PlatformMetrics = Field(default_factory=PlatformMetrics)
    tags: list[str] = []
    language: str = "he"
    published_at: datetime
    fetched_at: datetime = Field(default_factory=utcnow)

    @property
    def identity(self) -> tuple[str, str]:
        return (self.platform.value, self.platform_id)


class SourceInfo(BaseModel):
    """Descriptor of a source (channel, page, profile)."""

    id: str
    name: str
    url: str
    subscriber_count: int | None = None
    avatar_url: str | None = None


class FetchOptions(BaseModel):
    """Options for a single fetch/search call.

    Attributes:
        max_items: Hard cap on returned items
        since: Skip items published before this time, where the source exposes it
        cancel_event: Set to stop pagination at the next iteration
    """

    model_config = {"arbitrary_types_allowed": True}

    max_items: int = Field(default=500, gt=0)
    since: datetime | None = None
    cancel_event: asyncio.Event | None = None

    # Items accepted so far, by platform id. Survives a failed or timed-out call.
    _collected: dict[str, ContentItem] = PrivateAttr(default_factory=dict)

    @field_validator("since")
    @classmethod
    def ensure_aware(cls, v: datetime | None) -> datetime | None:
        if v is not None and v.tzinfo is None:
            return v.replace(tzinfo=timezone.utc)
        return v

    @property
    def cancelled(self) -> bool:
        return self.cancel_event is not None and self.cancel_event.is_set()

    @property
    def collected(self) -> list[ContentItem]:
        return list(self._collected.values())

    def keep(self, item: ContentItem) -> None:
        self._collected.setdefault(item.platform_id, item)


class BaseCrawler(ABC):
    """Base class for all platform connectors.

    Connectors are long-lived and shared by concurrent jobs, so they keep no
    per-call mutable state; anything heavyweight (browsers) is acquired per
    call through a scoped context manager.
    """

    platform: Platform
    name: str = "Crawler"

    @abstractmethod
    async def fetch_content(self, source_id: str, options: FetchOptions) -> list[ContentItem]:
        """Fetch up to `options.max_items` items published by one source."""

    @abstractmethod
    async def search_content(self, query: str, options: FetchOptions) -> list[ContentItem]:
        """Find up to `options.max_items` items matching `query` across the platform."""

    @abstractmethod
    async def get_source_info(self, source_id: str) -> SourceInfo | None:
        """Describe a source, or return None when it cannot be resolved."""

    @abstractmethod
    async def validate_credentials(self) -> bool:
        """Cheap connectivity/auth self-check."""

    async def aclose(self) -> None:
        """Release long-lived resources. Subclasses owning sessions override this."""

    async def __aenter__(self) -> Self:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: object | None,
    ) -> None:
        await self.aclose()

    def build_item(self, **fields: Any) -> ContentItem | None:
        """Construct a canonical item, or drop it (None) if it has no usable identity."""
        fields.setdefault("platform", self.platform)
        try:
            return ContentItem(**fields)
        except ValidationError as e:
            logger.warning(
                f"[{self.platform.value}] Dropping item {fields.get('platform_id')!r}: "
                f"{e.error_count()} invalid field(s)"
            )
            return None
