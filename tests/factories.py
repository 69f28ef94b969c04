"""Builders and fakes shared by the test modules."""

import asyncio
from datetime import datetime, timedelta, timezone
from typing import Callable

from feedhub.crawler.base import (
    Author,
    BaseCrawler,
    ContentItem,
    ContentType,
    FetchOptions,
    Platform,
    PlatformMetrics,
    SourceInfo,
)
from feedhub.crawler.pagination import PageCollector


def make_item(platform_id: str = "v1", platform: Platform = Platform.YOUTUBE, **overrides) -> ContentItem:
    fields = dict(
        platform=platform,
        platform_id=platform_id,
        content_type=ContentType.VIDEO,
        title=f"Video {platform_id}",
        description="desc #tag",
        thumbnail_url="https://img.example/t.jpg",
        content_url=f"https://example.com/{platform_id}",
        author=Author(id="chan", name="Channel", handle="chan", profile_url="https://example.com/chan"),
        platform_metrics=PlatformMetrics(views=100, likes=10),
        tags=["tag"],
        language="en",
        published_at=datetime(2024, 1, 1, tzinfo=timezone.utc) + timedelta(hours=int(platform_id[1:] or 0)),
    )
    fields.update(overrides)
    return ContentItem(**fields)


class FakeCrawler(BaseCrawler):
    """Connector returning canned items and recording every call."""

    platform = Platform.YOUTUBE
    name = "Fake"

    def __init__(
        self,
        items: list[ContentItem] | None = None,
        error: Exception | None = None,
        delay: float = 0,
        on_call: Callable[[], None] | None = None,
    ):
        self.items = items or []
        self.error = error
        self.delay = delay
        self.on_call = on_call
        self.calls: list[tuple[str, str, FetchOptions]] = []
        self.closed = False

    async def _respond(self, kind: str, target: str, options: FetchOptions) -> list[ContentItem]:
        self.calls.append((kind, target, options))
        if self.on_call:
            self.on_call()
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error:
            raise self.error
        return self.items[: options.max_items]

    async def fetch_content(self, source_id: str, options: FetchOptions) -> list[ContentItem]:
        return await self._respond("fetch", source_id, options)

    async def search_content(self, query: str, options: FetchOptions) -> list[ContentItem]:
        return await self._respond("search", query, options)

    async def get_source_info(self, source_id: str) -> SourceInfo | None:
        if source_id == "missing":
            return None
        return SourceInfo(id=source_id, name=f"Source {source_id}", url=f"https://example.com/{source_id}")

    async def validate_credentials(self) -> bool:
        return True

    async def aclose(self) -> None:
        self.closed = True


class PagedCrawler(FakeCrawler):
    """Serves `pages` one at a time through a PageCollector, then fails or stalls."""

    def __init__(self, pages: list[list[ContentItem]], error: Exception | None = None, stall: float = 0):
        super().__init__(error=error)
        self.pages = pages
        self.stall = stall

    async def _respond(self, kind: str, target: str, options: FetchOptions) -> list[ContentItem]:
        self.calls.append((kind, target, options))
        collector = PageCollector(options, max_idle_pages=3)
        for page in self.pages:
            collector.add(page)
            if collector.done:
                return collector.items
        if self.stall:
            await asyncio.sleep(self.stall)
        if self.error:
            raise self.error
        return collector.items
