"""TikTok connector scraping public profile and search pages.

TikTok has no public read API, so pages are rendered in a headless browser
and scrolled until enough videos are on screen. Profile grids do not show
publish dates; those items are stamped with the fetch time.
"""

import logging
from datetime import datetime, timezone
from urllib.parse import quote

from bs4 import BeautifulSoup, Tag

from feedhub.crawler.base import (
    Author,
    ContentItem,
    ContentType,
    FetchOptions,
    Platform,
    PlatformMetrics,
    SourceInfo,
)
from feedhub.crawler.browser import BrowserCrawler
from feedhub.crawler.normalize import (
    detect_language,
    extract_tags,
    normalize_text,
    parse_count,
    truncate_title,
)
from feedhub.errors import SourceError

logger = logging.getLogger(__name__)

BASE_URL = "https://www.tiktok.com"
PROFILE_ITEM = '[data-e2e="user-post-item"]'
SEARCH_ITEM = '[data-e2e="search-card-container"]'


def _video_link_parts(href: str) -> tuple[str, str]:
    """('username', 'video_id') from links like /@name/video/123?lang=en."""
    video_id = href.split("/video/")[1].split("?")[0] if "/video/" in href else ""
    username = href.split("/@")[1].split("/")[0] if "/@" in href else ""
    return username, video_id


class TikTokCrawler(BrowserCrawler):
    """TikTok connector. `source_id` is a username without '@'."""

    platform = Platform.TIKTOK
    name = "TikTok"

    async def validate_credentials(self) -> bool:
        # No credentials; a loadable home page is the health signal
        return await self.probe(BASE_URL)

    async def get_source_info(self, source_id: str) -> SourceInfo | None:
        username = source_id.lstrip("@")
        try:
            html = await self.render(f"{BASE_URL}/@{username}", wait_for='[data-e2e="user-title"]')
        except SourceError as e:
            logger.error(f"[tiktok] Failed to get user info: {e}")
            return None
        soup = BeautifulSoup(html, "html.parser")
        title = soup.select_one('[data-e2e="user-title"]')
        followers = soup.select_one('[data-e2e="followers-count"]')
        avatar = soup.select_one('[data-e2e="user-avatar"] img')
        return SourceInfo(
            id=username,
            name=title.get_text(strip=True) if title else username,
            url=f"{BASE_URL}/@{username}",
            subscriber_count=parse_count(followers.get_text()) if followers else None,
            avatar_url=avatar.get("src") if avatar else None,
        )

    async def fetch_content(self, source_id: str, options: FetchOptions) -> list[ContentItem]:
        username = source_id.lstrip("@")
        async with self.open_page(f"{BASE_URL}/@{username}", wait_for=PROFILE_ITEM) as page:
            items = await self.scroll_collect(
                page, lambda html: self.parse_profile_grid(html, username), options
            )
        logger.info(f"[tiktok] Fetched {len(items)} videos from @{username}")
        return items

    async def search_content(self, query: str, options: FetchOptions) -> list[ContentItem]:
        async with self.open_page(f"{BASE_URL}/search/video?q={quote(query)}", wait_for=SEARCH_ITEM) as page:
            items = await self.scroll_collect(page, self.parse_search_results, options)
        logger.info(f"[tiktok] Search {query!r} returned {len(items)} videos")
        return items

    def parse_profile_grid(self, html: str, username: str) -> list[ContentItem | None]:
        soup = BeautifulSoup(html, "html.parser")
        title = soup.select_one('[data-e2e="user-title"]')
        avatar = soup.select_one('[data-e2e="user-avatar"] img')
        author = Author(
            id=username,
            name=title.get_text(strip=True) if title else username,
            handle=username,
            avatar_url=avatar.get("src") if avatar else None,
            profile_url=f"{BASE_URL}/@{username}",
        )

        items: list[ContentItem | None] = []
        for el in soup.select(PROFILE_ITEM):
            link = el.select_one("a")
            _, video_id = _video_link_parts(link.get("href", "") if link else "")
            views = el.select_one('[data-e2e="video-views"]')
            items.append(
                self._build_video(
                    el,
                    video_id,
                    username,
                    author,
                    PlatformMetrics(views=parse_count(views.get_text()) if views else None),
                )
            )
        return items

    def parse_search_results(self, html: str) -> list[ContentItem | None]:
        soup = BeautifulSoup(html, "html.parser")
        items: list[ContentItem | None] = []
        for el in soup.select(SEARCH_ITEM):
            link = el.select_one("a")
            username, video_id = _video_link_parts(link.get("href", "") if link else "")
            if not username:
                continue
            unique_id = el.select_one('[data-e2e="search-card-user-unique-id"]')
            author = Author(
                id=username,
                name=unique_id.get_text(strip=True) if unique_id else username,
                handle=username,
                profile_url=f"{BASE_URL}/@{username}",
            )
            items.append(self._build_video(el, video_id, username, author, PlatformMetrics()))
        return items

    def _build_video(
        self,
        el: Tag,
        video_id: str,
        username: str,
        author: Author,
        metrics: PlatformMetrics,
    ) -> ContentItem | None:
        if not video_id:
            return None
        desc = el.select_one('[data-e2e="video-desc"]')
        thumbnail = el.select_one("img")
        description = normalize_text(desc.get_text(" ")) if desc else ""
        return self.build_item(
            platform_id=video_id,
            content_type=ContentType.VIDEO,
            title=truncate_title(description) or "TikTok Video",
            description=description,
            thumbnail_url=thumbnail.get("src", "") if thumbnail else "",
            content_url=f"{BASE_URL}/@{username}/video/{video_id}",
            embed_url=f"{BASE_URL}/embed/v2/{video_id}",
            media_urls=[],
            author=author,
            platform_metrics=metrics,
            published_at=datetime.now(timezone.utc),
            tags=extract_tags(description),
            language=detect_language(description),
        )
