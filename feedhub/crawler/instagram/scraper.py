"""Instagram connector scraping public profile and hashtag pages.

The Graph API only covers business accounts linked to a managed Facebook
page, so public pages are rendered in a headless browser instead. Instagram
often puts anonymous visitors behind a login wall; when that happens the
call returns no items and logs a warning.
"""

import logging
import re
from datetime import datetime, timezone

from bs4 import BeautifulSoup
from playwright.async_api import Page

from feedhub.config import CrawlerSettings
from feedhub.crawler.base import (
    Author,
    ContentItem,
    ContentType,
    FetchOptions,
    Platform,
    SourceInfo,
)
from feedhub.crawler.browser import BrowserCrawler, BrowserPool
from feedhub.crawler.http import JsonClient
from feedhub.crawler.normalize import detect_language, extract_tags, merge_tags, normalize_text
from feedhub.errors import SourceError

logger = logging.getLogger(__name__)

BASE_URL = "https://www.instagram.com"
POST_LINKS = 'article a[href*="/p/"], article a[href*="/reel/"]'
LOGIN_WALL = 'input[name="username"]'
SHORTCODE_RE = re.compile(r"/(p|reel)/([^/?#]+)")


class InstagramCrawler(BrowserCrawler):
    """Instagram connector. `source_id` is a username; search takes a hashtag."""

    platform = Platform.INSTAGRAM
    name = "Instagram"

    def __init__(self, crawler_settings: CrawlerSettings, pool: BrowserPool | None = None):
        super().__init__(crawler_settings, pool)
        self.oembed = JsonClient(self.platform.value, crawler_settings, base_url=BASE_URL)

    async def validate_credentials(self) -> bool:
        return await self.probe(BASE_URL)

    async def get_source_info(self, source_id: str) -> SourceInfo | None:
        username = source_id.lstrip("@")
        profile_url = f"{BASE_URL}/{username}/"
        try:
            data = await self.oembed.get_json("/api/v1/oembed/", {"url": profile_url})
            return SourceInfo(id=username, name=data.get("author_name") or username, url=profile_url)
        except SourceError as e:
            logger.info(f"[instagram] oEmbed unavailable for {username} ({e}); rendering profile")

        try:
            html = await self.render(profile_url, wait_for="header")
        except SourceError as e:
            logger.error(f"[instagram] Failed to get user info: {e}")
            return None
        return SourceInfo(id=username, name=self.og_name(html, username), url=profile_url)

    async def fetch_content(self, source_id: str, options: FetchOptions) -> list[ContentItem]:
        username = source_id.lstrip("@")
        async with self.open_page(f"{BASE_URL}/{username}/", wait_for="article a") as page:
            if await self._login_wall(page):
                logger.warning(f"[instagram] Login wall on @{username}; nothing fetched")
                return []
            html = await page.content()
            author = Author(
                id=username,
                name=self.og_name(html, username),
                handle=username,
                profile_url=f"{BASE_URL}/{username}/",
            )
            items = await self.scroll_collect(
                page,
                lambda h: self.parse_post_links(h, author, title=f"{author.name} on Instagram"),
                options,
            )
        logger.info(f"[instagram] Fetched {len(items)} posts from @{username}")
        return items

    async def search_content(self, query: str, options: FetchOptions) -> list[ContentItem]:
        """Hashtag search: the query is read as a tag, with or without '#'."""
        hashtag = query.strip().lstrip("#")
        async with self.open_page(f"{BASE_URL}/explore/tags/{hashtag}/", wait_for="article a") as page:
            if await self._login_wall(page):
                logger.warning(f"[instagram] Login required for hashtag search #{hashtag}")
                return []
            author = Author(id="unknown", name="Instagram User", handle="unknown")
            items = await self.scroll_collect(
                page,
                lambda h: self.parse_post_links(h, author, title=f"#{hashtag} on Instagram", tags=[hashtag]),
                options,
            )
        logger.info(f"[instagram] Hashtag #{hashtag} returned {len(items)} posts")
        return items

    @staticmethod
    async def _login_wall(page: Page) -> bool:
        return await page.query_selector(LOGIN_WALL) is not None

    @staticmethod
    def og_name(html: str, default: str) -> str:
        """Display name from the og:title meta tag ("Name (@handle) ...")."""
        soup = BeautifulSoup(html, "html.parser")
        meta = soup.select_one('meta[property="og:title"]')
        title = meta.get("content", "") if meta else ""
        return title.split("(")[0].strip() or default

    def parse_post_links(
        self,
        html: str,
        author: Author,
        title: str,
        tags: list[str] | None = None,
    ) -> list[ContentItem | None]:
        """Grid links carry only the shortcode and whether it is a reel."""
        soup = BeautifulSoup(html, "html.parser")
        items: list[ContentItem | None] = []
        for link in soup.select(POST_LINKS):
            match = SHORTCODE_RE.search(link.get("href", ""))
            if not match:
                continue
            kind, shortcode = match.groups()
            thumbnail = link.select_one("img")
            description = normalize_text(thumbnail.get("alt")) if thumbnail else ""
            items.append(
                self.build_item(
                    platform_id=shortcode,
                    content_type=ContentType.REEL if kind == "reel" else ContentType.IMAGE,
                    title=title,
                    description=description,
                    thumbnail_url=thumbnail.get("src", "") if thumbnail else "",
                    content_url=f"{BASE_URL}/{kind}/{shortcode}/",
                    media_urls=[],
                    author=author,
                    published_at=datetime.now(timezone.utc),
                    tags=merge_tags(tags, extract_tags(description)),
                    language=detect_language(description or title),
                )
            )
        return items
