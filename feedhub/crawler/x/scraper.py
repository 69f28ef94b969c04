"""X (Twitter) connector reading public Nitter front-ends.

No API key or cookies are needed. Pages are rendered in a headless browser
and parsed with BeautifulSoup; the timeline's "Load more" cursor link is
followed page by page. Instances are rotated round-robin per call.
"""

import asyncio
import itertools
import logging
from datetime import datetime, timezone
from urllib.parse import quote, urljoin

from bs4 import BeautifulSoup, Tag

from feedhub.config import CrawlerSettings, XSettings
from feedhub.crawler.base import (
    Author,
    ContentItem,
    ContentType,
    FetchOptions,
    Platform,
    PlatformMetrics,
    SourceInfo,
)
from feedhub.crawler.browser import BrowserCrawler, BrowserPool
from feedhub.crawler.normalize import (
    detect_language,
    extract_tags,
    normalize_text,
    parse_count,
    truncate_title,
)
from feedhub.crawler.pagination import PageCollector
from feedhub.errors import SourceError

logger = logging.getLogger(__name__)

TIMELINE_ITEM = ".timeline-item"
# Nitter renders dates as "Jan 15, 2024 · 10:30 AM UTC"
NITTER_DATE_FORMAT = "%b %d, %Y · %I:%M %p %Z"


def parse_nitter_date(value: str | None) -> datetime | None:
    if not value:
        return None
    try:
        return datetime.strptime(value.strip(), NITTER_DATE_FORMAT).replace(tzinfo=timezone.utc)
    except ValueError:
        return None


def absolute(url: str, instance: str) -> str:
    if not url or url.startswith("http"):
        return url
    return f"{instance}{url}"


class XCrawler(BrowserCrawler):
    """X connector. `source_id` is a username without '@'.

    Usage:
        crawler = XCrawler(settings.x, settings.crawler)
        tweets = await crawler.fetch_content("nasa", FetchOptions(max_items=50))
    """

    platform = Platform.X
    name = "X (Nitter)"

    def __init__(self, settings: XSettings, crawler_settings: CrawlerSettings, pool: BrowserPool | None = None):
        super().__init__(crawler_settings, pool)
        self.instances = settings.get_instances()
        self._rotation = itertools.cycle(self.instances)

    def next_instance(self) -> str:
        return next(self._rotation)

    async def validate_credentials(self) -> bool:
        # Nothing to authenticate; check that an instance answers
        return await self.probe(self.next_instance())

    async def get_source_info(self, source_id: str) -> SourceInfo | None:
        username = source_id.lstrip("@")
        instance = self.next_instance()
        try:
            html = await self.render(f"{instance}/{username}", wait_for=".profile-card")
        except SourceError as e:
            logger.error(f"[x] Failed to get user info: {e}")
            return None
        return self.parse_profile(html, username, instance)

    async def fetch_content(self, source_id: str, options: FetchOptions) -> list[ContentItem]:
        username = source_id.lstrip("@")
        instance = self.next_instance()
        items = await self._paginate(
            f"{instance}/{username}",
            lambda html: self.parse_timeline(html, instance, username=username),
            options,
        )
        logger.info(f"[x] Fetched {len(items)} tweets from @{username} via {instance}")
        return items

    async def search_content(self, query: str, options: FetchOptions) -> list[ContentItem]:
        instance = self.next_instance()
        items = await self._paginate(
            f"{instance}/search?f=tweets&q={quote(query)}",
            lambda html: self.parse_timeline(html, instance),
            options,
        )
        logger.info(f"[x] Search {query!r} returned {len(items)} tweets via {instance}")
        return items

    async def _paginate(self, url: str, parse, options: FetchOptions) -> list[ContentItem]:
        collector = PageCollector(options, self.settings.max_idle_pages, label="[x]")
        async with self.open_page(url, wait_for=TIMELINE_ITEM) as page:
            while True:
                html = await page.content()
                collector.add(parse(html))
                cursor = self.next_page_href(html)
                if collector.done or not cursor:
                    break
                await asyncio.sleep(self.settings.scroll_delay)
                await self.goto(page, urljoin(page.url, cursor), wait_for=TIMELINE_ITEM)
        return collector.items

    @staticmethod
    def next_page_href(html: str) -> str | None:
        """Href of the "Load more" link at the bottom of a Nitter timeline."""
        soup = BeautifulSoup(html, "html.parser")
        for link in soup.select(".show-more a"):
            href = link.get("href", "")
            if "cursor=" in href:
                return href
        return None

    def parse_profile(self, html: str, username: str, instance: str) -> SourceInfo:
        soup = BeautifulSoup(html, "html.parser")
        name = soup.select_one(".profile-card-fullname")
        avatar = soup.select_one(".profile-card-avatar img")
        followers = soup.select_one(".followers .profile-stat-num")
        return SourceInfo(
            id=username,
            name=name.get_text(strip=True) if name else username,
            url=f"https://x.com/{username}",
            subscriber_count=parse_count(followers.get_text()) if followers else None,
            avatar_url=absolute(avatar.get("src", ""), instance) if avatar else None,
        )

    def parse_timeline(self, html: str, instance: str, username: str | None = None) -> list[ContentItem | None]:
        """Parse timeline items.

        With `username` (profile timeline) retweets are skipped and the
        profile card supplies the author. Without it (search results) each
        item carries its own author.
        """
        soup = BeautifulSoup(html, "html.parser")
        profile_name = soup.select_one(".profile-card-fullname")
        profile_avatar = soup.select_one(".profile-card-avatar img")

        items: list[ContentItem | None] = []
        for el in soup.select(TIMELINE_ITEM):
            if username and el.select_one(".retweet-header"):
                continue

            link = el.select_one(".tweet-link")
            href = link.get("href", "") if link else ""
            tweet_id = href.split("/status/")[1].split("#")[0] if "/status/" in href else ""
            author_handle = username or href.lstrip("/").split("/")[0]
            if not tweet_id or not author_handle:
                continue

            if username:
                author_name = profile_name.get_text(strip=True) if profile_name else username
                avatar_src = profile_avatar.get("src", "") if profile_avatar else ""
            else:
                fullname = el.select_one(".fullname")
                avatar_img = el.select_one(".avatar")
                author_name = fullname.get_text(strip=True) if fullname else author_handle
                avatar_src = avatar_img.get("src", "") if avatar_img else ""

            items.append(
                self._build_tweet(el, instance, tweet_id, author_handle, author_name, avatar_src)
            )
        return items

    def _build_tweet(
        self,
        el: Tag,
        instance: str,
        tweet_id: str,
        handle: str,
        author_name: str,
        avatar_src: str,
    ) -> ContentItem | None:
        content = el.select_one(".tweet-content")
        text = normalize_text(content.get_text(" ")) if content else ""
        date_link = el.select_one(".tweet-date a")

        comments = retweets = likes = 0
        for stat in el.select(".tweet-stat"):
            icon_class = " ".join(c for tag in stat.find_all(True) for c in tag.get("class", []))
            count = parse_count(stat.get_text(strip=True))
            if "comment" in icon_class:
                comments = count
            elif "retweet" in icon_class:
                retweets = count
            elif "heart" in icon_class:
                likes = count

        video = el.select_one(".gif-video, .gallery-video")
        images = el.select(".still-image img")
        if video:
            content_type = ContentType.VIDEO
            thumbnail = video.get("poster", "")
        elif images:
            content_type = ContentType.IMAGE
            thumbnail = images[0].get("src", "")
        else:
            content_type = ContentType.TEXT
            thumbnail = ""

        return self.build_item(
            platform_id=tweet_id,
            content_type=content_type,
            title=truncate_title(text),
            description=text,
            thumbnail_url=absolute(thumbnail, instance),
            content_url=f"https://x.com/{handle}/status/{tweet_id}",
            media_urls=[absolute(img.get("src", ""), instance) for img in images if img.get("src")],
            author=Author(
                id=handle,
                name=author_name,
                handle=handle,
                avatar_url=absolute(avatar_src, instance) or None,
                profile_url=f"https://x.com/{handle}",
            ),
            platform_metrics=PlatformMetrics(likes=likes, shares=retweets, comments=comments),
            published_at=parse_nitter_date(date_link.get("title") if date_link else None)
            or datetime.now(timezone.utc),
            tags=extract_tags(text),
            language=detect_language(text),
        )
