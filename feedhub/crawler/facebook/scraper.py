"""Facebook connector backed by the Graph API (public page posts)."""

import asyncio
import logging
from typing import Any

from feedhub.config import CrawlerSettings, FacebookSettings
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
from feedhub.crawler.http import JsonClient
from feedhub.crawler.normalize import (
    detect_language,
    extract_tags,
    normalize_text,
    parse_timestamp,
    truncate_title,
)
from feedhub.crawler.pagination import PageCollector
from feedhub.errors import ConfigurationError, SourceError

logger = logging.getLogger(__name__)

POST_FIELDS = ",".join(
    [
        "id",
        "message",
        "story",
        "created_time",
        "full_picture",
        "permalink_url",
        "type",
        "shares",
        "reactions.summary(total_count)",
        "comments.summary(total_count)",
        "attachments{type,url,media,subattachments}",
    ]
)
PAGE_FIELDS = "id,name,username,picture.width(200),fan_count,link"
PAGE_SIZE = 100


def _image_src(node: dict[str, Any] | None) -> str | None:
    return ((node or {}).get("media") or {}).get("image", {}).get("src")


class FacebookCrawler(BaseCrawler):
    """Graph API connector. `source_id` is a page id or page username.

    Searching uses `/pages/search` and returns posts of the best matching
    page. That endpoint needs the Page Public Content Access feature; when
    it is refused, the query is used directly as a page id instead. This
    fallback is logged so that callers can tell the two apart.
    """

    platform = Platform.FACEBOOK
    name = "Facebook"

    def __init__(self, settings: FacebookSettings, crawler_settings: CrawlerSettings):
        self.settings = settings
        self.crawler_settings = crawler_settings
        self.client = JsonClient(
            self.platform.value,
            crawler_settings,
            base_url=f"https://graph.facebook.com/{settings.graph_version}",
        )

    def _access_token(self) -> str:
        if not self.settings.configured:
            raise ConfigurationError("Facebook credentials not configured")
        return f"{self.settings.app_id}|{self.settings.app_secret}"

    async def _graph(self, endpoint: str, **params: Any) -> dict[str, Any]:
        return await self.client.get_json(endpoint, {**params, "access_token": self._access_token()})

    async def validate_credentials(self) -> bool:
        if not self.settings.configured:
            return False
        try:
            await self._graph(f"/{self.settings.app_id}", fields="id,name")
        except SourceError as e:
            logger.error(f"[facebook] Credential validation failed: {e}")
            return False
        return True

    async def get_source_info(self, source_id: str) -> SourceInfo | None:
        try:
            return await self._page_info(source_id)
        except SourceError as e:
            logger.error(f"[facebook] Error getting page info: {e}")
            return None

    async def _page_info(self, source_id: str) -> SourceInfo | None:
        """Page descriptor; None only when the page does not resolve. Call failures propagate."""
        page = await self._graph(f"/{source_id}", fields=PAGE_FIELDS)
        if not page.get("id"):
            return None
        return SourceInfo(
            id=page["id"],
            name=page.get("name", source_id),
            url=page.get("link") or f"https://www.facebook.com/{page.get('username') or page['id']}",
            subscriber_count=page.get("fan_count"),
            avatar_url=(page.get("picture") or {}).get("data", {}).get("url"),
        )

    async def fetch_content(self, source_id: str, options: FetchOptions) -> list[ContentItem]:
        page_info = await self._page_info(source_id)
        if page_info is None:
            raise SourceError(f"Facebook page not found: {source_id}", platform="facebook")

        collector = PageCollector(options, self.crawler_settings.max_idle_pages, label="[facebook]")
        response = await self._graph(
            f"/{source_id}/posts", fields=POST_FIELDS, limit=min(PAGE_SIZE, options.max_items)
        )
        while True:
            collector.add([self.transform_post(p, page_info) for p in response.get("data", [])])
            next_url = (response.get("paging") or {}).get("next")
            if collector.done or not next_url:
                break
            await asyncio.sleep(self.crawler_settings.page_delay)
            # The `next` link already carries the access token and cursor
            response = await self.client.get_json(next_url)

        logger.info(f"[facebook] Fetched {len(collector.items)} posts from {page_info.name}")
        return collector.items

    async def search_content(self, query: str, options: FetchOptions) -> list[ContentItem]:
        try:
            pages = await self._graph("/pages/search", q=query, fields=PAGE_FIELDS, limit=10)
        except SourceError as e:
            logger.warning(f"[facebook] Page search unavailable ({e}); treating {query!r} as a page id")
            return await self.fetch_content(query, options)

        matches = pages.get("data") or []
        if not matches:
            logger.warning(f"[facebook] No pages found for query: {query}")
            return []
        return await self.fetch_content(matches[0]["id"], options)

    def transform_post(self, post: dict[str, Any], page_info: SourceInfo) -> ContentItem | None:
        """Map a Graph API post onto the canonical item. Empty posts are dropped."""
        raw_text = post.get("message") or post.get("story") or ""
        text = normalize_text(raw_text)
        picture = post.get("full_picture")
        if not text and not picture:
            return None

        attachments = (post.get("attachments") or {}).get("data", [])
        if post.get("type") == "video" or any(a.get("type") == "video_inline" for a in attachments):
            content_type = ContentType.VIDEO
        elif picture or any(a.get("type") == "photo" for a in attachments):
            content_type = ContentType.IMAGE
        else:
            content_type = ContentType.TEXT

        title = truncate_title(normalize_text(raw_text.split("\n")[0])) or "Facebook Post"

        media_urls: list[str] = [picture] if picture else []
        for attachment in attachments:
            media_urls.append(_image_src(attachment))
            for sub in (attachment.get("subattachments") or {}).get("data", []):
                media_urls.append(_image_src(sub))
        media_urls = list(dict.fromkeys(u for u in media_urls if u))

        return self.build_item(
            platform_id=post.get("id", ""),
            content_type=content_type,
            title=title,
            description=text,
            thumbnail_url=picture or (_image_src(attachments[0]) if attachments else None) or "",
            content_url=post.get("permalink_url", ""),
            media_urls=media_urls,
            author=Author(
                id=page_info.id,
                name=page_info.name,
                handle=page_info.url.rstrip("/").split("/")[-1] or page_info.id,
                avatar_url=page_info.avatar_url,
                profile_url=page_info.url,
            ),
            platform_metrics=PlatformMetrics(
                likes=((post.get("reactions") or {}).get("summary") or {}).get("total_count"),
                comments=((post.get("comments") or {}).get("summary") or {}).get("total_count"),
                shares=(post.get("shares") or {}).get("count"),
            ),
            published_at=parse_timestamp(post.get("created_time")),
            tags=extract_tags(text),
            language=detect_language(text),
        )
