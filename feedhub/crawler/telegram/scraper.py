"""Telegram connector backed by the Bot API.

The Bot API cannot read channel history. What a bot can see is the queue of
channel posts delivered to it (it must be a channel admin) that have not yet
been confirmed, which Telegram keeps for up to 24 hours. Both fetch and
search read that window without confirming it, so other consumers of the
same bot still receive the updates. Full history needs an MTProto client.
"""

import logging
from typing import Any

from feedhub.config import CrawlerSettings, TelegramSettings
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

UPDATES_LIMIT = 100


class TelegramCrawler(BaseCrawler):
    """Bot API connector. `source_id` is a public channel username (with or without '@')."""

    platform = Platform.TELEGRAM
    name = "Telegram"

    def __init__(self, settings: TelegramSettings, crawler_settings: CrawlerSettings):
        self.settings = settings
        self.crawler_settings = crawler_settings
        self.client = JsonClient(self.platform.value, crawler_settings, base_url="https://api.telegram.org")

    async def _call(self, method: str, **params: Any) -> Any:
        if not self.settings.bot_token:
            raise ConfigurationError("TELEGRAM_BOT_TOKEN is not configured")
        data = await self.client.get_json(f"/bot{self.settings.bot_token}/{method}", params)
        if not data.get("ok"):
            raise SourceError(
                f"Telegram {method} failed: {data.get('description', 'unknown error')}",
                platform="telegram",
            )
        return data["result"]

    async def validate_credentials(self) -> bool:
        if not self.settings.bot_token:
            return False
        try:
            me = await self._call("getMe")
        except SourceError as e:
            logger.error(f"[telegram] Credentials validation failed: {e}")
            return False
        return bool(me.get("id"))

    async def get_source_info(self, source_id: str) -> SourceInfo | None:
        username = source_id.lstrip("@")
        try:
            chat = await self._call("getChat", chat_id=f"@{username}")
            members = await self._call("getChatMemberCount", chat_id=f"@{username}")
        except SourceError as e:
            logger.error(f"[telegram] Failed to get channel info: {e}")
            return None
        if "title" not in chat:
            return None
        return SourceInfo(
            id=str(chat["id"]),
            name=chat.get("title") or username,
            url=f"https://t.me/{username}",
            subscriber_count=members if isinstance(members, int) else None,
        )

    async def fetch_content(self, source_id: str, options: FetchOptions) -> list[ContentItem]:
        username = source_id.lstrip("@").lower()
        posts = [
            p
            for p in await self._pending_channel_posts()
            if (p["chat"].get("username") or "").lower() == username or str(p["chat"]["id"]) == source_id
        ]
        logger.warning(
            f"[telegram] Bot API exposes only pending updates; "
            f"{len(posts)} post(s) from @{username} in the current window"
        )
        return self._collect(posts, options)

    async def search_content(self, query: str, options: FetchOptions) -> list[ContentItem]:
        """Case-insensitive substring match over the pending window of every channel."""
        needle = query.casefold()
        posts = [
            p
            for p in await self._pending_channel_posts()
            if needle in (p.get("text") or p.get("caption") or "").casefold()
        ]
        logger.warning(
            f"[telegram] Search covers only pending channel updates; {len(posts)} match(es) for {query!r}"
        )
        return self._collect(posts, options)

    async def _pending_channel_posts(self) -> list[dict[str, Any]]:
        updates = await self._call(
            "getUpdates",
            limit=UPDATES_LIMIT,
            timeout=0,
            allowed_updates='["channel_post","edited_channel_post"]',
        )
        posts: dict[tuple[int, int], dict[str, Any]] = {}
        for update in updates:
            # An edit supersedes the original post
            post = update.get("edited_channel_post") or update.get("channel_post")
            if post and post.get("chat"):
                posts[(post["chat"]["id"], post["message_id"])] = post
        # Newest first, like every other connector
        return sorted(posts.values(), key=lambda p: p.get("date", 0), reverse=True)

    def _collect(self, posts: list[dict[str, Any]], options: FetchOptions) -> list[ContentItem]:
        collector = PageCollector(options, self.crawler_settings.max_idle_pages, label="[telegram]")
        collector.add([self.transform_message(p) for p in posts])
        return collector.items

    def transform_message(self, message: dict[str, Any], channel_username: str | None = None) -> ContentItem | None:
        """Map a Bot API channel message onto the canonical item."""
        if "chat" not in message or "message_id" not in message:
            return None
        chat = message.get("chat") or {}
        username = channel_username or chat.get("username") or str(chat.get("id", ""))
        text = normalize_text(message.get("text") or message.get("caption"))

        if message.get("video"):
            content_type = ContentType.VIDEO
        elif message.get("photo"):
            content_type = ContentType.IMAGE
        else:
            content_type = ContentType.TEXT

        return self.build_item(
            platform_id=f"{chat.get('id')}_{message.get('message_id')}",
            content_type=content_type,
            title=truncate_title(text),
            description=text,
            thumbnail_url="",
            content_url=f"https://t.me/{username}/{message.get('message_id')}",
            media_urls=[],
            author=Author(
                id=str(chat.get("id", "")),
                name=chat.get("title") or username,
                handle=username,
                profile_url=f"https://t.me/{username}",
            ),
            platform_metrics=PlatformMetrics(
                views=message.get("views"),
                shares=message.get("forward_count"),
            ),
            published_at=parse_timestamp(message.get("date")),
            tags=extract_tags(text),
            language=detect_language(text),
        )
