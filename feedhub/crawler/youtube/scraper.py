"""YouTube connector backed by the YouTube Data API v3.

Channel fetches walk the channel's uploads playlist; searches use
`search.list`. Both hydrate statistics through `videos.list` in batches of
up to 50 ids (one API page).
"""

import asyncio
import logging
from typing import Any

from feedhub.config import CrawlerSettings, YouTubeSettings
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
    merge_tags,
    normalize_text,
    parse_timestamp,
)
from feedhub.crawler.pagination import PageCollector
from feedhub.errors import ConfigurationError, SourceError

logger = logging.getLogger(__name__)

API_BASE = "https://www.googleapis.com/youtube/v3"
PAGE_SIZE = 50
# Google Developers channel, used as a known-good probe
PROBE_CHANNEL_ID = "UC_x5XG1OV2P6uZZ5FSM9Ttw"


def _to_int(value: Any) -> int | None:
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


class YouTubeCrawler(BaseCrawler):
    """YouTube Data API connector.

    `source_id` is either a channel id (``UC...``) or a handle (``@name``).
    """

    platform = Platform.YOUTUBE
    name = "YouTube"

    def __init__(self, settings: YouTubeSettings, crawler_settings: CrawlerSettings):
        self.settings = settings
        self.crawler_settings = crawler_settings
        self.client = JsonClient(self.platform.value, crawler_settings, base_url=API_BASE)

    async def _api(self, endpoint: str, **params: Any) -> dict[str, Any]:
        if not self.settings.api_key:
            raise ConfigurationError("YOUTUBE_API_KEY is not configured")
        return await self.client.get_json(endpoint, {**params, "key": self.settings.api_key})

    async def validate_credentials(self) -> bool:
        try:
            data = await self._api("channels", part="id", id=PROBE_CHANNEL_ID, maxResults=1)
        except (ConfigurationError, SourceError) as e:
            logger.error(f"[youtube] Credentials validation failed: {e}")
            return False
        return bool(data.get("items"))

    async def get_source_info(self, source_id: str) -> SourceInfo | None:
        try:
            data = await self._api("channels", part="snippet,statistics", **self._channel_filter(source_id))
        except SourceError as e:
            logger.error(f"[youtube] Failed to get channel info: {e}")
            return None

        channel = (data.get("items") or [None])[0]
        if not channel:
            return None
        snippet = channel.get("snippet", {})
        channel_id = channel.get("id", source_id)
        return SourceInfo(
            id=channel_id,
            name=snippet.get("title", ""),
            url=f"https://www.youtube.com/channel/{channel_id}",
            subscriber_count=_to_int(channel.get("statistics", {}).get("subscriberCount")),
            avatar_url=snippet.get("thumbnails", {}).get("default", {}).get("url"),
        )

    async def fetch_content(self, source_id: str, options: FetchOptions) -> list[ContentItem]:
        channel_data = await self._api(
            "channels", part="contentDetails,snippet", **self._channel_filter(source_id)
        )
        channel = (channel_data.get("items") or [None])[0]
        uploads = (
            channel.get("contentDetails", {}).get("relatedPlaylists", {}).get("uploads")
            if channel
            else None
        )
        if not uploads:
            raise SourceError(
                f"YouTube channel not found or has no uploads: {source_id}", platform="youtube"
            )
        channel_id = channel.get("id", source_id)

        collector = PageCollector(options, self.crawler_settings.max_idle_pages, label="[youtube]")
        page_token: str | None = None
        while not collector.done:
            playlist = await self._api(
                "playlistItems",
                part="snippet,contentDetails",
                playlistId=uploads,
                maxResults=min(PAGE_SIZE, collector.remaining),
                pageToken=page_token,
            )
            video_ids = [
                i["contentDetails"]["videoId"]
                for i in playlist.get("items", [])
                if i.get("contentDetails", {}).get("videoId")
            ]
            if not video_ids:
                break

            collector.add([self.transform_video(v, channel_id) for v in await self._videos(video_ids)])

            page_token = playlist.get("nextPageToken")
            if not page_token:
                break
            await asyncio.sleep(self.crawler_settings.page_delay)

        logger.info(f"[youtube] Fetched {len(collector.items)} videos from {source_id}")
        return collector.items

    async def search_content(self, query: str, options: FetchOptions) -> list[ContentItem]:
        collector = PageCollector(options, self.crawler_settings.max_idle_pages, label="[youtube]")
        page_token: str | None = None
        while not collector.done:
            results = await self._api(
                "search",
                part="snippet",
                q=query,
                type="video",
                maxResults=min(PAGE_SIZE, collector.remaining),
                pageToken=page_token,
                publishedAfter=options.since.isoformat() if options.since else None,
                relevanceLanguage="he",
            )
            video_ids = [
                i["id"]["videoId"] for i in results.get("items", []) if i.get("id", {}).get("videoId")
            ]
            if not video_ids:
                break

            collector.add(
                [
                    self.transform_video(v, v.get("snippet", {}).get("channelId", ""))
                    for v in await self._videos(video_ids)
                ]
            )

            page_token = results.get("nextPageToken")
            if not page_token:
                break
            await asyncio.sleep(self.crawler_settings.page_delay)

        logger.info(f"[youtube] Search {query!r} returned {len(collector.items)} videos")
        return collector.items

    async def _videos(self, video_ids: list[str]) -> list[dict[str, Any]]:
        data = await self._api("videos", part="snippet,statistics", id=",".join(video_ids))
        return data.get("items", [])

    @staticmethod
    def _channel_filter(source_id: str) -> dict[str, str]:
        if source_id.startswith("@"):
            return {"forHandle": source_id[1:]}
        return {"id": source_id}

    def transform_video(self, video: dict[str, Any], channel_id: str) -> ContentItem | None:
        """Map a `videos.list` resource onto the canonical item."""
        video_id = video.get("id")
        if not video_id:
            return None
        snippet = video.get("snippet", {})
        statistics = video.get("statistics", {})
        thumbnails = snippet.get("thumbnails", {})
        thumbnail = next(
            (thumbnails[k]["url"] for k in ("maxres", "high", "default") if k in thumbnails),
            "",
        )
        description = snippet.get("description", "")

        return self.build_item(
            platform_id=video_id,
            content_type=ContentType.VIDEO,
            title=normalize_text(snippet.get("title")),
            description=normalize_text(description),
            thumbnail_url=thumbnail,
            content_url=f"https://www.youtube.com/watch?v={video_id}",
            embed_url=f"https://www.youtube.com/embed/{video_id}",
            media_urls=[],
            author=Author(
                id=channel_id,
                name=snippet.get("channelTitle", ""),
                handle=channel_id,
                profile_url=f"https://www.youtube.com/channel/{channel_id}",
            ),
            platform_metrics=PlatformMetrics(
                views=_to_int(statistics.get("viewCount")),
                likes=_to_int(statistics.get("likeCount")),
                comments=_to_int(statistics.get("commentCount")),
            ),
            published_at=parse_timestamp(snippet.get("publishedAt")),
            tags=merge_tags(extract_tags(description), snippet.get("tags")),
            language=detect_language(snippet.get("title")),
        )
