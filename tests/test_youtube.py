"""Tests for the YouTube connector against canned Data API payloads."""

import pytest

from feedhub.config import YouTubeSettings
from feedhub.crawler.base import ContentType, FetchOptions
from feedhub.crawler.registry import CrawlerRegistry
from feedhub.crawler.youtube.scraper import YouTubeCrawler
from feedhub.errors import ConfigurationError, SourceError
from feedhub.services import JobOrchestrator, JobSpec, JobStatus


def video(n: int, title: str = "") -> dict:
    return {
        "id": f"vid{n}",
        "snippet": {
            "title": title or f"Video   {n}",
            "description": "כתבה מיוחדת #חדשות #breaking",
            "channelTitle": "כאן חדשות",
            "channelId": "UCchan",
            "publishedAt": "2024-02-01T08:00:00Z",
            "tags": ["breaking", "news"],
            "thumbnails": {
                "default": {"url": f"https://i.ytimg.com/{n}/default.jpg"},
                "high": {"url": f"https://i.ytimg.com/{n}/high.jpg"},
            },
        },
        "statistics": {"viewCount": "1500", "likeCount": "30", "commentCount": "4"},
    }


class FakeYouTubeApi:
    """Serves a channel with `total` uploads in playlist pages of the requested size."""

    def __init__(self, total: int, fail_after_pages: int | None = None):
        self.total = total
        self.fail_after_pages = fail_after_pages
        self.playlist_pages = 0
        self.calls: list[tuple[str, dict]] = []

    async def __call__(self, endpoint: str, **params):
        self.calls.append((endpoint, params))
        if endpoint == "channels":
            return {
                "items": [
                    {
                        "id": "UCchan",
                        "contentDetails": {"relatedPlaylists": {"uploads": "UUchan"}},
                        "snippet": {"title": "כאן חדשות", "thumbnails": {"default": {"url": "https://a/b.jpg"}}},
                        "statistics": {"subscriberCount": "120000"},
                    }
                ]
            }
        if endpoint == "playlistItems":
            if self.playlist_pages == self.fail_after_pages:
                raise SourceError("youtube API error 500: backend", platform="youtube")
            self.playlist_pages += 1
            start = int(params.get("pageToken") or 0)
            end = min(start + params["maxResults"], self.total)
            return {
                "items": [{"contentDetails": {"videoId": f"vid{n}"}} for n in range(start, end)],
                "nextPageToken": str(end) if end < self.total else None,
            }
        if endpoint == "videos":
            return {"items": [video(int(v[3:])) for v in params["id"].split(",")]}
        if endpoint == "search":
            return {"items": [{"id": {"videoId": "vid1"}}, {"id": {"videoId": "vid2"}}]}
        raise AssertionError(endpoint)


@pytest.fixture
def youtube(crawler_settings) -> YouTubeCrawler:
    return YouTubeCrawler(YouTubeSettings(api_key="test-key"), crawler_settings)


def test_transform_video(youtube):
    item = youtube.transform_video(video(7), "UCchan")

    assert item.platform_id == "vid7"
    assert item.content_type == ContentType.VIDEO
    assert item.title == "Video 7"
    assert item.thumbnail_url == "https://i.ytimg.com/7/high.jpg"
    assert item.embed_url == "https://www.youtube.com/embed/vid7"
    assert item.author.name == "כאן חדשות"
    assert item.platform_metrics.views == 1500
    assert item.tags == ["חדשות", "breaking", "news"]
    assert item.language == "en"


def test_transform_video_without_id_dropped(youtube):
    assert youtube.transform_video({"snippet": {"title": "x"}}, "UCchan") is None


@pytest.mark.asyncio
async def test_fetch_is_bounded_by_max_items(youtube, monkeypatch):
    api = FakeYouTubeApi(total=100)
    monkeypatch.setattr(youtube, "_api", api)

    items = await youtube.fetch_content("@kan11", FetchOptions(max_items=10))

    assert len(items) == 10
    assert api.calls[0] == ("channels", {"part": "contentDetails,snippet", "forHandle": "kan11"})


@pytest.mark.asyncio
async def test_fetch_walks_all_pages(youtube, monkeypatch):
    api = FakeYouTubeApi(total=120)
    monkeypatch.setattr(youtube, "_api", api)

    items = await youtube.fetch_content("UCchan", FetchOptions(max_items=500))

    assert len(items) == 120
    assert sum(1 for endpoint, _ in api.calls if endpoint == "playlistItems") == 3


@pytest.mark.asyncio
async def test_fetch_unknown_channel(youtube, monkeypatch):
    async def no_channel(endpoint, **params):
        return {"items": []}

    monkeypatch.setattr(youtube, "_api", no_channel)
    with pytest.raises(SourceError, match="not found"):
        await youtube.fetch_content("UCnope", FetchOptions())


@pytest.mark.asyncio
async def test_search(youtube, monkeypatch):
    api = FakeYouTubeApi(total=0)
    monkeypatch.setattr(youtube, "_api", api)

    items = await youtube.search_content("חדשות", FetchOptions(max_items=5))

    assert [i.platform_id for i in items] == ["vid1", "vid2"]
    search_params = api.calls[0][1]
    assert search_params["relevanceLanguage"] == "he"
    assert search_params["maxResults"] == 5


@pytest.mark.asyncio
async def test_get_source_info(youtube, monkeypatch):
    monkeypatch.setattr(youtube, "_api", FakeYouTubeApi(total=0))

    info = await youtube.get_source_info("UCchan")

    assert info.name == "כאן חדשות"
    assert info.subscriber_count == 120000
    assert info.url == "https://www.youtube.com/channel/UCchan"


@pytest.mark.asyncio
async def test_missing_api_key(crawler_settings):
    crawler = YouTubeCrawler(YouTubeSettings(api_key=""), crawler_settings)

    with pytest.raises(ConfigurationError):
        await crawler.fetch_content("UCchan", FetchOptions())
    assert await crawler.validate_credentials() is False


@pytest.mark.asyncio
async def test_failed_page_keeps_earlier_pages(youtube, monkeypatch):
    monkeypatch.setattr(youtube, "_api", FakeYouTubeApi(total=100, fail_after_pages=1))
    options = FetchOptions(max_items=10)
    # Pages of 3 force a second playlist call
    monkeypatch.setattr("feedhub.crawler.youtube.scraper.PAGE_SIZE", 3)

    with pytest.raises(SourceError, match="500"):
        await youtube.fetch_content("UCchan", options)

    assert [i.platform_id for i in options.collected] == ["vid0", "vid1", "vid2"]


@pytest.mark.asyncio
async def test_job_ingests_pages_fetched_before_failure(youtube, monkeypatch, store, ledger, crawler_settings):
    monkeypatch.setattr(youtube, "_api", FakeYouTubeApi(total=100, fail_after_pages=1))
    monkeypatch.setattr("feedhub.crawler.youtube.scraper.PAGE_SIZE", 3)
    orchestrator = JobOrchestrator(CrawlerRegistry([youtube]), store, ledger, crawler_settings)

    result = await orchestrator.run(JobSpec(platform="youtube", source_id="UCchan", max_items=10))

    assert result.items_fetched == 3
    assert result.new_items == 3
    assert result.error_messages == ["youtube API error 500: backend"]
    assert result.status == JobStatus.FAILED
    assert store.count() == 3
    assert ledger.get("youtube", "UCchan").last_result["itemsFetched"] == 3
