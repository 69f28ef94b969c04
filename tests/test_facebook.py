"""Tests for the Facebook Graph API connector."""

import pytest

from feedhub.config import FacebookSettings
from feedhub.crawler.base import ContentType, FetchOptions, SourceInfo
from feedhub.crawler.facebook.scraper import FacebookCrawler
from feedhub.errors import ConfigurationError, SourceError

PAGE = {
    "id": "1001",
    "name": "Kan News",
    "username": "kannews",
    "link": "https://www.facebook.com/kannews",
    "fan_count": 52000,
    "picture": {"data": {"url": "https://fb/avatar.jpg"}},
}

PAGE_INFO = SourceInfo(id="1001", name="Kan News", url="https://www.facebook.com/kannews")


def post(n: int, **overrides) -> dict:
    data = {
        "id": f"1001_{n}",
        "message": f"עדכון {n}\nפרטים נוספים #חדשות",
        "created_time": "2024-03-10T12:00:00+0000",
        "full_picture": f"https://fb/{n}.jpg",
        "permalink_url": f"https://www.facebook.com/kannews/posts/{n}",
        "reactions": {"summary": {"total_count": 12}},
        "comments": {"summary": {"total_count": 3}},
        "shares": {"count": 2},
    }
    data.update(overrides)
    return data


@pytest.fixture
def facebook(crawler_settings) -> FacebookCrawler:
    return FacebookCrawler(FacebookSettings(app_id="app", app_secret="secret"), crawler_settings)


def test_transform_post(facebook):
    item = facebook.transform_post(post(1), PAGE_INFO)

    assert item.platform_id == "1001_1"
    assert item.content_type == ContentType.IMAGE
    assert item.title == "עדכון 1"
    assert item.media_urls == ["https://fb/1.jpg"]
    assert item.platform_metrics.likes == 12
    assert item.platform_metrics.shares == 2
    assert item.tags == ["חדשות"]
    assert item.language == "he"
    assert item.author.handle == "kannews"


def test_transform_post_title_rules(facebook):
    long_line = "a" * 150
    assert facebook.transform_post(post(1, message=long_line), PAGE_INFO).title == "a" * 100 + "..."
    assert facebook.transform_post(post(2, message=None), PAGE_INFO).title == "Facebook Post"


def test_transform_post_normalizes_text(facebook):
    item = facebook.transform_post(post(5, message="  Breaking   news\n\n  from   the  field #update "), PAGE_INFO)

    assert item.title == "Breaking news"
    assert item.description == "Breaking news from the field #update"
    assert item.tags == ["update"]
    assert item.language == "en"


def test_transform_post_video_and_attachments(facebook):
    item = facebook.transform_post(
        post(
            3,
            attachments={
                "data": [
                    {
                        "type": "video_inline",
                        "media": {"image": {"src": "https://fb/3.jpg"}},
                        "subattachments": {"data": [{"media": {"image": {"src": "https://fb/3b.jpg"}}}]},
                    }
                ]
            },
        ),
        PAGE_INFO,
    )
    assert item.content_type == ContentType.VIDEO
    assert item.media_urls == ["https://fb/3.jpg", "https://fb/3b.jpg"]


def test_empty_post_dropped(facebook):
    assert facebook.transform_post(post(4, message=None, full_picture=None), PAGE_INFO) is None


@pytest.mark.asyncio
async def test_fetch_follows_paging_until_max_items(facebook, monkeypatch):
    requested = []

    async def fake_get_json(path, params=None):
        requested.append(path)
        if path == "/1001":
            return PAGE
        if path == "/1001/posts":
            return {"data": [post(n) for n in range(1, 4)], "paging": {"next": "https://graph/next?after=3"}}
        if path == "https://graph/next?after=3":
            return {"data": [post(n) for n in range(4, 7)], "paging": {"next": "https://graph/next?after=6"}}
        raise AssertionError(path)

    monkeypatch.setattr(facebook.client, "get_json", fake_get_json)

    items = await facebook.fetch_content("1001", FetchOptions(max_items=5))

    assert [i.platform_id for i in items] == [f"1001_{n}" for n in range(1, 6)]
    assert "https://graph/next?after=6" not in requested


@pytest.mark.asyncio
async def test_search_degrades_to_page_id(facebook, monkeypatch):
    async def fake_get_json(path, params=None):
        if path == "/pages/search":
            raise SourceError("facebook API error 403: requires Page Public Content Access", platform="facebook")
        if path == "/kannews":
            return PAGE
        if path == "/kannews/posts":
            return {"data": [post(1)]}
        raise AssertionError(path)

    monkeypatch.setattr(facebook.client, "get_json", fake_get_json)

    items = await facebook.search_content("kannews", FetchOptions(max_items=5))

    assert [i.platform_id for i in items] == ["1001_1"]


@pytest.mark.asyncio
async def test_search_without_matches(facebook, monkeypatch):
    async def fake_get_json(path, params=None):
        return {"data": []}

    monkeypatch.setattr(facebook.client, "get_json", fake_get_json)
    assert await facebook.search_content("nothing", FetchOptions()) == []


@pytest.mark.asyncio
async def test_unconfigured_credentials(crawler_settings):
    crawler = FacebookCrawler(FacebookSettings(app_id="", app_secret=""), crawler_settings)

    assert await crawler.validate_credentials() is False
    with pytest.raises(ConfigurationError):
        await crawler.fetch_content("1001", FetchOptions())


@pytest.mark.asyncio
async def test_fetch_reports_page_lookup_failure(facebook, monkeypatch):
    async def fake_get_json(path, params=None):
        raise SourceError("facebook API error 400: Invalid OAuth access token", platform="facebook")

    monkeypatch.setattr(facebook.client, "get_json", fake_get_json)

    with pytest.raises(SourceError, match="Invalid OAuth access token"):
        await facebook.fetch_content("1001", FetchOptions())
    assert await facebook.get_source_info("1001") is None


@pytest.mark.asyncio
async def test_fetch_unknown_page(facebook, monkeypatch):
    async def fake_get_json(path, params=None):
        return {}

    monkeypatch.setattr(facebook.client, "get_json", fake_get_json)

    with pytest.raises(SourceError, match="page not found"):
        await facebook.fetch_content("nope", FetchOptions())
