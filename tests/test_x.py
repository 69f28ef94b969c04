"""Tests for the Nitter-backed X connector's HTML parsing."""

from datetime import datetime, timezone

import pytest

from feedhub.config import XSettings
from feedhub.crawler.base import ContentType
from feedhub.crawler.x.scraper import XCrawler, parse_nitter_date

INSTANCE = "https://nitter.example"

PROFILE_HTML = """
<html><body>
<div class="profile-card">
  <a class="profile-card-avatar"><img src="/pic/profile.jpg"></a>
  <a class="profile-card-fullname">NASA</a>
  <ul><li class="followers"><span class="profile-stat-num">84.2M</span></li></ul>
</div>
<div class="timeline">
  <div class="timeline-item">
    <a class="tweet-link" href="/NASA/status/111#m"></a>
    <span class="tweet-date"><a title="Jan 15, 2024 · 10:30 AM UTC">Jan 15</a></span>
    <div class="tweet-content">Launch   day! #Artemis</div>
    <div class="attachments"><div class="still-image"><img src="/pic/media/a.jpg"></div></div>
    <div class="tweet-stats">
      <span class="tweet-stat"><div class="icon-container"><span class="icon-comment"></span></div> 1,204</span>
      <span class="tweet-stat"><div class="icon-container"><span class="icon-retweet"></span></div> 3.4K</span>
      <span class="tweet-stat"><div class="icon-container"><span class="icon-heart"></span></div> 25K</span>
    </div>
  </div>
  <div class="timeline-item">
    <div class="retweet-header">NASA retweeted</div>
    <a class="tweet-link" href="/ESA/status/222#m"></a>
    <div class="tweet-content">Retweeted content</div>
  </div>
  <div class="timeline-item">
    <a class="tweet-link" href="/NASA/status/333#m"></a>
    <div class="tweet-content">שלום מהחלל</div>
    <div class="attachments"><video class="gif-video" poster="/pic/poster.jpg"></video></div>
  </div>
  <div class="timeline-item">
    <div class="tweet-content">no link, no id</div>
  </div>
</div>
<div class="show-more"><a href="?cursor=DAABCgAB">Load more</a></div>
</body></html>
"""

SEARCH_HTML = """
<html><body>
<div class="timeline-item">
  <a class="tweet-link" href="/someone/status/444#m"></a>
  <a class="fullname">Some One</a>
  <img class="avatar round" src="/pic/someone.jpg">
  <div class="tweet-content">Searching for #Artemis</div>
</div>
<div class="show-more"><a href="/search?f=tweets&q=x">Back to top</a></div>
</body></html>
"""


@pytest.fixture
def x_crawler(crawler_settings) -> XCrawler:
    return XCrawler(XSettings(nitter_instances=f"{INSTANCE}/, https://nitter.two"), crawler_settings)


def test_instances_rotate(x_crawler):
    assert [x_crawler.next_instance() for _ in range(3)] == [INSTANCE, "https://nitter.two", INSTANCE]


def test_parse_profile_timeline(x_crawler):
    items = [i for i in x_crawler.parse_timeline(PROFILE_HTML, INSTANCE, username="NASA") if i]

    assert [i.platform_id for i in items] == ["111", "333"]

    first = items[0]
    assert first.description == "Launch day! #Artemis"
    assert first.content_type == ContentType.IMAGE
    assert first.media_urls == [f"{INSTANCE}/pic/media/a.jpg"]
    assert first.platform_metrics.comments == 1204
    assert first.platform_metrics.shares == 3400
    assert first.platform_metrics.likes == 25000
    assert first.published_at == datetime(2024, 1, 15, 10, 30, tzinfo=timezone.utc)
    assert first.author.name == "NASA"
    assert first.author.avatar_url == f"{INSTANCE}/pic/profile.jpg"
    assert first.content_url == "https://x.com/NASA/status/111"
    assert first.tags == ["Artemis"]

    video = items[1]
    assert video.content_type == ContentType.VIDEO
    assert video.thumbnail_url == f"{INSTANCE}/pic/poster.jpg"
    assert video.language == "he"


def test_parse_search_results_use_item_author(x_crawler):
    items = x_crawler.parse_timeline(SEARCH_HTML, INSTANCE)

    assert len(items) == 1
    assert items[0].author.handle == "someone"
    assert items[0].author.name == "Some One"
    assert items[0].content_type == ContentType.TEXT


def test_next_page_href(x_crawler):
    assert x_crawler.next_page_href(PROFILE_HTML) == "?cursor=DAABCgAB"
    assert x_crawler.next_page_href(SEARCH_HTML) is None


def test_parse_profile(x_crawler):
    info = x_crawler.parse_profile(PROFILE_HTML, "NASA", INSTANCE)

    assert info.name == "NASA"
    assert info.subscriber_count == 84_200_000
    assert info.url == "https://x.com/NASA"


def test_parse_nitter_date():
    assert parse_nitter_date("Mar 02, 2023 · 07:05 PM UTC") == datetime(2023, 3, 2, 19, 5, tzinfo=timezone.utc)
    assert parse_nitter_date("yesterday") is None
    assert parse_nitter_date(None) is None
