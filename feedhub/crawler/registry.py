"""Process-wide platform -> connector table."""

import logging
from types import MappingProxyType
from typing import Iterable, Mapping

from feedhub.config import Settings
from feedhub.crawler.base import BaseCrawler
from feedhub.errors import ConfigurationError

logger = logging.getLogger(__name__)


class CrawlerRegistry:
    """Read-only lookup from platform id to connector instance.

    Built once at startup from a fixed set of connectors; there is no way to
    add or replace an entry afterwards.
    """

    def __init__(self, crawlers: Iterable[BaseCrawler]):
        table: dict[str, BaseCrawler] = {}
        for crawler in crawlers:
            key = crawler.platform.value
            if key in table:
                raise ConfigurationError(f"Duplicate connector for platform: {key}")
            table[key] = crawler
        self._table: Mapping[str, BaseCrawler] = MappingProxyType(table)

    @property
    def platforms(self) -> list[str]:
        return sorted(self._table)

    def __contains__(self, platform: object) -> bool:
        return platform in self._table

    def resolve(self, platform: str) -> BaseCrawler:
        crawler = self._table.get(platform)
        if crawler is None:
            raise ConfigurationError(f"Unknown platform: {platform}")
        return crawler

    async def aclose(self) -> None:
        """Close every connector, continuing past individual failures."""
        for key, crawler in self._table.items():
            try:
                await crawler.aclose()
            except Exception as e:
                logger.warning(f"[{key}] Failed to close connector: {e}")


def build_registry(settings: Settings) -> CrawlerRegistry:
    """Instantiate one connector per supported platform."""
    from feedhub.crawler.facebook.scraper import FacebookCrawler
    from feedhub.crawler.instagram.scraper import InstagramCrawler
    from feedhub.crawler.telegram.scraper import TelegramCrawler
    from feedhub.crawler.tiktok.scraper import TikTokCrawler
    from feedhub.crawler.x.scraper import XCrawler
    from feedhub.crawler.youtube.scraper import YouTubeCrawler

    crawler_settings = settings.crawler
    registry = CrawlerRegistry(
        [
            YouTubeCrawler(settings.youtube, crawler_settings),
            FacebookCrawler(settings.facebook, crawler_settings),
            TelegramCrawler(settings.telegram, crawler_settings),
            XCrawler(settings.x, crawler_settings),
            TikTokCrawler(crawler_settings),
            InstagramCrawler(crawler_settings),
        ]
    )
    logger.info(f"Registered connectors: {', '.join(registry.platforms)}")
    return registry
