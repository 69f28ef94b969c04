"""Platform connectors and the registry that dispatches to them."""

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
from feedhub.crawler.registry import CrawlerRegistry, build_registry

__all__ = [
    "Author",
    "BaseCrawler",
    "ContentItem",
    "ContentType",
    "CrawlerRegistry",
    "FetchOptions",
    "Platform",
    "PlatformMetrics",
    "SourceInfo",
    "build_registry",
]
