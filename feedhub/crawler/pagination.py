"""Bounded collection of paged or scrolled results."""

import logging

from feedhub.crawler.base import ContentItem, FetchOptions

logger = logging.getLogger(__name__)


class PageCollector:
    """Accumulates items page by page and decides when to stop.

    Stops when any of these hold:
    - `max_items` items have been collected
    - `max_idle_pages` consecutive pages added nothing new
    - the cancel event in the fetch options was set

    Items are deduplicated by platform id, so scroll-based connectors can
    feed the whole rendered list on every iteration. Every kept item is also
    recorded on the fetch options, so a caller still has the pages collected
    before a later page fails or the call is cut off.

    Usage:
        collector = PageCollector(options, max_idle_pages=3)
        while not collector.done:
            page = await fetch_next()
            collector.add(page)
            if not has_more:
                break
        return collector.items
    """

    def __init__(self, options: FetchOptions, max_idle_pages: int = 3, label: str = ""):
        self.options = options
        self.max_idle_pages = max_idle_pages
        self.label = label
        self.pages = 0
        self.idle_pages = 0
        self._items: dict[str, ContentItem] = {}

    @property
    def items(self) -> list[ContentItem]:
        return list(self._items.values())

    @property
    def remaining(self) -> int:
        return max(self.options.max_items - len(self._items), 0)

    @property
    def full(self) -> bool:
        return len(self._items) >= self.options.max_items

    @property
    def idle(self) -> bool:
        return self.idle_pages >= self.max_idle_pages

    @property
    def done(self) -> bool:
        return self.full or self.idle or self.options.cancelled

    def add(self, page: list[ContentItem | None]) -> int:
        """Add one page of items. Returns the number of new items kept."""
        self.pages += 1
        added = 0
        for item in page:
            if self.full:
                break
            if item is None or item.platform_id in self._items:
                continue
            if self.options.since and item.published_at < self.options.since:
                continue
            self._items[item.platform_id] = item
            self.options.keep(item)
            added += 1

        if added:
            self.idle_pages = 0
        else:
            self.idle_pages += 1
            logger.debug(
                f"{self.label} page {self.pages} added nothing "
                f"({self.idle_pages}/{self.max_idle_pages})"
            )
        return added
