"""Scoped Playwright browser sessions for scraping connectors.

A session owns a Playwright driver, one Chromium instance and one browser
context. It lives for exactly one connector call and is closed on every exit
path. `BrowserPool` bounds how many sessions a connector may hold at once so
concurrent jobs queue instead of exhausting the host.
"""

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, Callable, Self

from playwright.async_api import (
    Browser,
    BrowserContext,
    Error as PlaywrightError,
    Page,
    Playwright,
    TimeoutError as PlaywrightTimeoutError,
    async_playwright,
)

from feedhub.config import CrawlerSettings
from feedhub.crawler.base import BaseCrawler, ContentItem, FetchOptions
from feedhub.crawler.pagination import PageCollector
from feedhub.errors import SourceError

logger = logging.getLogger(__name__)

DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/131.0.0.0 Safari/537.36"
)

LAUNCH_ARGS = [
    "--disable-blink-features=AutomationControlled",
    "--no-sandbox",
    "--disable-setuid-sandbox",
    "--disable-dev-shm-usage",
    "--disable-gpu",
]


class BrowserSession:
    """Async context manager for one headless Chromium session.

    Usage:
        async with BrowserSession(settings) as session:
            page = await session.new_page()
            await page.goto("https://example.com")
    """

    def __init__(self, settings: CrawlerSettings, user_agent: str = DEFAULT_USER_AGENT):
        self.settings = settings
        self.user_agent = user_agent

        # Set after __aenter__
        self.browser: Browser | None = None
        self.context: BrowserContext | None = None
        self._pw: Playwright | None = None

    async def __aenter__(self) -> Self:
        self._pw = await async_playwright().start()
        try:
            self.browser = await self._pw.chromium.launch(
                headless=self.settings.headless,
                args=LAUNCH_ARGS,
            )
            self.context = await self.browser.new_context(
                viewport={"width": 1920, "height": 1080},
                user_agent=self.user_agent,
                locale="en-US",
            )
            # Every wait must be bounded
            self.context.set_default_timeout(self.settings.selector_timeout_ms)
            self.context.set_default_navigation_timeout(self.settings.navigation_timeout_ms)
        except BaseException:
            await self.close()
            raise
        logger.debug("Browser session started")
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    async def new_page(self) -> Page:
        if self.context is None:
            raise RuntimeError("BrowserSession used outside its context manager")
        return await self.context.new_page()

    async def close(self) -> None:
        """Close context, browser and driver; later steps run even if earlier ones fail."""
        for name, closer in (
            ("context", self.context.close if self.context else None),
            ("browser", self.browser.close if self.browser else None),
            ("playwright", self._pw.stop if self._pw else None),
        ):
            if closer is None:
                continue
            try:
                await closer()
            except PlaywrightError as e:
                logger.warning(f"Failed to close {name}: {e}")
        self.context = None
        self.browser = None
        self._pw = None
        logger.debug("Browser session closed")


class BrowserPool:
    """Hands out browser sessions, at most `max_sessions` at a time."""

    def __init__(
        self,
        settings: CrawlerSettings,
        max_sessions: int | None = None,
        session_factory: Callable[[CrawlerSettings], BrowserSession] = BrowserSession,
    ):
        self.settings = settings
        self.max_sessions = max_sessions or settings.max_browser_sessions
        self._session_factory = session_factory
        self._slots = asyncio.Semaphore(self.max_sessions)
        self.active = 0

    @asynccontextmanager
    async def acquire(self) -> AsyncIterator[BrowserSession]:
        """Yield a fresh session; it is closed when the block exits, however it exits."""
        async with self._slots:
            self.active += 1
            try:
                async with self._session_factory(self.settings) as session:
                    yield session
            finally:
                self.active -= 1


class BrowserCrawler(BaseCrawler):
    """Base for connectors that render public web pages in a headless browser."""

    def __init__(self, settings: CrawlerSettings, pool: BrowserPool | None = None):
        self.settings = settings
        self.pool = pool or BrowserPool(settings)

    async def goto(self, page: Page, url: str, wait_for: str | None = None) -> None:
        """Navigate and wait for `wait_for`. A missing selector only means an empty page."""
        await page.goto(url, wait_until="domcontentloaded")
        if wait_for:
            try:
                await page.wait_for_selector(wait_for)
            except PlaywrightTimeoutError:
                logger.info(f"[{self.platform.value}] No {wait_for!r} on {url}")

    @asynccontextmanager
    async def open_page(self, url: str, wait_for: str | None = None) -> AsyncIterator[Page]:
        """Acquire a session, navigate to `url` and yield the page.

        Browser failures inside the block, navigation included, surface as
        `SourceError`. The session is released when the block exits.
        """
        try:
            async with self.pool.acquire() as session:
                page = await session.new_page()
                await self.goto(page, url, wait_for)
                yield page
        except PlaywrightTimeoutError as e:
            raise SourceError(
                f"{self.name}: timed out loading {url}", platform=self.platform.value
            ) from e
        except PlaywrightError as e:
            raise SourceError(
                f"{self.name}: browser error on {url}: {e.message}", platform=self.platform.value
            ) from e

    async def render(self, url: str, wait_for: str | None = None) -> str:
        """Return the HTML of `url` after the optional selector appears."""
        async with self.open_page(url, wait_for) as page:
            return await page.content()

    async def scroll_collect(
        self,
        page: Page,
        parse: Callable[[str], list[ContentItem | None]],
        options: FetchOptions,
    ) -> list[ContentItem]:
        """Parse, scroll, repeat until the item cap, the idle bound or cancellation."""
        collector = PageCollector(
            options, self.settings.max_idle_pages, label=f"[{self.platform.value}]"
        )
        while True:
            collector.add(parse(await page.content()))
            if collector.done:
                break
            await page.evaluate("window.scrollBy(0, window.innerHeight)")
            await asyncio.sleep(self.settings.scroll_delay)

        if options.cancelled:
            logger.info(f"[{self.platform.value}] Scroll cancelled after {collector.pages} pages")
        return collector.items

    async def probe(self, url: str) -> bool:
        """True if `url` loads in a fresh session. Used as the credential check."""
        try:
            await self.render(url)
        except SourceError as e:
            logger.error(f"[{self.platform.value}] Browser probe failed: {e}")
            return False
        return True
