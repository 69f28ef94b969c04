"""
Test configuration and fixtures.

Every test gets its own SQLite file under pytest's tmp_path. Connectors are
replaced by an in-memory fake; no test touches the network or a browser.
"""

import pytest

from feedhub.config import CrawlerSettings
from feedhub.crawler.base import ContentItem
from feedhub.crawler.registry import CrawlerRegistry
from feedhub.database import Database
from feedhub.services import ContentStore, JobLedger, JobOrchestrator
from tests.factories import FakeCrawler, make_item


@pytest.fixture
def crawler_settings() -> CrawlerSettings:
    return CrawlerSettings(job_timeout=5, page_delay=0, scroll_delay=0, max_retries=0, retry_delay=0)


@pytest.fixture
def db(tmp_path):
    database = Database(f"sqlite:///{tmp_path / 'feedhub.db'}")
    database.init_db()
    yield database
    database.dispose()


@pytest.fixture
def store(db) -> ContentStore:
    return ContentStore(db)


@pytest.fixture
def ledger(db) -> JobLedger:
    return JobLedger(db)


@pytest.fixture
def items() -> list[ContentItem]:
    return [make_item(f"v{i}") for i in range(1, 6)]


@pytest.fixture
def crawler(items) -> FakeCrawler:
    return FakeCrawler(items)


@pytest.fixture
def registry(crawler) -> CrawlerRegistry:
    return CrawlerRegistry([crawler])


@pytest.fixture
def orchestrator(registry, store, ledger, crawler_settings) -> JobOrchestrator:
    return JobOrchestrator(registry, store, ledger, crawler_settings)
