"""Shared dependencies for API endpoints."""

import logging

from feedhub.config import get_settings
from feedhub.crawler.registry import CrawlerRegistry, build_registry
from feedhub.database import Database
from feedhub.services import ContentStore, JobLedger, JobOrchestrator

logger = logging.getLogger(__name__)

_db: Database | None = None
_registry: CrawlerRegistry | None = None
_ledger: JobLedger | None = None
_orchestrator: JobOrchestrator | None = None


async def init_deps() -> None:
    """Initialize shared dependencies (called on app startup).

    Order matters: tables exist before the registry accepts any job.
    """
    global _db, _registry, _ledger, _orchestrator
    settings = get_settings()
    _db = Database(settings.database.url)
    _db.init_db()
    _registry = build_registry(settings)
    _ledger = JobLedger(_db)
    _orchestrator = JobOrchestrator(_registry, ContentStore(_db), _ledger, settings.crawler)
    logger.info(f"API ready ({_db.dialect}, {len(_registry.platforms)} platforms)")


async def close_deps() -> None:
    """Close shared dependencies (called on app shutdown)."""
    global _db, _registry, _ledger, _orchestrator
    if _registry:
        await _registry.aclose()
    if _db:
        _db.dispose()
    _db = _registry = _ledger = _orchestrator = None


def get_registry() -> CrawlerRegistry:
    assert _registry is not None, "Registry not initialized, call init_deps() first"
    return _registry


def get_ledger() -> JobLedger:
    assert _ledger is not None, "Ledger not initialized, call init_deps() first"
    return _ledger


def get_orchestrator() -> JobOrchestrator:
    assert _orchestrator is not None, "Orchestrator not initialized, call init_deps() first"
    return _orchestrator
