"""Runs one fetch or search job against one connector.

Flow per call:
1. Validate the job spec (ValidationError / ConfigurationError, nothing touched yet)
2. Mark the ledger row running, when the job names a source
3. Call the connector, bounded by the job timeout; failures are captured
   and the items paged in before the failure are still ingested
4. Upsert items one by one; a failed item is recorded and skipped
5. Write the ledger row and return the aggregated result

Only step 1 raises. Every later failure ends up in `error_messages`.
"""

import asyncio
import logging
import time
from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, ValidationError as PydanticValidationError
from pydantic.alias_generators import to_camel

from feedhub.config import CrawlerSettings
from feedhub.crawler.base import BaseCrawler, ContentItem, FetchOptions, utcnow
from feedhub.crawler.registry import CrawlerRegistry
from feedhub.errors import (
    ConfigurationError,
    FeedHubError,
    PersistenceError,
    SourceError,
    ValidationError,
)
from feedhub.services.content_store import ContentStore
from feedhub.services.job_ledger import DEFAULT_SOURCE_TYPE, JobLedger, JobStatus

logger = logging.getLogger(__name__)

CANCELLED_MESSAGE = "job cancelled"


class JobSpec(BaseModel):
    """A fetch or search request. Accepts camelCase or snake_case keys.

    Fields are loosely typed on purpose so that missing values reach
    `JobOrchestrator.validate` and are reported as job validation errors.
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    platform: str | None = None
    source_id: str | None = None
    search_query: str | None = None
    source_type: str | None = None
    max_items: int | None = None
    since: datetime | None = None

    @classmethod
    def from_payload(cls, payload: Any) -> "JobSpec":
        if not isinstance(payload, dict):
            raise ValidationError("Job spec must be a JSON object")
        try:
            return cls.model_validate(payload)
        except PydanticValidationError as e:
            first = e.errors()[0]
            field = ".".join(str(p) for p in first["loc"])
            raise ValidationError(f"Invalid {field}: {first['msg']}") from e


class JobResult(BaseModel):
    """Outcome of one job.

    `new_items` counts every successful upsert, updates of existing items
    included. It is not the number of newly created rows.
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    success: bool = True
    platform: str
    source_id: str | None = None
    search_query: str | None = None
    items_fetched: int = 0
    new_items: int = 0
    error_messages: list[str] = []
    duration: int = 0
    status: JobStatus = JobStatus.COMPLETED

    def summary(self) -> dict[str, Any]:
        """The `last_result` shape stored in the ledger."""
        return self.model_dump(
            by_alias=True,
            include={"items_fetched", "new_items", "error_messages", "duration"},
        )


class JobOrchestrator:
    """Resolve a connector, fetch, ingest, record.

    Usage:
        orchestrator = JobOrchestrator(registry, store, ledger, settings.crawler)
        result = await orchestrator.run(JobSpec(platform="youtube", source_id="@kan11"))
    """

    def __init__(
        self,
        registry: CrawlerRegistry,
        store: ContentStore,
        ledger: JobLedger,
        settings: CrawlerSettings,
    ):
        self.registry = registry
        self.store = store
        self.ledger = ledger
        self.settings = settings

    def validate(self, spec: JobSpec) -> BaseCrawler:
        if not spec.platform:
            raise ValidationError("Platform is required")
        crawler = self.registry.resolve(spec.platform)
        if not spec.source_id and not spec.search_query:
            raise ValidationError("Either sourceId or searchQuery is required")
        if spec.max_items is not None and spec.max_items <= 0:
            raise ValidationError("maxItems must be a positive integer")
        if spec.source_id and spec.search_query:
            logger.warning(
                f"[{spec.platform}] Both sourceId and searchQuery given; "
                f"searching {spec.search_query!r} and recording under {spec.source_id}"
            )
        return crawler

    async def run(self, spec: JobSpec, cancel_event: asyncio.Event | None = None) -> JobResult:
        """Execute one job. Raises only ValidationError or ConfigurationError."""
        crawler = self.validate(spec)
        platform = crawler.platform.value
        options = FetchOptions(
            max_items=spec.max_items or self.settings.default_max_items,
            since=spec.since,
            cancel_event=cancel_event,
        )
        config = {
            "maxItems": options.max_items,
            "since": options.since.isoformat() if options.since else None,
        }
        result = JobResult(platform=platform, source_id=spec.source_id, search_query=spec.search_query)
        started = time.monotonic()

        if spec.source_id:
            try:
                await asyncio.to_thread(
                    self.ledger.mark_running, platform, spec.source_id, spec.source_type, config
                )
            except PersistenceError as e:
                logger.error(f"[{platform}] {e}")
                result.error_messages.append(str(e))

        try:
            items = await self._acquire(crawler, spec, options, result)
            await self._ingest(items, options, result)
            if options.cancelled:
                logger.warning(f"[{platform}] Job cancelled after {result.new_items} item(s)")
                result.error_messages.append(CANCELLED_MESSAGE)
        except asyncio.CancelledError:
            result.error_messages.append(CANCELLED_MESSAGE)
            await self._finish(spec, result, config, started)
            raise

        await self._finish(spec, result, config, started)
        return result

    async def _acquire(
        self,
        crawler: BaseCrawler,
        spec: JobSpec,
        options: FetchOptions,
        result: JobResult,
    ) -> list[ContentItem]:
        platform = crawler.platform.value
        if spec.search_query:
            call = crawler.search_content(spec.search_query, options)
            target = f"search {spec.search_query!r}"
        else:
            call = crawler.fetch_content(spec.source_id, options)
            target = spec.source_id

        logger.info(f"[{platform}] Fetching {target} (max {options.max_items})")
        try:
            items = await asyncio.wait_for(call, timeout=self.settings.job_timeout)
        except asyncio.TimeoutError:
            message = f"{crawler.name}: timed out after {self.settings.job_timeout:g}s"
        except (SourceError, ConfigurationError) as e:
            message = str(e)
        except Exception as e:
            logger.exception(f"[{platform}] Unexpected connector failure")
            message = f"{crawler.name}: unexpected error: {e}"
        else:
            result.items_fetched = len(items)
            logger.info(f"[{platform}] Connector returned {len(items)} item(s) for {target}")
            return items

        logger.error(f"[{platform}] {message}")
        result.error_messages.append(message)
        partial = options.collected
        if partial:
            logger.warning(f"[{platform}] Keeping {len(partial)} item(s) fetched before the failure")
        result.items_fetched = len(partial)
        return partial

    async def _ingest(self, items: list[ContentItem], options: FetchOptions, result: JobResult) -> None:
        fetched_at = utcnow()
        for item in items:
            if options.cancelled:
                break
            try:
                stamped = item.model_copy(update={"fetched_at": fetched_at})
                await asyncio.to_thread(self.store.upsert, stamped)
            except FeedHubError as e:
                logger.warning(f"[{result.platform}] Skipping {item.platform_id}: {e}")
                result.error_messages.append(str(e))
                continue
            result.new_items += 1

    async def _finish(self, spec: JobSpec, result: JobResult, config: dict[str, Any], started: float) -> None:
        result.duration = int((time.monotonic() - started) * 1000)
        result.status = JobStatus.FAILED if result.error_messages else JobStatus.COMPLETED

        # Search-only jobs have no stable source identity and write no ledger row
        if spec.source_id:
            try:
                await asyncio.to_thread(
                    self.ledger.record,
                    result.platform,
                    spec.source_id,
                    result.summary(),
                    result.status,
                    spec.source_type or DEFAULT_SOURCE_TYPE,
                    config,
                )
            except PersistenceError as e:
                logger.error(f"[{result.platform}] {e}")
                result.error_messages.append(str(e))
                result.status = JobStatus.FAILED

        logger.info(
            f"[{result.platform}] Job {result.status.value}: fetched={result.items_fetched} "
            f"upserted={result.new_items} errors={len(result.error_messages)} in {result.duration}ms"
        )
