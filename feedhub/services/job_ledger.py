"""Latest-run status per (platform, source_id).

Each job execution that names a source overwrites that source's row; no
history is retained beyond the last run.
"""

import logging
from datetime import datetime
from enum import Enum
from typing import Any

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError

from feedhub.crawler.base import utcnow
from feedhub.database import Database, FetchJobRow
from feedhub.errors import PersistenceError
from feedhub.services.content_store import upsert_insert

logger = logging.getLogger(__name__)

DEFAULT_SOURCE_TYPE = "channel"
LIST_LIMIT = 50


class JobStatus(str, Enum):
    """Ledger status of a source."""

    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"


class JobLedger:
    def __init__(self, db: Database):
        self.db = db
        self._insert = upsert_insert(db.dialect)

    def _upsert(self, platform: str, source_id: str, values: dict[str, Any]) -> None:
        now = utcnow()
        stmt = self._insert(FetchJobRow).values(
            platform=platform,
            source_id=source_id,
            source_name=source_id,
            is_enabled=True,
            created_at=now,
            updated_at=now,
            **values,
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=["platform", "source_id"],
            set_={key: stmt.excluded[key] for key in (*values, "source_name", "updated_at")},
        )
        try:
            with self.db.transaction() as session:
                session.execute(stmt)
        except SQLAlchemyError as e:
            raise PersistenceError(platform, source_id, str(getattr(e, "orig", None) or e)) from e

    def mark_running(
        self,
        platform: str,
        source_id: str,
        source_type: str | None = None,
        config: dict[str, Any] | None = None,
    ) -> None:
        """Flag a source as being fetched; the previous last_result is kept until `record`."""
        self._upsert(
            platform,
            source_id,
            {
                "status": JobStatus.RUNNING.value,
                "source_type": source_type or DEFAULT_SOURCE_TYPE,
                "config": config or {},
            },
        )

    def record(
        self,
        platform: str,
        source_id: str,
        outcome: dict[str, Any],
        status: JobStatus,
        source_type: str | None = None,
        config: dict[str, Any] | None = None,
        last_run: datetime | None = None,
    ) -> None:
        """Overwrite status, last_run and last_result for the source.

        `outcome` is the `{itemsFetched, newItems, errorMessages, duration}`
        summary of the run.
        """
        self._upsert(
            platform,
            source_id,
            {
                "status": JobStatus(status).value,
                "source_type": source_type or DEFAULT_SOURCE_TYPE,
                "last_run": last_run or utcnow(),
                "last_result": outcome,
                "config": config or {},
            },
        )
        logger.info(f"[{platform}] Ledger {source_id}: {JobStatus(status).value}")

    def get(self, platform: str, source_id: str) -> FetchJobRow | None:
        with self.db.transaction() as session:
            return session.execute(
                select(FetchJobRow).where(
                    FetchJobRow.platform == platform,
                    FetchJobRow.source_id == source_id,
                )
            ).scalar_one_or_none()

    def list_jobs(self, platform: str | None = None, limit: int = LIST_LIMIT) -> list[FetchJobRow]:
        """Latest ledger rows, most recent run first."""
        stmt = select(FetchJobRow)
        if platform:
            stmt = stmt.where(FetchJobRow.platform == platform)
        # Rows still pending a first run sort last
        stmt = stmt.order_by(FetchJobRow.last_run.desc().nulls_last(), FetchJobRow.id.desc()).limit(limit)
        with self.db.transaction() as session:
            return list(session.execute(stmt).scalars())
