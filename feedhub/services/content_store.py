"""Idempotent content upsert.

Each item is written with one `INSERT ... ON CONFLICT (platform, platform_id)
DO UPDATE` statement. The unique index serializes concurrent writers of the
same identity, the last writer's platform-sourced columns win, and site-local
columns never appear in the update set so no writer can reset them.
"""

import logging
from typing import Any

from sqlalchemy import func, select
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.exc import SQLAlchemyError

from feedhub.crawler.base import ContentItem, utcnow
from feedhub.database import SITE_LOCAL_DEFAULTS, ContentRow, Database
from feedhub.errors import ConfigurationError, PersistenceError

logger = logging.getLogger(__name__)

UPSERT_DIALECTS = {
    "sqlite": sqlite_insert,
    "postgresql": pg_insert,
}


def upsert_insert(dialect: str):
    """Dialect `insert` construct supporting ON CONFLICT DO UPDATE."""
    try:
        return UPSERT_DIALECTS[dialect]
    except KeyError:
        raise ConfigurationError(f"Unsupported database dialect for upserts: {dialect}") from None


def platform_values(item: ContentItem) -> dict[str, Any]:
    """Column values sourced from the platform, JSON-ready."""
    data = item.model_dump(mode="json", exclude={"platform", "content_type", "published_at", "fetched_at"})
    data.update(
        platform=item.platform.value,
        content_type=item.content_type.value,
        published_at=item.published_at,
        fetched_at=item.fetched_at,
    )
    return data


class ContentStore:
    """Ingestion store for canonical content items.

    Usage:
        store = ContentStore(db)
        store.upsert(item)
    """

    def __init__(self, db: Database):
        self.db = db
        self._insert = upsert_insert(db.dialect)

    def upsert(self, item: ContentItem) -> None:
        """Insert the item, or overwrite its platform-sourced columns if it exists."""
        values = platform_values(item)
        now = utcnow()

        stmt = self._insert(ContentRow).values(
            **values,
            **SITE_LOCAL_DEFAULTS,
            created_at=now,
            updated_at=now,
        )
        update_set = {
            key: stmt.excluded[key]
            for key in values
            if key not in ("platform", "platform_id")
        }
        update_set["updated_at"] = stmt.excluded.updated_at
        stmt = stmt.on_conflict_do_update(
            index_elements=["platform", "platform_id"],
            set_=update_set,
        )

        try:
            with self.db.transaction() as session:
                session.execute(stmt)
        except SQLAlchemyError as e:
            logger.error(f"[{item.platform.value}] Upsert failed for {item.platform_id}: {e}")
            raise PersistenceError(item.platform.value, item.platform_id, str(getattr(e, "orig", None) or e)) from e

    def get(self, platform: str, platform_id: str) -> ContentRow | None:
        with self.db.transaction() as session:
            return session.execute(
                select(ContentRow).where(
                    ContentRow.platform == platform,
                    ContentRow.platform_id == platform_id,
                )
            ).scalar_one_or_none()

    def count(self, platform: str | None = None) -> int:
        stmt = select(func.count()).select_from(ContentRow)
        if platform:
            stmt = stmt.where(ContentRow.platform == platform)
        with self.db.transaction() as session:
            return session.execute(stmt).scalar_one()
