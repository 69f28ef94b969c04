from feedhub.database.models import (
    SITE_LOCAL_DEFAULTS,
    Base,
    ContentRow,
    Database,
    FetchJobRow,
)

__all__ = [
    "SITE_LOCAL_DEFAULTS",
    "Base",
    "ContentRow",
    "Database",
    "FetchJobRow",
]
