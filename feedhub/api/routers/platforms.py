"""Connector introspection endpoints."""

from fastapi import APIRouter, HTTPException

from feedhub.api.deps import get_registry
from feedhub.crawler.base import SourceInfo

router = APIRouter(tags=["platforms"])


@router.get("/platforms")
async def list_platforms() -> list[str]:
    return get_registry().platforms


@router.get("/platforms/{platform}/credentials")
async def check_credentials(platform: str) -> dict:
    """Run the connector's credential self-check."""
    crawler = get_registry().resolve(platform)
    return {"platform": platform, "valid": await crawler.validate_credentials()}


@router.get("/platforms/{platform}/sources/{source_id}", response_model=SourceInfo)
async def get_source(platform: str, source_id: str) -> SourceInfo:
    crawler = get_registry().resolve(platform)
    info = await crawler.get_source_info(source_id)
    if info is None:
        raise HTTPException(status_code=404, detail=f"Source not found: {platform}/{source_id}")
    return info
