"""Job submission and job ledger endpoints.

A job runs synchronously within the request: the response is the job
result. Rejected specs (missing platform, unknown platform, no source or
query) answer 400 before any connector is called.
"""

from datetime import datetime
from typing import Any

from fastapi import APIRouter, Body
from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from feedhub.api.deps import get_ledger, get_orchestrator
from feedhub.services import JobResult, JobSpec

router = APIRouter(tags=["fetch"])


class FetchJobResponse(BaseModel):
    """One ledger row as exposed over HTTP."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)

    platform: str
    source_id: str
    source_type: str
    source_name: str
    status: str
    last_run: datetime | None = None
    last_result: dict[str, Any] | None = None
    config: dict[str, Any] = {}
    is_enabled: bool = True


@router.post("/fetch", response_model=JobResult, response_model_by_alias=True)
async def submit_job(payload: Any = Body(...)) -> JobResult:
    """Run one fetch (sourceId) or search (searchQuery) job.

    When both are given the search runs, and the ledger row is keyed by sourceId.
    """
    spec = JobSpec.from_payload(payload)
    return await get_orchestrator().run(spec)


@router.get("/fetch", response_model=list[FetchJobResponse], response_model_by_alias=True)
async def list_jobs(platform: str | None = None) -> list[FetchJobResponse]:
    """Latest ledger entries, most recent run first (at most 50)."""
    rows = get_ledger().list_jobs(platform)
    return [FetchJobResponse.model_validate(row) for row in rows]
