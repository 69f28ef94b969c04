from feedhub.services.content_store import ContentStore
from feedhub.services.job_ledger import JobLedger, JobStatus
from feedhub.services.orchestrator import JobOrchestrator, JobResult, JobSpec

__all__ = [
    "ContentStore",
    "JobLedger",
    "JobOrchestrator",
    "JobResult",
    "JobSpec",
    "JobStatus",
]
