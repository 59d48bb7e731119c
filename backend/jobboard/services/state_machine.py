"""
State machines for ingest logs and job postings.
ALL status changes go through these tables; stores call ensure_* before writing.
"""
import logging
from typing import Dict

from jobboard.exceptions import InvalidStateError
from jobboard.models.ingest_log import IngestStatus
from jobboard.models.job import JobStatus

logger = logging.getLogger(__name__)


ALLOWED_INGEST_TRANSITIONS: Dict[IngestStatus, list[IngestStatus]] = {
    IngestStatus.PENDING: [
        IngestStatus.PARSED,     # Low confidence, held for review
        IngestStatus.PUBLISHED,  # Every candidate handled automatically
        IngestStatus.REJECTED,   # No jobs, extraction error, or moderator reject
    ],
    IngestStatus.PARSED: [IngestStatus.PUBLISHED, IngestStatus.REJECTED],  # Moderation
    IngestStatus.REJECTED: [IngestStatus.PENDING],  # Manual retry only
    IngestStatus.PUBLISHED: [],  # Terminal state
}

ALLOWED_JOB_TRANSITIONS: Dict[JobStatus, list[JobStatus]] = {
    JobStatus.PENDING_APPROVAL: [JobStatus.PUBLISHED, JobStatus.REJECTED],
    JobStatus.PUBLISHED: [],  # Terminal state
    JobStatus.REJECTED: [],  # Terminal state
}


def can_transition_ingest(from_status: IngestStatus, to_status: IngestStatus) -> bool:
    """Check if an ingest log transition is allowed without touching the database"""
    return to_status in ALLOWED_INGEST_TRANSITIONS.get(from_status, [])


def can_transition_job(from_status: JobStatus, to_status: JobStatus) -> bool:
    """Check if a job transition is allowed without touching the database"""
    return to_status in ALLOWED_JOB_TRANSITIONS.get(from_status, [])


def ensure_ingest_transition(log_id, from_status: IngestStatus, to_status: IngestStatus) -> None:
    """
    Raises:
        InvalidStateError: If the ingest log cannot move from from_status to to_status
    """
    if not can_transition_ingest(from_status, to_status):
        logger.warning(f"Rejected ingest log transition {log_id}: {from_status.value} → {to_status.value}")
        raise InvalidStateError(
            f"Ingest log {log_id} is {from_status.value}, cannot move to {to_status.value}"
        )


def ensure_job_transition(job_id, from_status: JobStatus, to_status: JobStatus) -> None:
    """
    Raises:
        InvalidStateError: If the job cannot move from from_status to to_status
    """
    if not can_transition_job(from_status, to_status):
        logger.warning(f"Rejected job transition {job_id}: {from_status.value} → {to_status.value}")
        raise InvalidStateError(
            f"Job {job_id} is {from_status.value}, must be {JobStatus.PENDING_APPROVAL.value}"
        )
