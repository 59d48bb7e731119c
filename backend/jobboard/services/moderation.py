"""
Moderation service.

Admin actions that finalize what the pipeline (or a manual submission)
left waiting:
- ingest queue: approve publishes every candidate in the stored payload,
  reject just closes the entry
- manual jobs: PENDING_APPROVAL → PUBLISHED / REJECTED

Approving or rejecting something already in a terminal state raises
InvalidStateError and changes nothing.
"""
import logging
from dataclasses import dataclass, field
from typing import Optional

from jobboard.exceptions import ConfigError, InvalidStateError, NotFoundError
from jobboard.models.ingest_log import IngestLog, IngestSource, IngestStatus
from jobboard.models.job import Job, JobStatus
from jobboard.services.alert_matcher import AlertMatcher
from jobboard.services.extraction import ExtractionClient, parse_candidates
from jobboard.services.pipeline import job_fields_from_candidate
from jobboard.services.stores import Identifier, JobStore, MessageStore

logger = logging.getLogger(__name__)

MODERATOR_REJECT_REASON = "Rejected by moderator"


@dataclass
class IngestApproval:
    """Result of approving a held ingest log."""
    log: IngestLog
    published_jobs: list[Job] = field(default_factory=list)
    duplicates_skipped: int = 0


class ModerationService:
    def __init__(
        self,
        messages: MessageStore,
        jobs: JobStore,
        alert_matcher: Optional[AlertMatcher] = None,
        extractor: Optional[ExtractionClient] = None,
        default_location: str = "Uganda",
    ):
        self.messages = messages
        self.jobs = jobs
        self.alert_matcher = alert_matcher
        self.extractor = extractor
        self.default_location = default_location

    # Ingest queue

    async def list_ingest_queue(self, limit: int = 100) -> list[IngestLog]:
        return await self.messages.list_recent(limit)

    async def approve_ingest(self, log_id: Identifier) -> IngestApproval:
        """
        Publish every candidate in a held entry, ignoring confidence.
        
        Candidates that already exist (including ones the pipeline published
        from this same message) are skipped, so nothing is duplicated.
        
        Raises:
            NotFoundError: If the log does not exist
            InvalidStateError: If the log is not held for review or has no payload
        """
        log = await self.messages.get(log_id)
        if not log:
            raise NotFoundError(f"Ingest log {log_id} not found")
        if log.status != IngestStatus.PARSED.value:
            raise InvalidStateError(f"Ingest log {log.id} is {log.status}, only parsed logs can be approved")
        if not log.parsed_json:
            raise InvalidStateError(f"Ingest log {log.id} has no extraction result to publish")
        
        log_id = log.id
        candidates, invalid = parse_candidates(log.parsed_json)
        approval = IngestApproval(log=log)
        
        for candidate in candidates:
            insert = await self.jobs.insert_if_absent(
                **job_fields_from_candidate(candidate, log_id, self.default_location)
            )
            if insert.inserted:
                approval.published_jobs.append(insert.job)
            else:
                approval.duplicates_skipped += 1
        
        approval.log = await self.messages.transition(log_id, IngestStatus.PUBLISHED)
        
        if self.alert_matcher:
            for job in approval.published_jobs:
                await self.alert_matcher.notify_safely(job)
        
        logger.info(
            f"Approved ingest log {log_id}: {len(approval.published_jobs)} published, "
            f"{approval.duplicates_skipped} duplicates, {invalid} invalid"
        )
        return approval

    async def reject_ingest(self, log_id: Identifier, reason: Optional[str] = None) -> IngestLog:
        """
        Raises:
            NotFoundError: If the log does not exist
            InvalidStateError: If the log is already published or rejected
        """
        log = await self.messages.transition(
            log_id, IngestStatus.REJECTED, reason=reason or MODERATOR_REJECT_REASON
        )
        logger.info(f"Rejected ingest log {log.id}")
        return log

    async def simulate_ingest(self, raw_text: str) -> IngestLog:
        """
        Extract a pasted message now and queue the result for moderation.
        
        Raises:
            ConfigError: If no extraction client is configured
            ExtractionError: If the model call fails
        """
        if self.extractor is None:
            raise ConfigError("No extraction client configured")
        
        payload = await self.extractor.extract(raw_text)
        log = await self.messages.create(
            raw_text,
            source=IngestSource.SIMULATION,
            status=IngestStatus.PARSED,
            parsed_json=payload,
        )
        logger.info(f"Simulated ingest {log.id} with {len(payload.get('jobs', []))} extracted jobs")
        return log

    # Direct job moderation

    async def list_pending_jobs(self, limit: int = 100) -> list[Job]:
        return await self.jobs.list_by_status(JobStatus.PENDING_APPROVAL, limit)

    async def approve_job(self, job_id: Identifier) -> Job:
        """
        Raises:
            NotFoundError: If the job does not exist
            InvalidStateError: If the job is not PENDING_APPROVAL
        """
        job = await self.jobs.transition(job_id, JobStatus.PUBLISHED)
        if self.alert_matcher:
            await self.alert_matcher.notify_safely(job)
        return job

    async def reject_job(self, job_id: Identifier) -> Job:
        """
        Raises:
            NotFoundError: If the job does not exist
            InvalidStateError: If the job is not PENDING_APPROVAL
        """
        return await self.jobs.transition(job_id, JobStatus.REJECTED)
