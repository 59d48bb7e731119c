"""
Ingestion pipeline.

Turns one logged inbound message into zero or more published jobs:
fetch → extract → per-candidate confidence routing and dedup → finalize.

Status outcomes for the ingest log:
- rejected / "No jobs found": the model found nothing usable
- parsed / "Low confidence": at least one candidate is held for moderation
  (confident candidates in the same message are still published)
- published: every candidate was published or was a duplicate
- rejected / "AI Error": anything failed after the entry was loaded, unless
  a moderator decided the entry in the meantime (their decision is kept)
"""
import logging
from dataclasses import dataclass, field
from typing import Any, Optional
from uuid import UUID

from jobboard.exceptions import ConfigError, InvalidStateError, NotFoundError
from jobboard.models.ingest_log import IngestStatus
from jobboard.models.job import JobStatus, SourceType
from jobboard.schemas.ingest import ExtractedJobCandidate
from jobboard.services.alert_matcher import AlertMatcher
from jobboard.services.extraction import ExtractionClient, parse_candidates
from jobboard.services.stores import Identifier, JobStore, MessageStore

logger = logging.getLogger(__name__)


DEFAULT_CONFIDENCE_THRESHOLD = 0.7

NO_JOBS_REASON = "No jobs found"
LOW_CONFIDENCE_REASON = "Low confidence"
AI_ERROR_REASON = "AI Error"


@dataclass
class PipelineResult:
    """What a single run did to one ingest log."""
    log_id: UUID
    status: IngestStatus
    reason: Optional[str] = None
    published_job_ids: list[UUID] = field(default_factory=list)
    duplicates_skipped: int = 0
    held_for_review: int = 0
    invalid_candidates: int = 0


def job_fields_from_candidate(
    candidate: ExtractedJobCandidate,
    log_id: UUID,
    default_location: str,
) -> dict[str, Any]:
    """Column values for a published, WhatsApp-sourced job built from a candidate."""
    return {
        "title": candidate.title,
        "company_name": candidate.company or "Unknown",
        "location": candidate.location or default_location,
        "job_type": candidate.job_type.value,
        "description": candidate.description,
        "application_link": candidate.application_link,
        "salary_range": candidate.salary,
        "contact": candidate.contact,
        "deadline": candidate.deadline,
        "source_type": SourceType.WHATSAPP.value,
        "source_message_id": log_id,
        "status": JobStatus.PUBLISHED.value,
    }


class IngestionPipeline:
    """Drives one ingest log from pending to a terminal or review status."""

    def __init__(
        self,
        messages: MessageStore,
        jobs: JobStore,
        extractor: ExtractionClient,
        alert_matcher: Optional[AlertMatcher] = None,
        confidence_threshold: float = DEFAULT_CONFIDENCE_THRESHOLD,
        default_location: str = "Uganda",
    ):
        self.messages = messages
        self.jobs = jobs
        self.extractor = extractor
        self.alert_matcher = alert_matcher
        self.confidence_threshold = confidence_threshold
        self.default_location = default_location

    async def run(self, log_id: Identifier) -> PipelineResult:
        """
        Process one ingest log.
        
        Entries in `rejected` are moved back to `pending` first (manual retry).
        
        Raises:
            NotFoundError: If the log does not exist
            ConfigError: If the extraction model has no credential
            InvalidStateError: If the log is already parsed or published
        
        Nothing raised after the entry is loaded reaches the caller; it ends
        the entry in `rejected` with reason "AI Error", unless a moderator
        already decided it, in which case the result reports their decision.
        """
        entry = await self.messages.get(log_id)
        if not entry:
            raise NotFoundError(f"Ingest log {log_id} not found")
        if not self.extractor.is_configured:
            raise ConfigError("Extraction model API key is not configured")
        
        status = IngestStatus(entry.status)
        if status == IngestStatus.REJECTED:
            logger.info(f"Retrying rejected ingest log {entry.id}")
            entry = await self.messages.transition(entry.id, IngestStatus.PENDING)
        elif status != IngestStatus.PENDING:
            raise InvalidStateError(f"Ingest log {entry.id} is already {status.value}")
        
        entry_id = entry.id
        raw_text = entry.raw_text
        result = PipelineResult(log_id=entry_id, status=IngestStatus.PENDING)
        
        try:
            await self._process(entry_id, raw_text, result)
        except InvalidStateError as e:
            logger.warning(f"Ingest log {entry_id} changed under the run: {e}")
            await self._finish_failed(entry_id, result)
        except Exception as e:
            logger.error(f"Extraction processing failed for ingest log {entry_id}: {e}", exc_info=True)
            await self._finish_failed(entry_id, result)

        return result

    async def _process(self, log_id: UUID, raw_text: str, result: PipelineResult) -> None:
        payload = await self.extractor.extract(raw_text)

        # A moderator may have decided the entry while the model was running
        current = await self.messages.get(log_id)
        if current is None or current.status != IngestStatus.PENDING.value:
            raise InvalidStateError(f"Ingest log {log_id} was moderated during extraction")

        candidates, invalid = parse_candidates(payload)
        result.invalid_candidates = invalid
        
        if not candidates:
            await self.messages.transition(
                log_id, IngestStatus.REJECTED, reason=NO_JOBS_REASON, parsed_json=payload
            )
            result.status = IngestStatus.REJECTED
            result.reason = NO_JOBS_REASON
            logger.info(f"No jobs found in ingest log {log_id}")
            return
        
        for candidate in candidates:
            if not candidate.is_confident(self.confidence_threshold):
                result.held_for_review += 1
                logger.info(
                    f"Holding '{candidate.title}' from ingest log {log_id} for review "
                    f"(confidence={candidate.confidence})"
                )
                continue
            
            insert = await self.jobs.insert_if_absent(
                **job_fields_from_candidate(candidate, log_id, self.default_location)
            )
            if not insert.inserted:
                result.duplicates_skipped += 1
                continue
            
            result.published_job_ids.append(insert.job.id)
            if self.alert_matcher:
                await self.alert_matcher.notify_safely(insert.job)
        
        # Any held candidate keeps the whole entry in review, whatever the order
        if result.held_for_review:
            await self.messages.transition(
                log_id, IngestStatus.PARSED, reason=LOW_CONFIDENCE_REASON, parsed_json=payload
            )
            result.status = IngestStatus.PARSED
            result.reason = LOW_CONFIDENCE_REASON
        else:
            await self.messages.transition(log_id, IngestStatus.PUBLISHED, parsed_json=payload)
            result.status = IngestStatus.PUBLISHED
        
        logger.info(
            f"Ingest log {log_id} → {result.status.value}: {len(result.published_job_ids)} published, "
            f"{result.duplicates_skipped} duplicates, {result.held_for_review} held, "
            f"{result.invalid_candidates} invalid"
        )

    async def _finish_failed(self, log_id: UUID, result: PipelineResult) -> None:
        """Report whatever state the entry actually ended in."""
        final = await self._mark_failed(log_id)
        if final is None:
            result.status = IngestStatus.REJECTED
            result.reason = AI_ERROR_REASON
        else:
            result.status = IngestStatus(final.status)
            result.reason = final.reason

    async def _mark_failed(self, log_id: UUID):
        current = await self.messages.get(log_id)
        if current is None or current.status != IngestStatus.PENDING.value:
            # Moderated (or removed) while the run was in flight; leave it alone
            logger.warning(f"Not marking ingest log {log_id} as failed, status is no longer pending")
            return current
        try:
            return await self.messages.transition(log_id, IngestStatus.REJECTED, reason=AI_ERROR_REASON)
        except InvalidStateError:
            logger.warning(f"Ingest log {log_id} was moderated before it could be marked as failed")
            return await self.messages.get(log_id)
