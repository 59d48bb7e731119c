"""
Admin moderation endpoints.
Ingest queue review (approve/reject/retry/simulate) and manual job approval.
"""
import logging
from typing import Optional
from uuid import UUID
from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel

from jobboard.dependencies import get_moderation_service, get_pipeline
from jobboard.exceptions import ConfigError, ExtractionError, InvalidStateError, NotFoundError
from jobboard.schemas.ingest import (
    IngestApprovalResponse,
    IngestLogResponse,
    PipelineRunResponse,
    SimulateIngestRequest,
)
from jobboard.schemas.job import JobResponse
from jobboard.services.moderation import ModerationService
from jobboard.services.pipeline import IngestionPipeline

logger = logging.getLogger(__name__)
router = APIRouter()


class RejectAction(BaseModel):
    """Optional note stored as the rejection reason."""
    notes: Optional[str] = None


# ============================================================
# INGEST QUEUE
# ============================================================

@router.get("/ingest-logs", response_model=list[IngestLogResponse])
async def list_ingest_queue(
    limit: int = Query(100, ge=1, le=500),
    moderation: ModerationService = Depends(get_moderation_service),
):
    """All ingest logs, newest first."""
    return await moderation.list_ingest_queue(limit)


@router.post("/ingest-logs/simulate", response_model=IngestLogResponse, status_code=201)
async def simulate_ingest(
    request: SimulateIngestRequest,
    moderation: ModerationService = Depends(get_moderation_service),
):
    """
    Extract a pasted message and add it to the queue as `parsed`.
    
    Returns 503 if the extraction model is unavailable.
    """
    try:
        return await moderation.simulate_ingest(request.raw_text)
    except (ConfigError, ExtractionError) as e:
        logger.error(f"Simulation failed: {e}")
        raise HTTPException(status_code=503, detail=str(e))


@router.post("/ingest-logs/{log_id}/approve", response_model=IngestApprovalResponse)
async def approve_ingest(
    log_id: UUID,
    moderation: ModerationService = Depends(get_moderation_service),
):
    """
    Publish every job in a held ingest log.
    
    Returns 409 if the log is not awaiting review.
    """
    try:
        approval = await moderation.approve_ingest(log_id)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except InvalidStateError as e:
        raise HTTPException(status_code=409, detail=str(e))
    
    return IngestApprovalResponse(
        log=IngestLogResponse.model_validate(approval.log),
        published_job_ids=[job.id for job in approval.published_jobs],
        duplicates_skipped=approval.duplicates_skipped,
    )


@router.post("/ingest-logs/{log_id}/reject", response_model=IngestLogResponse)
async def reject_ingest(
    log_id: UUID,
    action: Optional[RejectAction] = None,
    moderation: ModerationService = Depends(get_moderation_service),
):
    """Reject a pending or held ingest log. Returns 409 if already terminal."""
    try:
        return await moderation.reject_ingest(log_id, action.notes if action else None)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except InvalidStateError as e:
        raise HTTPException(status_code=409, detail=str(e))


@router.post("/ingest-logs/{log_id}/retry", response_model=PipelineRunResponse)
async def retry_ingest(
    log_id: UUID,
    pipeline: IngestionPipeline = Depends(get_pipeline),
):
    """
    Run the pipeline again for a pending or rejected log and wait for it.
    
    Returns 409 for logs that are parsed or published, 503 when the
    extraction model is not configured.
    """
    try:
        result = await pipeline.run(log_id)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except InvalidStateError as e:
        raise HTTPException(status_code=409, detail=str(e))
    except ConfigError as e:
        raise HTTPException(status_code=503, detail=str(e))
    
    return PipelineRunResponse(
        log_id=result.log_id,
        status=result.status.value,
        reason=result.reason,
        published_job_ids=result.published_job_ids,
        duplicates_skipped=result.duplicates_skipped,
        held_for_review=result.held_for_review,
        invalid_candidates=result.invalid_candidates,
    )


# ============================================================
# MANUAL JOB MODERATION
# ============================================================

@router.get("/jobs/pending", response_model=list[JobResponse])
async def list_pending_jobs(
    limit: int = Query(100, ge=1, le=500),
    moderation: ModerationService = Depends(get_moderation_service),
):
    """Jobs waiting for approval, newest first."""
    return await moderation.list_pending_jobs(limit)


@router.post("/jobs/{job_id}/approve", response_model=JobResponse)
async def approve_job(
    job_id: UUID,
    moderation: ModerationService = Depends(get_moderation_service),
):
    """Publish a pending job and notify matching alerts. 409 if not pending."""
    try:
        return await moderation.approve_job(job_id)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except InvalidStateError as e:
        raise HTTPException(status_code=409, detail=str(e))


@router.post("/jobs/{job_id}/reject", response_model=JobResponse)
async def reject_job(
    job_id: UUID,
    moderation: ModerationService = Depends(get_moderation_service),
):
    """Reject a pending job. 409 if not pending."""
    try:
        return await moderation.reject_job(job_id)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except InvalidStateError as e:
        raise HTTPException(status_code=409, detail=str(e))
