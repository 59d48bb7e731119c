"""
Public jobs API endpoints.
Listing published jobs, job details and manual job submission.
"""
import logging
from typing import Optional
from uuid import UUID
from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy import select, and_
from sqlalchemy.ext.asyncio import AsyncSession

from jobboard.database import get_db
from jobboard.exceptions import NotFoundError
from jobboard.models.job import Job, JobStatus, SourceType
from jobboard.schemas.job import JobCreate, JobResponse
from jobboard.services.stores import SqlJobStore

logger = logging.getLogger(__name__)
router = APIRouter()


@router.post("/", response_model=JobResponse, status_code=201)
async def create_job(
    job: JobCreate,
    db: AsyncSession = Depends(get_db)
):
    """
    Submit a job manually.
    
    Manual jobs start in PENDING_APPROVAL and only appear in listings once
    an admin approves them.
    """
    new_job = await SqlJobStore(db).create(
        title=job.title,
        company_name=job.company_name,
        location=job.location,
        job_type=job.job_type.value,
        description=job.description,
        application_link=job.application_link,
        salary_range=job.salary_range,
        deadline=job.deadline,
        posted_by=job.posted_by,
        source_type=SourceType.MANUAL.value,
        status=JobStatus.PENDING_APPROVAL.value,
    )
    return new_job


@router.get("/", response_model=list[JobResponse])
async def list_jobs(
    skip: int = Query(0, ge=0),
    limit: int = Query(50, ge=1, le=100),
    company: Optional[str] = Query(None, description="Filter by company name (partial match)"),
    location: Optional[str] = Query(None, description="Filter by location (partial match)"),
    source_type: Optional[SourceType] = Query(None, description="MANUAL or WHATSAPP"),
    db: AsyncSession = Depends(get_db)
):
    """
    List published jobs, newest first.
    """
    filters = [Job.status == JobStatus.PUBLISHED.value]
    if company:
        filters.append(Job.company_name.ilike(f"%{company}%"))
    if location:
        filters.append(Job.location.ilike(f"%{location}%"))
    if source_type:
        filters.append(Job.source_type == source_type.value)
    
    query = (
        select(Job)
        .where(and_(*filters))
        .order_by(Job.created_at.desc())
        .offset(skip)
        .limit(limit)
    )
    
    result = await db.execute(query)
    jobs = result.scalars().all()
    
    logger.info(f"Listed {len(jobs)} jobs (filters: company={company}, location={location})")
    
    return jobs


@router.get("/{job_id}", response_model=JobResponse)
async def get_job(
    job_id: UUID,
    db: AsyncSession = Depends(get_db)
):
    """
    Get a published job and count the view.
    """
    store = SqlJobStore(db)
    job = await store.get(job_id)
    
    if not job or job.status != JobStatus.PUBLISHED.value:
        raise HTTPException(status_code=404, detail="Job not found")
    
    try:
        return await store.increment_views(job_id)
    except NotFoundError:
        raise HTTPException(status_code=404, detail="Job not found")
