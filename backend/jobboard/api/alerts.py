"""
Job alerts API endpoints.
Users manage the filters that decide which newly published jobs they hear about.
"""
import logging
from uuid import UUID
from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession

from jobboard.database import get_db
from jobboard.exceptions import NotFoundError
from jobboard.schemas.alert import JobAlertCreate, JobAlertResponse
from jobboard.services.stores import SqlAlertStore

logger = logging.getLogger(__name__)
router = APIRouter()


@router.get("/", response_model=list[JobAlertResponse])
async def list_alerts(
    user_id: str = Query(..., min_length=1),
    db: AsyncSession = Depends(get_db)
):
    """Alerts owned by a user, newest first."""
    return await SqlAlertStore(db).list_for_user(user_id)


@router.post("/", response_model=JobAlertResponse, status_code=201)
async def create_alert(
    alert: JobAlertCreate,
    db: AsyncSession = Depends(get_db)
):
    return await SqlAlertStore(db).create(
        user_id=alert.user_id,
        keywords=alert.keywords,
        location=alert.location,
        job_type=alert.job_type,
    )


@router.delete("/{alert_id}", status_code=204)
async def delete_alert(
    alert_id: UUID,
    db: AsyncSession = Depends(get_db)
):
    try:
        await SqlAlertStore(db).delete(alert_id)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    return None
