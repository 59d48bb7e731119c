"""
Wiring between settings, the database and the services.

FastAPI routes use the get_* dependencies; the ingest queue and the worker
call process_ingest_log, which opens its own session per message.
"""
import logging
from functools import lru_cache
from typing import Optional
from uuid import UUID

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from jobboard import database
from jobboard.config import settings
from jobboard.database import get_db
from jobboard.services.alert_matcher import AlertMatcher
from jobboard.services.extraction import ExtractionClient, GeminiExtractionClient
from jobboard.services.moderation import ModerationService
from jobboard.services.notifier import LogNotifier, Notifier
from jobboard.services.pipeline import IngestionPipeline, PipelineResult
from jobboard.services.stores import SqlAlertStore, SqlJobStore, SqlMessageStore
from jobboard.services.task_queue import IngestTaskQueue

logger = logging.getLogger(__name__)


@lru_cache
def get_extraction_client() -> ExtractionClient:
    return GeminiExtractionClient(api_key=settings.gemini_api_key, model=settings.gemini_model)


@lru_cache
def get_notifier() -> Notifier:
    return LogNotifier()


def build_pipeline(
    db: AsyncSession,
    extractor: Optional[ExtractionClient] = None,
    notifier: Optional[Notifier] = None,
) -> IngestionPipeline:
    return IngestionPipeline(
        messages=SqlMessageStore(db),
        jobs=SqlJobStore(db),
        extractor=extractor or get_extraction_client(),
        alert_matcher=AlertMatcher(SqlAlertStore(db), notifier or get_notifier()),
        confidence_threshold=settings.confidence_threshold,
        default_location=settings.default_location,
    )


def build_moderation_service(
    db: AsyncSession,
    extractor: Optional[ExtractionClient] = None,
    notifier: Optional[Notifier] = None,
) -> ModerationService:
    return ModerationService(
        messages=SqlMessageStore(db),
        jobs=SqlJobStore(db),
        alert_matcher=AlertMatcher(SqlAlertStore(db), notifier or get_notifier()),
        extractor=extractor or get_extraction_client(),
        default_location=settings.default_location,
    )


async def process_ingest_log(log_id: UUID) -> PipelineResult:
    """Queue handler: run the pipeline for one log in a fresh session."""
    async with database.AsyncSessionLocal() as db:
        return await build_pipeline(db).run(log_id)


# FastAPI dependencies

def get_pipeline(
    db: AsyncSession = Depends(get_db),
    extractor: ExtractionClient = Depends(get_extraction_client),
    notifier: Notifier = Depends(get_notifier),
) -> IngestionPipeline:
    return build_pipeline(db, extractor, notifier)


def get_moderation_service(
    db: AsyncSession = Depends(get_db),
    extractor: ExtractionClient = Depends(get_extraction_client),
    notifier: Notifier = Depends(get_notifier),
) -> ModerationService:
    return build_moderation_service(db, extractor, notifier)


def get_ingest_queue(request: Request) -> IngestTaskQueue:
    return request.app.state.ingest_queue
