"""
Storage interfaces consumed by the ingestion pipeline and moderation service,
plus their SQLAlchemy implementations.

Every write commits before returning, so a failure later in a pipeline run
never rolls back rows that were already persisted. A failed commit is rolled
back before the error propagates, leaving the session usable.

Reads always come from the database, not the session's identity map, and
status changes are conditional updates on the status that was checked: a
row moved by another session in between is reported as InvalidStateError
instead of being overwritten.
"""
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Optional, Union
from uuid import UUID

from sqlalchemy import select, update, and_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from jobboard.exceptions import InvalidStateError, NotFoundError
from jobboard.models.ingest_log import IngestLog, IngestStatus, IngestSource
from jobboard.models.job import Job, JobStatus, JobType, SourceType
from jobboard.models.job_alert import JobAlert
from jobboard.services.state_machine import ensure_ingest_transition, ensure_job_transition

logger = logging.getLogger(__name__)

Identifier = Union[str, UUID]

# Sentinel: leave parsed_json untouched
_UNSET: Any = object()

# Statuses that block a new ingestion-sourced job with the same title/company
DUPLICATE_BLOCKING_STATUSES = (JobStatus.PUBLISHED.value, JobStatus.PENDING_APPROVAL.value)


async def _commit(db: AsyncSession) -> None:
    try:
        await db.commit()
    except Exception:
        await db.rollback()
        raise


def _as_uuid(value: Identifier) -> Optional[UUID]:
    if isinstance(value, UUID):
        return value
    try:
        return UUID(str(value))
    except ValueError:
        return None


@dataclass
class InsertResult:
    """Outcome of JobStore.insert_if_absent"""
    inserted: bool
    job: Optional[Job] = None  # The new row, or the existing duplicate when known


class MessageStore(ABC):
    """Raw inbound messages and their processing status"""

    @abstractmethod
    async def create(
        self,
        raw_text: str,
        *,
        group_id: Optional[str] = None,
        message_id: Optional[str] = None,
        source: IngestSource = IngestSource.WHATSAPP,
        status: IngestStatus = IngestStatus.PENDING,
        parsed_json: Optional[dict] = None,
    ) -> IngestLog: ...

    @abstractmethod
    async def get(self, log_id: Identifier) -> Optional[IngestLog]: ...

    @abstractmethod
    async def transition(
        self,
        log_id: Identifier,
        to_status: IngestStatus,
        *,
        reason: Optional[str] = None,
        parsed_json: Any = _UNSET,
    ) -> IngestLog: ...

    @abstractmethod
    async def list_recent(self, limit: int = 100) -> list[IngestLog]: ...

    @abstractmethod
    async def list_pending(self, limit: int = 100) -> list[IngestLog]: ...


class JobStore(ABC):
    """Job postings, with duplicate lookup by (title, company_name)"""

    @abstractmethod
    async def get(self, job_id: Identifier) -> Optional[Job]: ...

    @abstractmethod
    async def find_duplicate(self, title: str, company_name: str) -> Optional[Job]: ...

    @abstractmethod
    async def insert_if_absent(self, **fields: Any) -> InsertResult: ...

    @abstractmethod
    async def create(self, **fields: Any) -> Job: ...

    @abstractmethod
    async def list_by_status(self, status: JobStatus, limit: int = 100) -> list[Job]: ...

    @abstractmethod
    async def transition(self, job_id: Identifier, to_status: JobStatus) -> Job: ...

    @abstractmethod
    async def increment_views(self, job_id: Identifier) -> Job: ...


class AlertStore(ABC):
    """Subscriber alert criteria"""

    @abstractmethod
    async def list_all(self) -> list[JobAlert]: ...

    @abstractmethod
    async def list_for_user(self, user_id: str) -> list[JobAlert]: ...

    @abstractmethod
    async def create(
        self,
        user_id: str,
        keywords: Optional[str] = None,
        location: Optional[str] = None,
        job_type: Optional[str] = None,
    ) -> JobAlert: ...

    @abstractmethod
    async def delete(self, alert_id: Identifier) -> None: ...


class SqlMessageStore(MessageStore):
    def __init__(self, db: AsyncSession):
        self.db = db

    async def create(
        self,
        raw_text: str,
        *,
        group_id: Optional[str] = None,
        message_id: Optional[str] = None,
        source: IngestSource = IngestSource.WHATSAPP,
        status: IngestStatus = IngestStatus.PENDING,
        parsed_json: Optional[dict] = None,
    ) -> IngestLog:
        log = IngestLog(
            raw_text=raw_text,
            group_id=group_id,
            message_id=message_id,
            source=IngestSource(source).value,
            status=IngestStatus(status).value,
            parsed_json=parsed_json,
        )
        self.db.add(log)
        await _commit(self.db)
        await self.db.refresh(log)

        logger.info(f"Logged inbound message {log.id} (source={log.source}, status={log.status})")
        return log

    async def get(self, log_id: Identifier) -> Optional[IngestLog]:
        log_uuid = _as_uuid(log_id)
        if log_uuid is None:
            return None
        return await self._load(log_uuid)

    async def _load(self, log_uuid: UUID) -> Optional[IngestLog]:
        result = await self.db.execute(
            select(IngestLog)
            .where(IngestLog.id == log_uuid)
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def transition(
        self,
        log_id: Identifier,
        to_status: IngestStatus,
        *,
        reason: Optional[str] = None,
        parsed_json: Any = _UNSET,
    ) -> IngestLog:
        """
        Move an ingest log to a new status, validating against the state machine.
        
        Raises:
            NotFoundError: If the log does not exist
            InvalidStateError: If the transition is not allowed, or the log
                changed status since it was read
        """
        log = await self.get(log_id)
        if not log:
            raise NotFoundError(f"Ingest log {log_id} not found")

        log_uuid = log.id
        from_status = IngestStatus(log.status)
        to_status = IngestStatus(to_status)
        ensure_ingest_transition(log_uuid, from_status, to_status)

        values = {"status": to_status.value, "reason": reason}
        if parsed_json is not _UNSET:
            values["parsed_json"] = parsed_json

        result = await self.db.execute(
            update(IngestLog)
            .where(IngestLog.id == log_uuid, IngestLog.status == from_status.value)
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            logger.warning(f"Ingest log {log_uuid} left {from_status.value} before the update to {to_status.value}")
            raise InvalidStateError(
                f"Ingest log {log_uuid} is no longer {from_status.value}, cannot move to {to_status.value}"
            )
        await _commit(self.db)
        log = await self._load(log_uuid)

        log_data = {
            "log_id": str(log_uuid),
            "from_status": from_status.value,
            "to_status": to_status.value,
            "reason": reason,
        }
        logger.info(f"Ingest log state transition: {from_status.value} → {to_status.value}", extra=log_data)
        return log

    async def list_recent(self, limit: int = 100) -> list[IngestLog]:
        result = await self.db.execute(
            select(IngestLog).order_by(IngestLog.created_at.desc()).limit(limit)
        )
        return list(result.scalars().all())

    async def list_pending(self, limit: int = 100) -> list[IngestLog]:
        # Oldest first so a backlog drains in arrival order
        result = await self.db.execute(
            select(IngestLog)
            .where(IngestLog.status == IngestStatus.PENDING.value)
            .order_by(IngestLog.created_at.asc())
            .limit(limit)
        )
        return list(result.scalars().all())


class SqlJobStore(JobStore):
    def __init__(self, db: AsyncSession):
        self.db = db

    async def get(self, job_id: Identifier) -> Optional[Job]:
        job_uuid = _as_uuid(job_id)
        if job_uuid is None:
            return None
        return await self._load(job_uuid)

    async def _load(self, job_uuid: UUID) -> Optional[Job]:
        result = await self.db.execute(
            select(Job)
            .where(Job.id == job_uuid)
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def find_duplicate(self, title: str, company_name: str) -> Optional[Job]:
        result = await self.db.execute(
            select(Job)
            .where(
                and_(
                    Job.title == title,
                    Job.company_name == company_name,
                    Job.status.in_(DUPLICATE_BLOCKING_STATUSES),
                )
            )
            .limit(1)
        )
        return result.scalar_one_or_none()

    async def insert_if_absent(self, **fields: Any) -> InsertResult:
        """
        Insert a job unless one with the same title and company already exists.
        
        The lookup and the insert are separate statements; two concurrent
        callers can both pass the lookup, in which case the partial unique
        index on published WhatsApp jobs rejects the second insert and it is
        reported as not inserted.
        """
        existing = await self.find_duplicate(fields["title"], fields["company_name"])
        if existing:
            logger.info(f"Duplicate found for {fields['title']} at {fields['company_name']} (job {existing.id})")
            return InsertResult(inserted=False, job=existing)
        
        job = self._build(**fields)
        self.db.add(job)
        try:
            await _commit(self.db)
        except IntegrityError:
            logger.info(
                f"Duplicate insert lost race for {fields['title']} at {fields['company_name']}"
            )
            return InsertResult(inserted=False)

        await self.db.refresh(job)
        logger.info(f"Created job {job.id}: {job.title} at {job.company_name} ({job.status})")
        return InsertResult(inserted=True, job=job)

    async def create(self, **fields: Any) -> Job:
        job = self._build(**fields)
        self.db.add(job)
        await _commit(self.db)
        await self.db.refresh(job)
        
        logger.info(f"Created job {job.id}: {job.title} at {job.company_name} ({job.status})")
        return job

    async def list_by_status(self, status: JobStatus, limit: int = 100) -> list[Job]:
        result = await self.db.execute(
            select(Job)
            .where(Job.status == JobStatus(status).value)
            .order_by(Job.created_at.desc())
            .limit(limit)
        )
        return list(result.scalars().all())

    async def transition(self, job_id: Identifier, to_status: JobStatus) -> Job:
        """
        Raises:
            NotFoundError: If the job does not exist
            InvalidStateError: If the job is not awaiting approval, or was
                decided by someone else since it was read
        """
        job = await self.get(job_id)
        if not job:
            raise NotFoundError(f"Job {job_id} not found")

        job_uuid = job.id
        from_status = JobStatus(job.status)
        to_status = JobStatus(to_status)
        ensure_job_transition(job_uuid, from_status, to_status)

        result = await self.db.execute(
            update(Job)
            .where(Job.id == job_uuid, Job.status == from_status.value)
            .values(status=to_status.value)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            logger.warning(f"Job {job_uuid} left {from_status.value} before the update to {to_status.value}")
            raise InvalidStateError(
                f"Job {job_uuid} is no longer {from_status.value}, cannot move to {to_status.value}"
            )
        await _commit(self.db)
        job = await self._load(job_uuid)

        log_data = {"job_id": str(job_uuid), "from_status": from_status.value, "to_status": to_status.value}
        logger.info(f"Job state transition: {from_status.value} → {to_status.value}", extra=log_data)
        return job

    async def increment_views(self, job_id: Identifier) -> Job:
        job_uuid = _as_uuid(job_id)
        result = None
        if job_uuid is not None:
            result = await self.db.execute(
                update(Job)
                .where(Job.id == job_uuid)
                .values(views=Job.views + 1)
                .execution_options(synchronize_session=False)
            )
        if result is None or result.rowcount == 0:
            raise NotFoundError(f"Job {job_id} not found")
        await _commit(self.db)
        return await self._load(job_uuid)

    @staticmethod
    def _build(**fields: Any) -> Job:
        # Enum values are checked here so bad strings never reach the table
        for key, enum_cls in (("status", JobStatus), ("source_type", SourceType), ("job_type", JobType)):
            if key in fields and fields[key] is not None:
                fields[key] = enum_cls(fields[key]).value
        return Job(**fields)


class SqlAlertStore(AlertStore):
    def __init__(self, db: AsyncSession):
        self.db = db

    async def list_all(self) -> list[JobAlert]:
        result = await self.db.execute(select(JobAlert))
        return list(result.scalars().all())

    async def list_for_user(self, user_id: str) -> list[JobAlert]:
        result = await self.db.execute(
            select(JobAlert)
            .where(JobAlert.user_id == user_id)
            .order_by(JobAlert.created_at.desc())
        )
        return list(result.scalars().all())

    async def create(
        self,
        user_id: str,
        keywords: Optional[str] = None,
        location: Optional[str] = None,
        job_type: Optional[str] = None,
    ) -> JobAlert:
        alert = JobAlert(user_id=user_id, keywords=keywords, location=location, job_type=job_type)
        self.db.add(alert)
        await _commit(self.db)
        await self.db.refresh(alert)
        
        logger.info(f"Created job alert {alert.id} for user {user_id}")
        return alert

    async def delete(self, alert_id: Identifier) -> None:
        alert_uuid = _as_uuid(alert_id)
        alert = None
        if alert_uuid is not None:
            result = await self.db.execute(select(JobAlert).where(JobAlert.id == alert_uuid))
            alert = result.scalar_one_or_none()
        if not alert:
            raise NotFoundError(f"Job alert {alert_id} not found")
        
        await self.db.delete(alert)
        await _commit(self.db)
        logger.info(f"Deleted job alert {alert_id}")
