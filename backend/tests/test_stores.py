"""
Tests for the SQLAlchemy stores.

Covers:
- insert_if_absent duplicate handling (including the lost-race path)
- Ingest log creation, lookup and backlog ordering
- Job enum validation and view counting
- Alert CRUD
- Status updates refuse rows changed by another session
"""
from unittest.mock import AsyncMock, patch

import pytest
from sqlalchemy import select, func
from sqlalchemy.exc import OperationalError

from jobboard import database
from jobboard.exceptions import InvalidStateError, NotFoundError
from jobboard.models.ingest_log import IngestSource, IngestStatus
from jobboard.models.job import Job, JobStatus, SourceType
from jobboard.services.stores import SqlJobStore, SqlMessageStore


def whatsapp_job(title="Driver", company_name="Acme", **fields):
    values = {
        "title": title,
        "company_name": company_name,
        "source_type": SourceType.WHATSAPP.value,
        "status": JobStatus.PUBLISHED.value,
    }
    values.update(fields)
    return values


async def count_jobs(db) -> int:
    result = await db.execute(select(func.count()).select_from(Job))
    return result.scalar_one()


# ============================================================
# JOB STORE
# ============================================================

@pytest.mark.asyncio
async def test_insert_if_absent_inserts_new_job(db, job_store):
    result = await job_store.insert_if_absent(**whatsapp_job())
    
    assert result.inserted
    assert result.job.id is not None
    assert result.job.views == 0
    assert await count_jobs(db) == 1


@pytest.mark.asyncio
async def test_insert_if_absent_returns_existing_duplicate(db, job_store):
    first = await job_store.insert_if_absent(**whatsapp_job())
    
    second = await job_store.insert_if_absent(**whatsapp_job(location="Gulu"))
    
    assert not second.inserted
    assert second.job.id == first.job.id
    assert await count_jobs(db) == 1


@pytest.mark.asyncio
async def test_pending_manual_job_blocks_duplicate(db, job_store):
    await job_store.create(title="Driver", company_name="Acme", status=JobStatus.PENDING_APPROVAL.value)
    
    result = await job_store.insert_if_absent(**whatsapp_job())
    
    assert not result.inserted


@pytest.mark.asyncio
async def test_rejected_job_does_not_block_duplicate(db, job_store):
    await job_store.create(title="Driver", company_name="Acme", status=JobStatus.REJECTED.value)
    
    result = await job_store.insert_if_absent(**whatsapp_job())
    
    assert result.inserted
    assert await count_jobs(db) == 2


@pytest.mark.asyncio
async def test_different_company_is_not_a_duplicate(job_store):
    await job_store.insert_if_absent(**whatsapp_job())
    
    result = await job_store.insert_if_absent(**whatsapp_job(company_name="Beta Ltd"))
    
    assert result.inserted


@pytest.mark.asyncio
async def test_lost_race_is_reported_as_not_inserted(db, job_store):
    """When the lookup misses a concurrent insert, the unique index decides."""
    await job_store.insert_if_absent(**whatsapp_job())
    
    with patch.object(job_store, "find_duplicate", AsyncMock(return_value=None)):
        result = await job_store.insert_if_absent(**whatsapp_job())
    
    assert not result.inserted
    assert result.job is None
    assert await count_jobs(db) == 1


@pytest.mark.asyncio
async def test_store_usable_after_lost_race(db, job_store):
    await job_store.insert_if_absent(**whatsapp_job())
    with patch.object(job_store, "find_duplicate", AsyncMock(return_value=None)):
        await job_store.insert_if_absent(**whatsapp_job())
    
    result = await job_store.insert_if_absent(**whatsapp_job(title="Cook"))
    
    assert result.inserted
    assert await count_jobs(db) == 2


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "field, value",
    [("status", "LIVE"), ("source_type", "EMAIL"), ("job_type", "gig")],
)
async def test_create_rejects_unknown_enum_values(job_store, field, value):
    with pytest.raises(ValueError):
        await job_store.create(title="Driver", company_name="Acme", **{field: value})


@pytest.mark.asyncio
async def test_create_applies_column_defaults(job_store):
    job = await job_store.create(title="Driver", company_name="Acme")
    
    assert job.status == JobStatus.PENDING_APPROVAL.value
    assert job.source_type == SourceType.MANUAL.value
    assert job.job_type == "unknown"
    assert job.applicants_count == 0


@pytest.mark.asyncio
async def test_increment_views(job_store):
    job = await job_store.create(**whatsapp_job())
    
    await job_store.increment_views(job.id)
    updated = await job_store.increment_views(job.id)
    
    assert updated.views == 2


@pytest.mark.asyncio
async def test_get_with_malformed_id_returns_none(job_store):
    assert await job_store.get("not-a-uuid") is None


@pytest.mark.asyncio
async def test_transition_missing_job_raises_not_found(job_store):
    with pytest.raises(NotFoundError):
        await job_store.transition("00000000-0000-0000-0000-000000000000", JobStatus.PUBLISHED)


# ============================================================
# MESSAGE STORE
# ============================================================

@pytest.mark.asyncio
async def test_create_log_defaults(messages):
    log = await messages.create("Driver needed", group_id="1203630@g.us", message_id="wamid.ABC")
    
    assert log.status == IngestStatus.PENDING.value
    assert log.source == IngestSource.WHATSAPP.value
    assert log.parsed_json is None
    assert log.reason is None
    assert (await messages.get(str(log.id))).message_id == "wamid.ABC"


@pytest.mark.asyncio
async def test_list_pending_is_oldest_first_and_skips_processed(messages):
    first = await messages.create("first")
    processed = await messages.create("processed")
    await messages.transition(processed.id, IngestStatus.REJECTED, reason="No jobs found")
    third = await messages.create("third")
    
    pending = await messages.list_pending()
    
    assert [log.id for log in pending] == [first.id, third.id]


@pytest.mark.asyncio
async def test_transition_clears_reason_on_retry(messages):
    log = await messages.create("Driver needed")
    await messages.transition(log.id, IngestStatus.REJECTED, reason="AI Error")
    
    retried = await messages.transition(log.id, IngestStatus.PENDING)
    
    assert retried.status == IngestStatus.PENDING.value
    assert retried.reason is None


@pytest.mark.asyncio
async def test_transition_keeps_payload_unless_given(messages):
    log = await messages.create("Driver needed")
    await messages.transition(
        log.id, IngestStatus.PARSED, reason="Low confidence", parsed_json={"jobs": [{"title": "Driver"}]}
    )
    
    rejected = await messages.transition(log.id, IngestStatus.REJECTED, reason="Rejected by moderator")
    
    assert rejected.parsed_json == {"jobs": [{"title": "Driver"}]}


@pytest.mark.asyncio
async def test_transition_missing_log_raises_not_found(messages):
    with pytest.raises(NotFoundError):
        await messages.transition("00000000-0000-0000-0000-000000000000", IngestStatus.REJECTED)


# ============================================================
# CHANGES FROM OTHER SESSIONS
# ============================================================

@pytest.mark.asyncio
async def test_get_reads_status_changed_by_other_session(messages):
    log = await messages.create("Driver needed")
    log_id = log.id
    
    async with database.AsyncSessionLocal() as other:
        await SqlMessageStore(other).transition(log_id, IngestStatus.REJECTED, reason="spam")
    
    current = await messages.get(log_id)
    assert current.status == IngestStatus.REJECTED.value
    assert current.reason == "spam"


@pytest.mark.asyncio
async def test_log_transition_from_stale_read_is_refused(messages):
    """A status read before another session moved the row is not written over it."""
    stale = await messages.get((await messages.create("Driver needed")).id)
    log_id = stale.id
    
    async with database.AsyncSessionLocal() as other:
        await SqlMessageStore(other).transition(log_id, IngestStatus.REJECTED, reason="spam")
    
    with patch.object(messages, "get", AsyncMock(return_value=stale)):
        with pytest.raises(InvalidStateError):
            await messages.transition(log_id, IngestStatus.PUBLISHED, parsed_json={"jobs": []})
    
    current = await messages.get(log_id)
    assert current.status == IngestStatus.REJECTED.value
    assert current.reason == "spam"
    assert current.parsed_json is None


@pytest.mark.asyncio
async def test_job_transition_from_stale_read_is_refused(job_store):
    stale = await job_store.create(title="Driver", company_name="Acme")
    job_id = stale.id
    
    async with database.AsyncSessionLocal() as other:
        await SqlJobStore(other).transition(job_id, JobStatus.REJECTED)
    
    with patch.object(job_store, "get", AsyncMock(return_value=stale)):
        with pytest.raises(InvalidStateError):
            await job_store.transition(job_id, JobStatus.PUBLISHED)
    
    assert (await job_store.get(job_id)).status == JobStatus.REJECTED.value


@pytest.mark.asyncio
async def test_failed_commit_is_rolled_back(db, messages):
    log = await messages.create("Driver needed")
    log_id = log.id
    failing = AsyncMock(side_effect=OperationalError("COMMIT", {}, Exception("disk I/O error")))
    
    with patch.object(db, "commit", failing):
        with pytest.raises(OperationalError):
            await messages.transition(log_id, IngestStatus.PUBLISHED, parsed_json={"jobs": []})
    
    current = await messages.get(log_id)
    assert current.status == IngestStatus.PENDING.value
    assert current.parsed_json is None
    
    rejected = await messages.transition(log_id, IngestStatus.REJECTED, reason="AI Error")
    assert rejected.status == IngestStatus.REJECTED.value


# ============================================================
# ALERT STORE
# ============================================================

@pytest.mark.asyncio
async def test_alerts_are_listed_per_user(alert_store):
    await alert_store.create(user_id="user-1", keywords="driver")
    await alert_store.create(user_id="user-2", location="Gulu")
    
    mine = await alert_store.list_for_user("user-1")
    
    assert [alert.keywords for alert in mine] == ["driver"]
    assert len(await alert_store.list_all()) == 2


@pytest.mark.asyncio
async def test_delete_alert(alert_store):
    alert = await alert_store.create(user_id="user-1")
    
    await alert_store.delete(alert.id)
    
    assert await alert_store.list_all() == []


@pytest.mark.asyncio
@pytest.mark.parametrize("alert_id", ["00000000-0000-0000-0000-000000000000", "nope"])
async def test_delete_missing_alert_raises_not_found(alert_store, alert_id):
    with pytest.raises(NotFoundError):
        await alert_store.delete(alert_id)
