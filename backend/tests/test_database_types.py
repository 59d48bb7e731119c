"""
Tests for the shared column types on SQLite and PostgreSQL dialects.
"""
import uuid

import pytest
from sqlalchemy.dialects import postgresql, sqlite

from jobboard.database_types import GUID, JSON
from jobboard.models.ingest_log import IngestLog
from jobboard.models.job import Job


SQLITE = sqlite.dialect()
POSTGRES = postgresql.dialect()


def test_ids_and_source_link_use_guid():
    assert isinstance(IngestLog.__table__.c.id.type, GUID)
    assert isinstance(Job.__table__.c.id.type, GUID)
    assert isinstance(Job.__table__.c.source_message_id.type, GUID)
    assert isinstance(IngestLog.__table__.c.parsed_json.type, JSON)


def test_guid_is_stored_as_text_on_sqlite():
    log_id = uuid.uuid4()

    stored = GUID().process_bind_param(log_id, SQLITE)

    assert stored == str(log_id)
    assert GUID().process_result_value(stored, SQLITE) == log_id


def test_guid_accepts_string_ids_on_postgres():
    log_id = uuid.uuid4()
    assert GUID().process_bind_param(str(log_id), POSTGRES) == log_id


@pytest.mark.asyncio
async def test_extraction_payload_survives_storage(messages):
    payload = {"jobs": [{"title": "Driver", "company": "Acme", "confidence": 0.4}]}
    log = await messages.create("Driver needed", parsed_json=payload)

    stored = await messages.get(log.id)

    assert stored.parsed_json == payload
    assert isinstance(stored.id, uuid.UUID)
