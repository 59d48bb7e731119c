"""
Column types shared by the ingest log, job and job alert tables.

Deployments point DATABASE_URL at PostgreSQL (asyncpg); the default URL
and the test suite use SQLite through aiosqlite, so ids and extraction
payloads need one type that maps to the native column on each.
"""
import json
import uuid

from sqlalchemy import TypeDecorator, CHAR, Text
from sqlalchemy.dialects.postgresql import UUID, JSONB


class GUID(TypeDecorator):
    """
    Primary keys of ingest_logs, jobs and job_alerts, and the
    jobs.source_message_id link back to the ingest log a job came from.
    
    Native UUID on PostgreSQL, CHAR(36) on SQLite. Stores compare these
    against uuid.UUID values, so results always come back as uuid.UUID.
    """
    impl = CHAR
    cache_ok = True

    def load_dialect_impl(self, dialect):
        if dialect.name == "postgresql":
            return dialect.type_descriptor(UUID(as_uuid=True))
        return dialect.type_descriptor(CHAR(36))

    def process_bind_param(self, value, dialect):
        if value is None:
            return None
        if dialect.name == "postgresql":
            return value if isinstance(value, uuid.UUID) else uuid.UUID(str(value))
        return str(value)

    def process_result_value(self, value, dialect):
        if value is None or isinstance(value, uuid.UUID):
            return value
        return uuid.UUID(value)


class JSON(TypeDecorator):
    """
    ingest_logs.parsed_json: the model's {"jobs": [...]} payload, kept so a
    held entry can be approved later without calling the model again.
    
    JSONB on PostgreSQL, serialized TEXT on SQLite.
    """
    impl = Text
    cache_ok = True

    def load_dialect_impl(self, dialect):
        if dialect.name == "postgresql":
            return dialect.type_descriptor(JSONB())
        return dialect.type_descriptor(Text())

    def process_bind_param(self, value, dialect):
        if value is None or dialect.name == "postgresql":
            return value
        return json.dumps(value)

    def process_result_value(self, value, dialect):
        if value is None or dialect.name == "postgresql":
            return value
        return json.loads(value)
