from datetime import datetime
from enum import Enum
from sqlalchemy import Column, String, DateTime, Text, Index
import uuid

from jobboard.database import Base
from jobboard.database_types import GUID, JSON


class IngestStatus(str, Enum):
    """Processing states of an inbound message"""
    PENDING = "pending"      # Received, waiting for extraction
    PARSED = "parsed"        # Extracted, held for human moderation
    PUBLISHED = "published"  # Terminal
    REJECTED = "rejected"    # Terminal (manual retry moves it back to pending)


class IngestSource(str, Enum):
    """Where an ingest log entry came from"""
    WHATSAPP = "WHATSAPP"
    SIMULATION = "SIMULATION"  # Admin pasted a message into the console


class IngestLog(Base):
    __tablename__ = "ingest_logs"
    
    id = Column(GUID, primary_key=True, default=uuid.uuid4)
    
    # Original message
    raw_text = Column(Text, nullable=False)
    group_id = Column(String, nullable=True)
    message_id = Column(String, nullable=True, index=True)  # Provider message id
    source = Column(String, nullable=False, default=IngestSource.WHATSAPP.value)
    
    # Processing state
    status = Column(String, nullable=False, default=IngestStatus.PENDING.value)
    parsed_json = Column(JSON, nullable=True)  # {"jobs": [...]} as returned by the model
    reason = Column(String, nullable=True)
    
    # Timestamps
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)
    
    __table_args__ = (
        # Moderation queue and backlog scans
        Index("idx_ingest_logs_status_created", "status", "created_at"),
    )
