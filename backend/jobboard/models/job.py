from datetime import datetime
from enum import Enum
from typing import Optional
from sqlalchemy import Column, String, Integer, Text, DateTime, Index, text
import uuid

from jobboard.database import Base
from jobboard.database_types import GUID


class JobStatus(str, Enum):
    """Publication states of a job posting"""
    PENDING_APPROVAL = "PENDING_APPROVAL"
    PUBLISHED = "PUBLISHED"
    REJECTED = "REJECTED"


class SourceType(str, Enum):
    """How a job posting entered the board"""
    MANUAL = "MANUAL"
    WHATSAPP = "WHATSAPP"


class JobType(str, Enum):
    """Employment type vocabulary shared by extraction, jobs and alerts"""
    FULL_TIME = "full-time"
    PART_TIME = "part-time"
    CONTRACT = "contract"
    INTERNSHIP = "internship"
    FREELANCE = "freelance"
    UNKNOWN = "unknown"

    @classmethod
    def normalize(cls, value: Optional[str]) -> "JobType":
        """Map free text such as 'Full-time' or 'FULL TIME' onto the enum."""
        if not value:
            return cls.UNKNOWN
        cleaned = value.strip().lower().replace("_", "-").replace(" ", "-")
        try:
            return cls(cleaned)
        except ValueError:
            return cls.UNKNOWN


# Only one published ingestion-sourced job per (title, company_name)
PUBLISHED_WHATSAPP_WHERE = text("status = 'PUBLISHED' AND source_type = 'WHATSAPP'")


class Job(Base):
    __tablename__ = "jobs"
    
    id = Column(GUID, primary_key=True, default=uuid.uuid4)
    
    # Job details
    title = Column(String, nullable=False)
    company_name = Column(String, nullable=False, default="Unknown")
    location = Column(String, nullable=True)
    job_type = Column(String, nullable=False, default=JobType.UNKNOWN.value)
    description = Column(Text, nullable=True)
    application_link = Column(String, nullable=True)
    salary_range = Column(String, nullable=True)
    contact = Column(String, nullable=True)
    deadline = Column(String, nullable=True)  # ISO date as extracted
    
    # Provenance
    source_type = Column(String, nullable=False, default=SourceType.MANUAL.value)
    source_message_id = Column(GUID, nullable=True, index=True)  # Weak reference to ingest_logs.id
    posted_by = Column(String, nullable=True)
    
    # Moderation
    status = Column(String, nullable=False, default=JobStatus.PENDING_APPROVAL.value, index=True)
    
    # Counters
    views = Column(Integer, nullable=False, default=0)
    applicants_count = Column(Integer, nullable=False, default=0)
    
    # Timestamps
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)
    
    __table_args__ = (
        Index("idx_jobs_title_company", "title", "company_name"),
        Index(
            "uq_jobs_published_whatsapp_title_company",
            "title",
            "company_name",
            unique=True,
            postgresql_where=PUBLISHED_WHATSAPP_WHERE,
            sqlite_where=PUBLISHED_WHATSAPP_WHERE,
        ),
    )
