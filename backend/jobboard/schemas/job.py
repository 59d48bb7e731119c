"""Job-related Pydantic schemas."""
from datetime import datetime
from typing import Optional
from uuid import UUID
from pydantic import BaseModel, ConfigDict, Field

from jobboard.models.job import JobType


class JobBase(BaseModel):
    """Base schema with common job posting fields."""
    title: str = Field(min_length=1)
    company_name: str = Field(min_length=1)
    location: Optional[str] = None
    job_type: JobType = JobType.UNKNOWN
    description: Optional[str] = None
    application_link: Optional[str] = None
    salary_range: Optional[str] = None
    deadline: Optional[str] = None


class JobCreate(JobBase):
    """Schema for a manually posted job (goes to moderation)."""
    posted_by: Optional[str] = None


class JobResponse(JobBase):
    """Schema for job posting response."""
    id: UUID
    contact: Optional[str] = None
    source_type: str
    source_message_id: Optional[UUID] = None
    status: str
    views: int
    applicants_count: int
    posted_by: Optional[str] = None
    created_at: datetime
    
    model_config = ConfigDict(from_attributes=True)
