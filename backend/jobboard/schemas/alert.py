"""Job alert Pydantic schemas."""
from datetime import datetime
from typing import Optional
from uuid import UUID
from pydantic import BaseModel, ConfigDict, Field


class JobAlertCreate(BaseModel):
    """Schema for creating a job alert. Empty or 'All' filters match everything."""
    user_id: str = Field(min_length=1)
    keywords: Optional[str] = None
    location: Optional[str] = None
    job_type: Optional[str] = None


class JobAlertResponse(BaseModel):
    """Schema for job alert response."""
    id: UUID
    user_id: str
    keywords: Optional[str] = None
    location: Optional[str] = None
    job_type: Optional[str] = None
    created_at: datetime
    
    model_config = ConfigDict(from_attributes=True)
