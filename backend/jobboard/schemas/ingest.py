"""Ingestion-related Pydantic schemas."""
import math
from datetime import datetime
from typing import Any, Optional
from uuid import UUID
from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator

from jobboard.models.job import JobType


class ExtractedJobCandidate(BaseModel):
    """
    One job as returned by the extraction model.
    
    Lenient on everything except the title: optional fields are coerced to
    strings, unknown job types collapse to 'unknown', and a confidence that
    is missing or outside [0, 1] becomes None (treated as below threshold).
    """
    title: str
    company: str = "Unknown"
    location: Optional[str] = None
    salary: Optional[str] = None
    contact: Optional[str] = None
    deadline: Optional[str] = None
    description: Optional[str] = None
    job_type: JobType = Field(
        default=JobType.UNKNOWN,
        validation_alias=AliasChoices("job_type", "jobType"),
    )
    application_link: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("application_link", "applicationLink"),
    )
    confidence: Optional[float] = None
    
    model_config = ConfigDict(extra="ignore")

    @field_validator("title", mode="before")
    @classmethod
    def _require_title(cls, value: Any) -> str:
        if not isinstance(value, str) or not value.strip():
            raise ValueError("title is required")
        return value.strip()

    @field_validator("company", mode="before")
    @classmethod
    def _default_company(cls, value: Any) -> str:
        if value is None or not str(value).strip():
            return "Unknown"
        return str(value).strip()

    @field_validator(
        "location", "salary", "contact", "deadline", "description", "application_link",
        mode="before",
    )
    @classmethod
    def _optional_text(cls, value: Any) -> Optional[str]:
        if value is None:
            return None
        text = str(value).strip()
        return text or None

    @field_validator("job_type", mode="before")
    @classmethod
    def _normalize_job_type(cls, value: Any) -> JobType:
        return JobType.normalize(value if isinstance(value, str) else None)

    @field_validator("confidence", mode="before")
    @classmethod
    def _valid_confidence(cls, value: Any) -> Optional[float]:
        if value is None or isinstance(value, bool):
            return None
        try:
            confidence = float(value)
        except (TypeError, ValueError):
            return None
        if math.isnan(confidence) or not 0.0 <= confidence <= 1.0:
            return None
        return confidence

    def is_confident(self, threshold: float) -> bool:
        """True when the model's confidence reaches the auto-publish threshold."""
        return self.confidence is not None and self.confidence >= threshold


class IngestLogResponse(BaseModel):
    """Schema for ingest log (moderation queue) response."""
    id: UUID
    raw_text: str
    status: str
    source: str
    group_id: Optional[str] = None
    message_id: Optional[str] = None
    parsed_json: Optional[dict[str, Any]] = None
    reason: Optional[str] = None
    created_at: datetime
    
    model_config = ConfigDict(from_attributes=True)


class IngestApprovalResponse(BaseModel):
    """Result of approving a held ingest log."""
    log: IngestLogResponse
    published_job_ids: list[UUID]
    duplicates_skipped: int


class SimulateIngestRequest(BaseModel):
    """Raw message pasted into the admin console."""
    raw_text: str = Field(min_length=1)


class PipelineRunResponse(BaseModel):
    """Summary of one pipeline run (manual retry)."""
    log_id: UUID
    status: str
    reason: Optional[str] = None
    published_job_ids: list[UUID]
    duplicates_skipped: int
    held_for_review: int
    invalid_candidates: int
