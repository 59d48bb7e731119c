"""Database models"""
from jobboard.models.ingest_log import IngestLog, IngestStatus, IngestSource
from jobboard.models.job import Job, JobStatus, JobType, SourceType
from jobboard.models.job_alert import JobAlert, ALERT_WILDCARD

__all__ = [
    "IngestLog",
    "IngestStatus",
    "IngestSource",
    "Job",
    "JobStatus",
    "JobType",
    "SourceType",
    "JobAlert",
    "ALERT_WILDCARD",
]
