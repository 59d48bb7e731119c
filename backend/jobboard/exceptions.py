"""
Domain errors raised by the ingestion pipeline and the moderation service.

The API layer translates these into HTTP responses; the pipeline converts
anything raised after the entry is loaded into a rejected log status.
"""


class JobBoardError(Exception):
    """Base class for all domain errors"""
    pass


class NotFoundError(JobBoardError):
    """Referenced ingest log, job or alert does not exist"""
    pass


class ConfigError(JobBoardError):
    """Extraction model credential (or other required setting) is missing"""
    pass


class ExtractionError(JobBoardError):
    """Extraction model call failed or returned a payload of the wrong shape"""
    pass


class ValidationError(JobBoardError):
    """Extracted candidate or submitted record is missing required data"""
    pass


class InvalidStateError(JobBoardError):
    """Requested state transition is not allowed from the current state"""
    pass
