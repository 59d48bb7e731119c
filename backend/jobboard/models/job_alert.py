from datetime import datetime
from sqlalchemy import Column, String, DateTime
import uuid

from jobboard.database import Base
from jobboard.database_types import GUID


# Alert fields holding this value (or nothing) match every job
ALERT_WILDCARD = "All"


class JobAlert(Base):
    __tablename__ = "job_alerts"
    
    id = Column(GUID, primary_key=True, default=uuid.uuid4)
    user_id = Column(String, nullable=False, index=True)
    
    # Filters (all optional, combined with AND)
    keywords = Column(String, nullable=True)
    location = Column(String, nullable=True)
    job_type = Column(String, nullable=True)
    
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
