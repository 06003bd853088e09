from sqlalchemy import JSON, Column, DateTime, Float, Integer, String, Text
from sqlalchemy.dialects.postgresql import JSONB

from merchant_app.core.enums import JobStatus
from merchant_app.core.utils import utcnow
from merchant_app.database import Base

JSONType = JSON().with_variant(JSONB(astext_type=Text()), "postgresql")


class Job(Base):
    __tablename__ = "jobs"

    id = Column(Integer, primary_key=True)
    job_type = Column(String(64), nullable=False, index=True)
    payload = Column(JSONType, nullable=False)
    status = Column(String(32), nullable=False, default=JobStatus.QUEUED.value, index=True)
    attempts = Column(Integer, nullable=False, default=0)
    max_attempts = Column(Integer, nullable=False, default=1)
    backoff_seconds = Column(Float, nullable=False, default=0.0)
    run_after = Column(DateTime(timezone=True), nullable=False, default=utcnow, index=True)
    last_attempt_at = Column(DateTime(timezone=True), nullable=True)
    error_message = Column(Text, nullable=True)
    result = Column(JSONType, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    def __repr__(self):
        return f"<Job {self.id} {self.job_type} {self.status} attempt={self.attempts}/{self.max_attempts}>"
