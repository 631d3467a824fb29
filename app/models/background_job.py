from sqlalchemy import Column, Integer, String, Text, DateTime, Enum, JSON, Index
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.sql import func
from app.core.database import Base
from app.core.constants import JobStatusEnum

class BackgroundJob(Base):
    __tablename__ = "background_jobs"
    __table_args__ = (Index("ix_background_jobs_status_run_after", "status", "run_after"),)

    id = Column(Integer, primary_key=True, index=True)
    job_type = Column(String, nullable=False, index=True)
    payload = Column(JSON().with_variant(JSONB, "postgresql"), nullable=False, default=dict)
    status = Column(Enum(JobStatusEnum), nullable=False, default=JobStatusEnum.PENDING)
    attempts = Column(Integer, nullable=False, default=0)
    max_attempts = Column(Integer, nullable=False, default=3)
    backoff_seconds = Column(Integer, nullable=False, default=2)
    run_after = Column(DateTime, nullable=False)
    locked_at = Column(DateTime, nullable=True)
    last_error = Column(Text, nullable=True)
    finished_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())
