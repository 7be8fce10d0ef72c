"""Job model for the ingestion worker queue."""

import enum
import uuid
from datetime import datetime

from sqlalchemy import JSON, Column, DateTime, Enum, Index, Integer, Text, Uuid

from storefront_jobs.database import Base


class JobType(str, enum.Enum):
    RAW = "RAW"
    NORMALIZE = "NORMALIZE"
    ENRICH = "ENRICH"
    PUBLISH = "PUBLISH"
    STOCK_REFRESH = "STOCK_REFRESH"


class JobStatus(str, enum.Enum):
    PENDING = "PENDING"
    RUNNING = "RUNNING"
    DONE = "DONE"
    FAILED = "FAILED"


TERMINAL_STATUSES = (JobStatus.DONE, JobStatus.FAILED)


class Job(Base):
    """Job represents one claimable unit of pipeline work."""

    __tablename__ = "ingestion_jobs"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    type = Column(Enum(JobType, name="ingestion_job_type"), nullable=False)
    status = Column(Enum(JobStatus, name="ingestion_job_status"), nullable=False, default=JobStatus.PENDING)
    progress = Column(Integer, nullable=False, default=0)
    attempts = Column(Integer, nullable=False, default=0)
    params = Column(JSON)  # Stage config, shape depends on type
    result = Column(JSON)  # Outcome summary written on completion
    error = Column(Text)
    locked_by = Column(Text)
    locked_at = Column(DateTime)
    started_at = Column(DateTime)
    finished_at = Column(DateTime)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    __table_args__ = (
        Index("idx_ingestion_jobs_type_status", "type", "status"),
        Index("idx_ingestion_jobs_created_at", "created_at"),
    )

    def __repr__(self):
        return f"<Job {self.id} {self.type.value} {self.status.value} {self.progress}%>"
