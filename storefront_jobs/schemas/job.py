"""Job-related Pydantic schemas."""

from datetime import datetime
from typing import Any, Dict, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict

from storefront_jobs.models.job import JobStatus, JobType


class JobCreate(BaseModel):
    """Schema for creating a job. Params are validated per job type."""

    params: Optional[Dict[str, Any]] = None


class JobCreateResponse(BaseModel):
    """Response after enqueueing a job."""

    job_id: UUID
    type: JobType
    status: JobStatus


class JobResponse(BaseModel):
    """Job status as shown on the operations dashboard."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    type: JobType
    status: JobStatus
    progress: int
    attempts: int
    params: Optional[Dict[str, Any]] = None
    result: Optional[Dict[str, Any]] = None
    error: Optional[str] = None
    locked_by: Optional[str] = None
    created_at: Optional[datetime] = None
    started_at: Optional[datetime] = None
    finished_at: Optional[datetime] = None


class JobCancelResponse(BaseModel):
    """Response after cancelling a job."""

    job_id: UUID
    status: JobStatus
    cancelled: bool
    message: str
