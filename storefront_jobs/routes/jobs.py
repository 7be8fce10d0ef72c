"""Job routes."""

import logging
import uuid
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import ValidationError

from storefront_jobs.config import settings
from storefront_jobs.exceptions import JobAlreadyFinishedError, JobNotFoundError
from storefront_jobs.models.job import JobStatus, JobType
from storefront_jobs.schemas.job import (
    JobCancelResponse,
    JobCreate,
    JobCreateResponse,
    JobResponse,
)
from storefront_jobs.services.jobs import JobsService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/jobs", tags=["jobs"])


def get_jobs_service() -> JobsService:
    return JobsService()


@router.post("/{job_type}", response_model=JobCreateResponse, status_code=202)
def create_job(
    job_type: JobType,
    data: Optional[JobCreate] = None,
    jobs: JobsService = Depends(get_jobs_service),
):
    """Enqueue a job. A worker of the same type picks it up."""
    try:
        job = jobs.create_job(job_type, data.params if data else None)
    except ValidationError as e:
        raise HTTPException(status_code=422, detail=e.errors(include_url=False, include_context=False))

    return JobCreateResponse(job_id=job.id, type=job.type, status=job.status)


@router.get("", response_model=List[JobResponse])
def list_jobs(
    type: Optional[JobType] = None,
    status: Optional[JobStatus] = None,
    limit: int = Query(settings.LIST_JOBS_DEFAULT_LIMIT, ge=1, le=500),
    jobs: JobsService = Depends(get_jobs_service),
):
    """List jobs, newest first."""
    return jobs.list_jobs(job_type=type, status=status, limit=limit)


@router.get("/{job_id}", response_model=JobResponse)
def get_job(
    job_id: uuid.UUID,
    jobs: JobsService = Depends(get_jobs_service),
):
    """Get job status and progress."""
    job = jobs.get_job(job_id)
    if not job:
        raise HTTPException(status_code=404, detail="Job not found")
    return job


@router.delete("/{job_id}", response_model=JobCancelResponse)
def cancel_job(
    job_id: uuid.UUID,
    jobs: JobsService = Depends(get_jobs_service),
):
    """Cancel a PENDING or RUNNING job."""
    try:
        job = jobs.cancel(job_id)
    except JobNotFoundError:
        raise HTTPException(status_code=404, detail="Job not found")
    except JobAlreadyFinishedError as e:
        raise HTTPException(status_code=400, detail=str(e))

    return JobCancelResponse(
        job_id=job.id,
        status=job.status,
        cancelled=True,
        message="Job cancelled",
    )
