"""Transactional operations over the ingestion job table.

Every operation opens its own session, so a status read always sees the
latest committed state. This is what lets a running executor notice that
its job was cancelled from another process.
"""

import logging
from datetime import datetime
from typing import Any, Dict, List, Optional
from uuid import UUID

from storefront_jobs.config import settings
from storefront_jobs.database import SessionLocal
from storefront_jobs.exceptions import JobAlreadyFinishedError, JobNotFoundError
from storefront_jobs.models.job import TERMINAL_STATUSES, Job, JobStatus, JobType
from storefront_jobs.schemas.stages import parse_job_config

logger = logging.getLogger(__name__)

CANCELLED_ERROR = "cancelled"

_RELEASE_LOCK = {"locked_by": None, "locked_at": None}


class JobsService:
    """Job repository. Owns the claim protocol."""

    def __init__(self, session_factory=None):
        self.session_factory = session_factory or SessionLocal

    def create_job(self, job_type: JobType, params: Optional[Dict[str, Any]] = None) -> Job:
        """Insert a PENDING job after validating its stage params."""
        config = parse_job_config(job_type, params)

        db = self.session_factory()
        try:
            job = Job(
                type=job_type,
                status=JobStatus.PENDING,
                progress=0,
                attempts=0,
                params=config.model_dump(),
            )
            db.add(job)
            db.commit()
            logger.info(f"Created {job_type.value} job {job.id}")
            return job
        finally:
            db.close()

    def claim_next(self, job_type: JobType, worker_id: str) -> Optional[Job]:
        """
        Atomically take one PENDING job of the given type.

        The locking read skips rows held by other transactions, so competing
        workers never wait on each other. The update is also conditional on
        the row still being PENDING, which keeps stores without SKIP LOCKED
        from double-claiming.

        Returns:
            The claimed job, or None when nothing is available
        """
        db = self.session_factory()
        try:
            job = (
                db.query(Job)
                .filter(Job.type == job_type, Job.status == JobStatus.PENDING)
                .order_by(Job.created_at)
                .with_for_update(skip_locked=True)
                .first()
            )
            if job is None:
                db.rollback()
                return None

            now = datetime.utcnow()
            updated = (
                db.query(Job)
                .filter(Job.id == job.id, Job.status == JobStatus.PENDING)
                .update(
                    {
                        "status": JobStatus.RUNNING,
                        "locked_by": worker_id,
                        "locked_at": now,
                        "started_at": now,
                        "attempts": Job.attempts + 1,
                    },
                    synchronize_session=False,
                )
            )
            if updated != 1:
                # Lost the race to another worker
                db.rollback()
                return None

            db.commit()
            db.refresh(job)
            return job
        finally:
            db.close()

    def mark_done(self, job_id: UUID, result: Optional[Dict[str, Any]] = None) -> bool:
        """Mark a RUNNING job as completed. Returns False if it already left RUNNING."""
        now = datetime.utcnow()
        return self._update_running(
            job_id,
            {
                "status": JobStatus.DONE,
                "progress": 100,
                "result": result,
                "finished_at": now,
                **_RELEASE_LOCK,
            },
        )

    def mark_failed(self, job_id: UUID, error: str) -> bool:
        """Mark a RUNNING job as failed with a truncated error message."""
        now = datetime.utcnow()
        return self._update_running(
            job_id,
            {
                "status": JobStatus.FAILED,
                "error": error[: settings.JOB_ERROR_MAX_LENGTH],
                "finished_at": now,
                **_RELEASE_LOCK,
            },
        )

    def update_progress(self, job_id: UUID, percent: int) -> bool:
        """Write progress clamped to [0, 100]."""
        return self._update_running(job_id, {"progress": min(100, max(0, int(percent)))})

    def _update_running(self, job_id: UUID, values: Dict[str, Any]) -> bool:
        db = self.session_factory()
        try:
            updated = (
                db.query(Job)
                .filter(Job.id == job_id, Job.status == JobStatus.RUNNING)
                .update(values, synchronize_session=False)
            )
            db.commit()
            return updated == 1
        finally:
            db.close()

    def cancel(self, job_id: UUID) -> Job:
        """
        Cancel a PENDING or RUNNING job.

        The job is marked FAILED with error "cancelled". A running executor
        is not interrupted; it stops at its next cancellation check.

        Raises:
            JobNotFoundError: If the job does not exist
            JobAlreadyFinishedError: If the job is DONE or FAILED
        """
        db = self.session_factory()
        try:
            job = db.query(Job).filter(Job.id == job_id).with_for_update().first()
            if job is None:
                raise JobNotFoundError(job_id)

            if job.status in TERMINAL_STATUSES:
                raise JobAlreadyFinishedError(job_id, job.status)

            previous = job.status
            job.status = JobStatus.FAILED
            job.error = CANCELLED_ERROR
            job.finished_at = datetime.utcnow()
            job.locked_by = None
            job.locked_at = None
            db.commit()

            logger.info(f"Cancelled job {job_id} (was {previous.value})")
            return job
        finally:
            db.close()

    def is_cancelled(self, job_id: UUID) -> bool:
        """True when the job is gone or no longer RUNNING."""
        db = self.session_factory()
        try:
            status = db.query(Job.status).filter(Job.id == job_id).scalar()
            return status != JobStatus.RUNNING
        finally:
            db.close()

    def get_job(self, job_id: UUID) -> Optional[Job]:
        db = self.session_factory()
        try:
            return db.query(Job).filter(Job.id == job_id).first()
        finally:
            db.close()

    def list_jobs(
        self,
        job_type: Optional[JobType] = None,
        status: Optional[JobStatus] = None,
        limit: Optional[int] = None,
    ) -> List[Job]:
        """List jobs, newest first."""
        db = self.session_factory()
        try:
            query = db.query(Job)
            if job_type is not None:
                query = query.filter(Job.type == job_type)
            if status is not None:
                query = query.filter(Job.status == status)
            return (
                query.order_by(Job.created_at.desc())
                .limit(limit or settings.LIST_JOBS_DEFAULT_LIMIT)
                .all()
            )
        finally:
            db.close()
