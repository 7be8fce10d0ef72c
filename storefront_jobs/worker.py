"""Polling worker loop bound to one job type."""

import logging
import os
import threading
import time
import uuid
from typing import Optional

import sqlalchemy
from sqlalchemy.exc import OperationalError, ProgrammingError

from storefront_jobs.config import settings
from storefront_jobs.database import SessionLocal
from storefront_jobs.executors.base import BaseExecutor
from storefront_jobs.models.job import Job, JobType
from storefront_jobs.services.jobs import JobsService

logger = logging.getLogger(__name__)


def wait_for_database(session_factory=SessionLocal, max_wait: Optional[int] = None) -> bool:
    """Wait until the jobs table can be queried (migrations may still be running)."""
    max_wait = settings.WORKER_DB_WAIT_TIMEOUT if max_wait is None else max_wait
    waited = 0
    while True:
        db = session_factory()
        try:
            db.execute(sqlalchemy.text(f"SELECT 1 FROM {Job.__tablename__} LIMIT 1"))
            logger.info("Database is ready")
            return True
        except (OperationalError, ProgrammingError) as e:
            if waited >= max_wait:
                logger.error(f"Database not ready after {max_wait} seconds: {e}")
                return False
            logger.info(f"Waiting for the jobs table... ({waited}s)")
        finally:
            db.close()
        time.sleep(2)
        waited += 2


class Worker:
    """Claims jobs of a single type and hands them to its executor."""

    def __init__(
        self,
        job_type: JobType,
        executor: BaseExecutor,
        jobs_service: Optional[JobsService] = None,
        poll_interval: Optional[float] = None,
        worker_id: Optional[str] = None,
    ):
        """Initialize worker."""
        self.job_type = job_type
        self.executor = executor
        self.jobs = jobs_service or JobsService()
        self.poll_interval = settings.WORKER_POLL_INTERVAL if poll_interval is None else poll_interval
        self.db_error_backoff = settings.WORKER_DB_ERROR_BACKOFF
        self.worker_id = worker_id or f"{job_type.value.lower()}-worker-{os.getpid()}-{uuid.uuid4().hex[:8]}"

    def run(self, stop_event: Optional[threading.Event] = None):
        """Main worker loop.

        Args:
            stop_event: Optional threading.Event to signal worker to stop. The
                job in progress always finishes first.
        """
        stop_event = stop_event or threading.Event()
        logger.info(f"Worker {self.worker_id} started for {self.job_type.value} jobs")

        while not stop_event.is_set():
            try:
                claimed = self.run_once()
            except OperationalError as e:
                logger.error(f"Worker {self.worker_id} database error, backing off {self.db_error_backoff}s: {e}")
                stop_event.wait(self.db_error_backoff)
                continue

            if not claimed:
                stop_event.wait(self.poll_interval)

        logger.info(f"Worker {self.worker_id} stopped")

    def run_once(self) -> bool:
        """Claim and process one job. Returns False when there was nothing to claim."""
        job = self.jobs.claim_next(self.job_type, self.worker_id)
        if job is None:
            return False

        self.process_job(job)
        return True

    def process_job(self, job: Job):
        """Run the executor and record the terminal state."""
        logger.info(f"Processing job {job.id} ({job.type.value}, attempt {job.attempts})")

        try:
            outcome = self.executor.run(job.id)
        except Exception as e:
            logger.error(f"Job {job.id} failed: {e}", exc_info=True)
            self.jobs.mark_failed(job.id, str(e) or e.__class__.__name__)
            return

        if outcome.cancelled:
            # Cancel already wrote the terminal state
            logger.info(f"Job {job.id} cancelled after {outcome.summary()}")
            return

        if self.jobs.mark_done(job.id, result=outcome.model_dump()):
            logger.info(f"Job {job.id} completed: {outcome.summary()}")
        else:
            logger.warning(f"Job {job.id} left RUNNING before completion could be recorded")
