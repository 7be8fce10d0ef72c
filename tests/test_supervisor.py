"""Tests for the process supervisor."""

import threading

from storefront_jobs.models.job import JobType
from storefront_jobs.supervisor import Supervisor


class IdleJobsService:
    """Never has work; records which types were polled."""

    def __init__(self, broken_type=None):
        self.session_factory = None
        self.broken_type = broken_type
        self.polled = set()
        self.lock = threading.Lock()

    def claim_next(self, job_type, worker_id):
        with self.lock:
            self.polled.add(job_type)
        if job_type == self.broken_type:
            raise RuntimeError("claim query is broken")
        return None


def no_executor(job_type):
    return None


def test_one_loop_per_job_type():
    """Test that the default supervisor covers every job type."""
    supervisor = Supervisor(jobs_service=IdleJobsService(), executor_factory=no_executor)

    assert sorted(w.job_type.value for w in supervisor.workers) == sorted(t.value for t in JobType)
    assert len({w.worker_id for w in supervisor.workers}) == len(JobType)


def test_stop_is_graceful():
    """Test that stop() ends every idle loop without a fatal error."""
    jobs = IdleJobsService()
    supervisor = Supervisor(jobs_service=jobs, executor_factory=no_executor, poll_interval=0.01)

    supervisor.start()
    assert all(thread.is_alive() for thread in supervisor.threads)

    assert supervisor.stop(timeout=5) is True
    assert not any(thread.is_alive() for thread in supervisor.threads)
    assert supervisor.fatal_error is None


def test_crashed_loop_stops_the_others():
    """Test that a crash in one loop brings the whole supervisor down."""
    jobs = IdleJobsService(broken_type=JobType.ENRICH)
    supervisor = Supervisor(jobs_service=jobs, executor_factory=no_executor, poll_interval=0.01)

    supervisor.start()

    assert supervisor.wait(timeout=5) is False
    assert isinstance(supervisor.fatal_error, RuntimeError)
    assert supervisor.stop_event.is_set()
    assert not any(thread.is_alive() for thread in supervisor.threads)


def test_request_shutdown_sets_stop_event():
    supervisor = Supervisor(jobs_service=IdleJobsService(), executor_factory=no_executor)

    supervisor.request_shutdown()

    assert supervisor.stop_event.is_set()


def test_stop_closes_supplier_client():
    """Test that the shared supplier client is closed once the loops exit."""
    jobs = IdleJobsService()
    supervisor = Supervisor(jobs_service=jobs, poll_interval=0.01)
    http = supervisor.supplier.http

    supervisor.start()
    assert supervisor.stop(timeout=5) is True

    assert http.is_closed
    assert supervisor.supplier is None
