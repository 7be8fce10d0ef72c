"""Tests for the job repository."""

import os
import threading
import uuid

import pytest
from pydantic import ValidationError
from sqlalchemy import create_engine, event, update
from sqlalchemy.orm import sessionmaker

from storefront_jobs.database import Base, init_db
from storefront_jobs.exceptions import JobAlreadyFinishedError, JobNotFoundError
from storefront_jobs.models.job import Job, JobStatus, JobType
from storefront_jobs.services.jobs import CANCELLED_ERROR, JobsService


def test_create_job_is_pending(jobs_service):
    """Test that new jobs start PENDING with no attempts."""
    job = jobs_service.create_job(JobType.RAW)

    assert isinstance(job.id, uuid.UUID)
    assert job.status == JobStatus.PENDING
    assert job.progress == 0
    assert job.attempts == 0
    assert job.locked_by is None
    assert job.params["page_size"] == 40


def test_create_job_validates_params(jobs_service):
    """Test that params are checked against the config of the job type."""
    job = jobs_service.create_job(JobType.ENRICH, {"limit": 5, "force": True})
    assert job.params["limit"] == 5
    assert job.params["force"] is True

    with pytest.raises(ValidationError):
        jobs_service.create_job(JobType.ENRICH, {"start_page": 3})

    with pytest.raises(ValidationError):
        jobs_service.create_job(JobType.RAW, {"max_pages": 0})


def test_claim_sets_running_and_lock(jobs_service):
    """Test claim transitions and lock fields."""
    created = jobs_service.create_job(JobType.RAW)

    job = jobs_service.claim_next(JobType.RAW, "w1")

    assert job.id == created.id
    assert job.status == JobStatus.RUNNING
    assert job.attempts == 1
    assert job.locked_by == "w1"
    assert job.locked_at is not None
    assert job.started_at is not None


def test_claim_only_matches_type(jobs_service):
    """Test that a worker never claims jobs of another type."""
    jobs_service.create_job(JobType.NORMALIZE)

    assert jobs_service.claim_next(JobType.RAW, "w1") is None
    assert jobs_service.claim_next(JobType.NORMALIZE, "w2") is not None


def test_two_claimers_one_job(jobs_service):
    """Test that exactly one of two claimers receives a single pending job."""
    jobs_service.create_job(JobType.ENRICH)

    first = jobs_service.claim_next(JobType.ENRICH, "w1")
    second = jobs_service.claim_next(JobType.ENRICH, "w2")

    assert first is not None
    assert second is None
    assert jobs_service.get_job(first.id).locked_by == "w1"


def test_claim_lost_race_returns_none(jobs_service, session_factory):
    """Test a row that leaves PENDING between the locking read and the update."""
    job = jobs_service.create_job(JobType.RAW)
    raced = []

    @event.listens_for(session_factory, "do_orm_execute")
    def other_worker_claims_first(orm_execute_state):
        if orm_execute_state.is_update and not raced:
            raced.append(True)
            orm_execute_state.session.execute(
                update(Job).where(Job.id == job.id).values(status=JobStatus.RUNNING, locked_by="w2"),
                execution_options={"synchronize_session": False},
            )

    assert jobs_service.claim_next(JobType.RAW, "w1") is None
    assert raced

    # The losing transaction is rolled back as a whole
    current = jobs_service.get_job(job.id)
    assert current.status == JobStatus.PENDING
    assert current.locked_by is None
    assert current.attempts == 0


def test_concurrent_claims_sqlite(tmp_path):
    """Test that threads racing over a file-backed queue claim each job exactly once."""
    engine = create_engine(
        f"sqlite:///{tmp_path / 'jobs.db'}",
        connect_args={"check_same_thread": False, "timeout": 30},
    )
    init_db(engine)
    service = JobsService(sessionmaker(bind=engine, autoflush=False, expire_on_commit=False))

    try:
        created = {service.create_job(JobType.RAW).id for _ in range(20)}
        claimed, errors = run_claimers(service, 8)

        assert errors == []
        assert len(claimed) == len(set(claimed))
        assert set(claimed) == created
        assert all(service.get_job(job_id).attempts == 1 for job_id in created)
    finally:
        engine.dispose()


def run_claimers(service, count):
    """Drain the RAW queue from `count` threads started together."""
    barrier = threading.Barrier(count)
    claimed = []
    errors = []
    lock = threading.Lock()

    def claimer(n):
        barrier.wait()
        try:
            while True:
                job = service.claim_next(JobType.RAW, f"w{n}")
                if job is None:
                    return
                with lock:
                    claimed.append(job.id)
        except Exception as e:
            with lock:
                errors.append(e)

    threads = [threading.Thread(target=claimer, args=(n,)) for n in range(count)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()
    return claimed, errors


def test_claim_empty_queue(jobs_service):
    """Test that an empty queue yields no job."""
    assert jobs_service.claim_next(JobType.PUBLISH, "w1") is None


def test_attempts_count_claims(jobs_service):
    """Test that attempts grow by one per claim, whatever the outcome."""
    first = jobs_service.create_job(JobType.RAW)
    claimed = jobs_service.claim_next(JobType.RAW, "w1")
    jobs_service.mark_failed(claimed.id, "boom")

    assert jobs_service.get_job(first.id).attempts == 1

    second = jobs_service.create_job(JobType.RAW)
    claimed = jobs_service.claim_next(JobType.RAW, "w1")
    jobs_service.mark_done(claimed.id)

    assert claimed.id == second.id
    assert jobs_service.get_job(second.id).attempts == 1


def test_mark_done(jobs_service):
    """Test completion clears the lock and sets progress to 100."""
    jobs_service.create_job(JobType.PUBLISH)
    job = jobs_service.claim_next(JobType.PUBLISH, "w1")
    jobs_service.update_progress(job.id, 40)

    assert jobs_service.mark_done(job.id, result={"processed": 3})

    done = jobs_service.get_job(job.id)
    assert done.status == JobStatus.DONE
    assert done.progress == 100
    assert done.result == {"processed": 3}
    assert done.finished_at is not None
    assert done.locked_by is None
    assert done.locked_at is None
    assert done.error is None


def test_mark_failed_truncates_error(jobs_service, monkeypatch):
    """Test failure stores a bounded error message."""
    from storefront_jobs.config import settings

    monkeypatch.setattr(settings, "JOB_ERROR_MAX_LENGTH", 20)
    jobs_service.create_job(JobType.RAW)
    job = jobs_service.claim_next(JobType.RAW, "w1")

    assert jobs_service.mark_failed(job.id, "x" * 100)

    failed = jobs_service.get_job(job.id)
    assert failed.status == JobStatus.FAILED
    assert failed.error == "x" * 20
    assert failed.locked_by is None
    assert failed.finished_at is not None


def test_update_progress_clamps(jobs_service):
    """Test progress is clamped to [0, 100]."""
    jobs_service.create_job(JobType.RAW)
    job = jobs_service.claim_next(JobType.RAW, "w1")

    jobs_service.update_progress(job.id, 150)
    assert jobs_service.get_job(job.id).progress == 100

    jobs_service.update_progress(job.id, -5)
    assert jobs_service.get_job(job.id).progress == 0


def test_cancel_pending(jobs_service):
    """Test cancelling a pending job means it can never be claimed."""
    job = jobs_service.create_job(JobType.RAW)

    cancelled = jobs_service.cancel(job.id)

    assert cancelled.status == JobStatus.FAILED
    assert cancelled.error == CANCELLED_ERROR
    assert jobs_service.claim_next(JobType.RAW, "w1") is None


def test_cancel_running_clears_lock(jobs_service):
    """Test cancelling a running job releases its lock."""
    jobs_service.create_job(JobType.RAW)
    job = jobs_service.claim_next(JobType.RAW, "w1")

    jobs_service.cancel(job.id)

    cancelled = jobs_service.get_job(job.id)
    assert cancelled.status == JobStatus.FAILED
    assert cancelled.error == "cancelled"
    assert cancelled.locked_by is None
    assert cancelled.locked_at is None
    assert jobs_service.is_cancelled(job.id)


def test_cancel_rejects_done(jobs_service):
    """Test that a completed job cannot be cancelled."""
    jobs_service.create_job(JobType.RAW)
    job = jobs_service.claim_next(JobType.RAW, "w1")
    jobs_service.mark_done(job.id)

    with pytest.raises(JobAlreadyFinishedError):
        jobs_service.cancel(job.id)
    assert jobs_service.get_job(job.id).status == JobStatus.DONE


def test_cancel_rejects_failed(jobs_service):
    """Test that an already failed (or cancelled) job cannot be cancelled again."""
    job = jobs_service.create_job(JobType.RAW)
    jobs_service.cancel(job.id)

    with pytest.raises(JobAlreadyFinishedError):
        jobs_service.cancel(job.id)


def test_cancel_unknown_job(jobs_service):
    """Test cancelling a job that does not exist."""
    with pytest.raises(JobNotFoundError):
        jobs_service.cancel(uuid.uuid4())


def test_writes_after_cancel_are_ignored(jobs_service):
    """Test that a cancelled job is never overwritten by the executor or the loop."""
    jobs_service.create_job(JobType.ENRICH)
    job = jobs_service.claim_next(JobType.ENRICH, "w1")
    jobs_service.update_progress(job.id, 30)
    jobs_service.cancel(job.id)

    assert not jobs_service.update_progress(job.id, 60)
    assert not jobs_service.mark_done(job.id)
    assert not jobs_service.mark_failed(job.id, "late failure")

    final = jobs_service.get_job(job.id)
    assert final.status == JobStatus.FAILED
    assert final.error == "cancelled"
    assert final.progress == 30


def test_list_jobs_filters(jobs_service):
    """Test listing by type and status, newest first."""
    raw = jobs_service.create_job(JobType.RAW)
    jobs_service.create_job(JobType.ENRICH)
    newest_raw = jobs_service.create_job(JobType.RAW)
    jobs_service.cancel(raw.id)

    raw_jobs = jobs_service.list_jobs(job_type=JobType.RAW)
    assert [j.id for j in raw_jobs] == [newest_raw.id, raw.id]

    pending = jobs_service.list_jobs(status=JobStatus.PENDING)
    assert len(pending) == 2
    assert all(j.status == JobStatus.PENDING for j in pending)

    assert len(jobs_service.list_jobs(limit=1)) == 1


def test_is_cancelled_unknown_job(jobs_service):
    """Test that a missing job counts as cancelled."""
    assert jobs_service.is_cancelled(uuid.uuid4())


POSTGRES_URL = os.environ.get("TEST_POSTGRES_URL")


@pytest.mark.skipif(not POSTGRES_URL, reason="Requires Postgres (set TEST_POSTGRES_URL)")
def test_concurrent_claims_postgres():
    """Test SKIP LOCKED claims from many threads against a real Postgres."""
    engine = create_engine(POSTGRES_URL, pool_size=10)
    Base.metadata.drop_all(engine)
    init_db(engine)
    service = JobsService(sessionmaker(bind=engine, expire_on_commit=False))

    try:
        created = {service.create_job(JobType.RAW).id for _ in range(5)}
        claimed, errors = run_claimers(service, 10)

        assert errors == []
        assert sorted(claimed) == sorted(created)
        assert all(service.get_job(job_id).attempts == 1 for job_id in created)
    finally:
        Base.metadata.drop_all(engine)
        engine.dispose()
