"""Errors raised by the job engine and its external collaborators."""


class JobError(Exception):
    """Base class for job repository errors."""


class JobNotFoundError(JobError):
    def __init__(self, job_id):
        super().__init__(f"Job {job_id} not found")
        self.job_id = job_id


class JobAlreadyFinishedError(JobError):
    """Raised when cancelling a job that is already DONE or FAILED."""

    def __init__(self, job_id, status):
        if status.value == "DONE":
            message = f"Job {job_id} is already completed"
        else:
            message = f"Job {job_id} is already marked as failed"
        super().__init__(message)
        self.job_id = job_id
        self.status = status


class JobCancelledError(JobError):
    """Raised inside an executor when its job left RUNNING mid-run."""

    def __init__(self, job_id):
        super().__init__(f"Job {job_id} was cancelled")
        self.job_id = job_id


class SupplierError(Exception):
    """The supplier API rejected a request or returned an unusable body."""

    def __init__(self, message, status_code=None):
        super().__init__(message)
        self.status_code = status_code


class SupplierTransientError(SupplierError):
    """Timeouts and 5xx responses; safe to retry."""


class SupplierRateLimitError(SupplierError):
    """HTTP 429. Retrying right away only burns more quota."""
