"""Base stage executor with batching, rate limiting, retries and cancellation."""

import logging
import time
from typing import Any, Callable, Sequence
from uuid import UUID

import httpx
from tenacity import Retrying, retry_if_exception_type, stop_after_attempt, wait_exponential

from storefront_jobs.config import settings
from storefront_jobs.exceptions import JobCancelledError, JobNotFoundError, SupplierTransientError
from storefront_jobs.models.job import JobType
from storefront_jobs.schemas.stages import ExecutionOutcome, StageConfig, parse_job_config

logger = logging.getLogger(__name__)


class BaseExecutor:
    """
    Base class for all stage executors.

    Subclasses either implement select_items/process_item and let the default
    _run walk the items in batches, or override _run for work that is not a
    flat list of items (paginated fetches).
    """

    job_type: JobType = None
    transient_errors = (SupplierTransientError, httpx.TransportError)

    def __init__(self, jobs_service, supplier=None, catalog=None, sleep: Callable[[float], None] = time.sleep):
        """Initialize executor with its collaborators."""
        self.jobs = jobs_service
        self.supplier = supplier
        self.catalog = catalog
        self.sleep = sleep
        self.max_retries = settings.ITEM_MAX_RETRIES
        self.retry_base_delay = settings.ITEM_RETRY_BASE_DELAY

    @property
    def name(self) -> str:
        return self.__class__.__name__

    def run(self, job_id: UUID) -> ExecutionOutcome:
        """
        Execute the stage for a claimed job.

        Args:
            job_id: Id of a job in RUNNING state

        Returns:
            ExecutionOutcome; cancelled is set when the job left RUNNING mid-run

        Raises:
            Exception: Any fatal stage error, recorded by the worker loop
        """
        outcome = ExecutionOutcome()

        job = self.jobs.get_job(job_id)
        if job is None:
            raise JobNotFoundError(job_id)
        config = parse_job_config(self.job_type, job.params)

        try:
            self.ensure_running(job_id)
            self._run(job_id, config, outcome)
        except JobCancelledError:
            outcome.cancelled = True
            logger.info(f"{self.name} stopped: job {job_id} was cancelled ({outcome.summary()})")
            return outcome

        logger.info(f"{self.name} finished job {job_id}: {outcome.summary()}")
        return outcome

    def _run(self, job_id: UUID, config: StageConfig, outcome: ExecutionOutcome):
        item_ids = self.select_items(config)
        logger.info(f"{self.name}: {len(item_ids)} items to process")
        self.process_in_batches(job_id, item_ids, config, outcome)

    def select_items(self, config: StageConfig) -> Sequence[Any]:
        raise NotImplementedError

    def process_item(self, item: Any, config: StageConfig) -> bool:
        """
        Process one item (to be implemented by subclasses).

        Must re-check its own precondition so re-running over finished items
        writes nothing.

        Returns:
            True if something was written, False if the item was skipped
        """
        raise NotImplementedError

    def ensure_running(self, job_id: UUID):
        if self.jobs.is_cancelled(job_id):
            raise JobCancelledError(job_id)

    def process_in_batches(
        self,
        job_id: UUID,
        items: Sequence[Any],
        config: StageConfig,
        outcome: ExecutionOutcome,
    ):
        """Walk items in batches, checking cancellation and pausing between batches."""
        total = len(items)
        batch_size = config.batch_size

        for start in range(0, total, batch_size):
            self.ensure_running(job_id)

            batch = items[start : start + batch_size]
            for item in batch:
                self.handle_item(outcome, item, self.process_item, item, config)

            done = start + len(batch)
            self.report_progress(job_id, done, total)
            logger.info(
                f"{self.name} batch {start // batch_size + 1}/{-(-total // batch_size)}: "
                f"{outcome.summary()}, {total - done} remaining"
            )

            if config.rate_limit_delay and done < total:
                logger.info(f"{self.name} waiting {config.rate_limit_delay}s before the next batch")
                self.sleep(config.rate_limit_delay)

    def handle_item(self, outcome: ExecutionOutcome, key: Any, func: Callable[..., bool], *args):
        """Run one item with retries. A failed item is recorded, never raised."""
        try:
            written = self.call_with_retry(func, *args)
        except Exception as e:
            outcome.record_error(key, e)
            logger.warning(f"{self.name} item {key} failed: {e}")
            return

        if written:
            outcome.processed += 1
        else:
            outcome.skipped += 1

    def call_with_retry(self, func: Callable[..., Any], *args) -> Any:
        """Retry transient errors with exponential backoff (2s, 4s, ... by default)."""
        retrying = Retrying(
            stop=stop_after_attempt(self.max_retries),
            wait=wait_exponential(multiplier=self.retry_base_delay),
            retry=retry_if_exception_type(self.transient_errors),
            sleep=self.sleep,
            before_sleep=self._log_retry,
            reraise=True,
        )
        return retrying(func, *args)

    def _log_retry(self, retry_state):
        logger.warning(
            f"{self.name} attempt {retry_state.attempt_number}/{self.max_retries} failed: "
            f"{retry_state.outcome.exception()}, retrying in {retry_state.next_action.sleep}s"
        )

    def report_progress(self, job_id: UUID, done: int, total: int):
        percent = round(done / total * 100) if total > 0 else 100
        self.jobs.update_progress(job_id, percent)
