"""Run one worker loop per job type in the same process.

Usage:
    python -m storefront_jobs.supervisor
"""

import logging
import signal
import sys
import threading
from typing import Callable, Iterable, List, Optional

from storefront_jobs.executors import build_executor
from storefront_jobs.models.job import JobType
from storefront_jobs.services.catalog import CatalogStore
from storefront_jobs.services.jobs import JobsService
from storefront_jobs.services.supplier_client import SupplierClient
from storefront_jobs.worker import Worker, wait_for_database

logger = logging.getLogger(__name__)


class Supervisor:
    """Keeps the worker loops running concurrently.

    A crashed loop is a bug in the scheduling code, not a job failure, so it
    stops every loop. Job failures never reach this level.
    """

    def __init__(
        self,
        job_types: Optional[Iterable[JobType]] = None,
        jobs_service: Optional[JobsService] = None,
        executor_factory: Optional[Callable] = None,
        poll_interval: Optional[float] = None,
    ):
        self.jobs = jobs_service or JobsService()
        self.stop_event = threading.Event()
        self.fatal_error: Optional[BaseException] = None
        self.threads: List[threading.Thread] = []
        self.supplier: Optional[SupplierClient] = None

        if executor_factory is None:
            self.supplier = supplier = SupplierClient()
            catalog = CatalogStore(self.jobs.session_factory)

            def executor_factory(job_type):
                return build_executor(job_type, self.jobs, supplier=supplier, catalog=catalog)

        self.workers = [
            Worker(job_type, executor_factory(job_type), self.jobs, poll_interval=poll_interval)
            for job_type in (job_types or list(JobType))
        ]

    def start(self):
        """Start every worker loop in its own thread."""
        logger.info(f"Starting {len(self.workers)} worker loops (1 per job type)")
        for worker in self.workers:
            thread = threading.Thread(target=self._run_worker, args=(worker,), name=worker.worker_id, daemon=True)
            thread.start()
            self.threads.append(thread)

    def _run_worker(self, worker: Worker):
        try:
            worker.run(self.stop_event)
        except Exception as e:
            logger.critical(f"Worker loop {worker.worker_id} crashed: {e}", exc_info=True)
            self.fatal_error = e
            self.stop_event.set()

    def request_shutdown(self, signum=None, frame=None):
        if signum is not None:
            logger.warning(f"Received {signal.Signals(signum).name}, finishing in-flight jobs...")
        self.stop_event.set()

    def wait(self, timeout: Optional[float] = None) -> bool:
        """Block until every loop has exited. Returns False if one of them crashed."""
        for thread in self.threads:
            thread.join(timeout)
        return self.fatal_error is None

    def stop(self, timeout: Optional[float] = None) -> bool:
        self.stop_event.set()
        clean = self.wait(timeout)
        self.close()
        return clean

    def close(self):
        """Release the shared supplier connection pool once the loops are done."""
        if self.supplier is None:
            return
        if any(thread.is_alive() for thread in self.threads):
            logger.warning("Worker loops still running, leaving the supplier client open")
            return
        self.supplier.close()
        self.supplier = None

    def run_forever(self) -> int:
        """Run until a shutdown signal or a crashed loop. Returns the exit status."""
        signal.signal(signal.SIGINT, self.request_shutdown)
        signal.signal(signal.SIGTERM, self.request_shutdown)

        self.start()
        # Short joins keep the main thread responsive to signals
        while any(thread.is_alive() for thread in self.threads):
            self.wait(timeout=1.0)
        self.close()

        if self.fatal_error is not None:
            logger.critical("Stopping all workers after a fatal loop error")
            return 1
        logger.info("All workers stopped")
        return 0


def main():
    """Entry point for the standalone worker process."""
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    if not wait_for_database():
        sys.exit(1)

    supervisor = Supervisor()
    sys.exit(supervisor.run_forever())


if __name__ == "__main__":
    main()
