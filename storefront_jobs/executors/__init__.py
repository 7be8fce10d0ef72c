"""Stage executors, one per job type."""

from storefront_jobs.executors.base import BaseExecutor
from storefront_jobs.executors.enrich import EnrichExecutor
from storefront_jobs.executors.normalize import NormalizeExecutor
from storefront_jobs.executors.publish import PublishExecutor
from storefront_jobs.executors.raw import RawFetchExecutor
from storefront_jobs.executors.stock import StockRefreshExecutor
from storefront_jobs.models.job import JobType

EXECUTORS = {
    JobType.RAW: RawFetchExecutor,
    JobType.NORMALIZE: NormalizeExecutor,
    JobType.ENRICH: EnrichExecutor,
    JobType.PUBLISH: PublishExecutor,
    JobType.STOCK_REFRESH: StockRefreshExecutor,
}


def build_executor(job_type: JobType, jobs_service, supplier=None, catalog=None) -> BaseExecutor:
    """Instantiate the executor bound to a job type."""
    executor_class = EXECUTORS.get(job_type)
    if not executor_class:
        raise ValueError(f"No executor for job type: {job_type}")
    return executor_class(jobs_service, supplier=supplier, catalog=catalog)


__all__ = [
    "BaseExecutor",
    "EXECUTORS",
    "build_executor",
    "RawFetchExecutor",
    "NormalizeExecutor",
    "EnrichExecutor",
    "PublishExecutor",
    "StockRefreshExecutor",
]
