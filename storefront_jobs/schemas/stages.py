"""Stage executor configuration and outcome schemas."""

from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

from storefront_jobs.config import settings
from storefront_jobs.models.job import JobType

MAX_ERROR_DETAILS = 10


class StageConfig(BaseModel):
    """Options shared by every stage."""

    model_config = ConfigDict(extra="forbid")

    batch_size: int = Field(default_factory=lambda: settings.BATCH_SIZE, ge=1)
    rate_limit_delay: float = Field(0.0, ge=0)  # Seconds slept between batches


# RAW
class RawFetchConfig(StageConfig):
    """Supplier listing pagination window."""

    start_page: int = Field(0, ge=0)
    max_pages: Optional[int] = Field(None, ge=1)
    page_size: int = Field(default_factory=lambda: settings.SUPPLIER_PAGE_SIZE, ge=1)
    category_id: int = Field(default_factory=lambda: settings.SUPPLIER_CATEGORY_ID)


# NORMALIZE
class NormalizeConfig(StageConfig):
    category_id: Optional[int] = None


# ENRICH
class EnrichConfig(StageConfig):
    """Detail fetch for products missing description or images."""

    batch_size: int = Field(default_factory=lambda: settings.RATE_LIMIT_BATCH, ge=1)
    rate_limit_delay: float = Field(default_factory=lambda: settings.RATE_LIMIT_DELAY, ge=0)
    limit: int = Field(default_factory=lambda: settings.ENRICH_LIMIT, ge=1)
    priority: Literal["active", "high_stock", "all"] = "active"
    force: bool = False


# PUBLISH
class PublishConfig(StageConfig):
    active_only: bool = True


# STOCK_REFRESH
class StockRefreshConfig(StageConfig):
    batch_size: int = Field(default_factory=lambda: settings.RATE_LIMIT_BATCH, ge=1)
    rate_limit_delay: float = Field(default_factory=lambda: settings.RATE_LIMIT_DELAY, ge=0)


JOB_CONFIGS = {
    JobType.RAW: RawFetchConfig,
    JobType.NORMALIZE: NormalizeConfig,
    JobType.ENRICH: EnrichConfig,
    JobType.PUBLISH: PublishConfig,
    JobType.STOCK_REFRESH: StockRefreshConfig,
}


def parse_job_config(job_type: JobType, params: Optional[Dict[str, Any]]) -> StageConfig:
    """Validate job params against the config model of its type."""
    return JOB_CONFIGS[job_type].model_validate(params or {})


class ItemError(BaseModel):
    item: str
    error: str


class ExecutionOutcome(BaseModel):
    """Counts reported by a stage run. Logged and stored, never branched on."""

    processed: int = 0
    skipped: int = 0
    errored: int = 0
    cancelled: bool = False
    error_details: List[ItemError] = []

    def record_error(self, item: Any, error: Exception):
        self.errored += 1
        if len(self.error_details) < MAX_ERROR_DETAILS:
            self.error_details.append(ItemError(item=str(item), error=str(error) or error.__class__.__name__))

    def summary(self) -> str:
        return f"{self.processed} processed, {self.skipped} skipped, {self.errored} errored"
