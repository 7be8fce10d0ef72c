"""NORMALIZE executor (pure code, no supplier calls)."""

from storefront_jobs.executors.base import BaseExecutor
from storefront_jobs.models.job import JobType
from storefront_jobs.services.normalizer import normalize_product


class NormalizeExecutor(BaseExecutor):
    """Map stored raw payloads onto supplier products."""

    job_type = JobType.NORMALIZE

    def select_items(self, config):
        return self.catalog.raw_product_ids(category_id=config.category_id)

    def process_item(self, raw_id, config):
        raw = self.catalog.get_raw_product(raw_id)
        if raw is None:
            return False

        existing = self.catalog.get_supplier_product(raw.supplier_id)
        if existing is not None and existing.raw_synced_at == raw.synced_at:
            return False

        self.catalog.upsert_supplier_product(normalize_product(raw.payload), raw_synced_at=raw.synced_at)
        return True
