"""ENRICH executor: fetch description and photos from the product detail endpoint."""

import logging

from storefront_jobs.exceptions import SupplierRateLimitError
from storefront_jobs.executors.base import BaseExecutor
from storefront_jobs.models.job import JobType
from storefront_jobs.services.normalizer import extract_images

logger = logging.getLogger(__name__)


class EnrichExecutor(BaseExecutor):
    """Enrich supplier products in rate-limited batches."""

    job_type = JobType.ENRICH

    def select_items(self, config):
        return self.catalog.enrichment_candidates(config.limit, priority=config.priority, force=config.force)

    def process_item(self, product_pk, config):
        # Re-read: a previous run may have enriched it already
        product = self.catalog.get_supplier_product_by_pk(product_pk)
        if product is None or (product.is_enriched and not config.force):
            return False

        try:
            detail = self.supplier.get_product_detail(product.supplier_id)
        except SupplierRateLimitError:
            self.catalog.touch_supplier_product(product_pk)
            raise

        self.catalog.save_enrichment(product_pk, detail.get("description") or None, extract_images(detail))
        return True
