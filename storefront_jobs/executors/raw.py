"""RAW executor: page through the supplier listing and store payloads as received."""

import logging
import math
from typing import Any, Dict, List

from storefront_jobs.executors.base import BaseExecutor
from storefront_jobs.models.job import JobType

logger = logging.getLogger(__name__)


class RawFetchExecutor(BaseExecutor):
    """Fetch listing pages; each page is one batch."""

    job_type = JobType.RAW

    def _run(self, job_id, config, outcome):
        start = config.start_page * config.page_size

        # Without the first page there is no total to work against
        first_page = self.call_with_retry(self.supplier.list_products, config.page_size, start, config.category_id)
        total = first_page.count
        pages_total = max(1, math.ceil((total - start) / config.page_size))
        if config.max_pages is not None:
            pages_total = min(pages_total, config.max_pages)
        logger.info(f"Supplier lists {total} products, fetching {pages_total} pages from offset {start}")

        self._store_page(first_page.objects, outcome)
        pages_done = 1
        self.report_progress(job_id, pages_done, pages_total)
        start += config.page_size

        while start < total and pages_done < pages_total:
            if config.rate_limit_delay:
                self.sleep(config.rate_limit_delay)
            self.ensure_running(job_id)

            try:
                page = self.call_with_retry(self.supplier.list_products, config.page_size, start, config.category_id)
            except Exception as e:
                outcome.record_error(f"page@{start}", e)
                logger.warning(f"Listing page at offset {start} failed: {e}")
            else:
                if not page.objects:
                    logger.info(f"No products at offset {start}, stopping")
                    break
                self._store_page(page.objects, outcome)

            pages_done += 1
            start += config.page_size
            self.report_progress(job_id, pages_done, pages_total)

        logger.info(f"RAW fetch stored pages {config.start_page}..{config.start_page + pages_done - 1}")

    def _store_page(self, products: List[Dict[str, Any]], outcome):
        for product in products:
            self.handle_item(outcome, product.get("id"), self.catalog.upsert_raw_product, product)
