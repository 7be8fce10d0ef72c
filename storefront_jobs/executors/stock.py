"""STOCK_REFRESH executor: re-read stock of published products from the supplier."""

from storefront_jobs.executors.base import BaseExecutor
from storefront_jobs.models.job import JobType
from storefront_jobs.services.normalizer import total_stock


class StockRefreshExecutor(BaseExecutor):
    job_type = JobType.STOCK_REFRESH

    def select_items(self, config):
        return self.catalog.published_ids()

    def process_item(self, catalog_pk, config):
        product = self.catalog.get_catalog_product(catalog_pk)
        if product is None:
            return False

        supplier_product = self.catalog.get_supplier_product_by_pk(product.supplier_product_id)
        if supplier_product is None:
            return False

        detail = self.supplier.get_product_detail(supplier_product.supplier_id)
        stock = total_stock(detail)
        if stock == product.stock:
            return False

        self.catalog.update_stock(catalog_pk, stock)
        return True
