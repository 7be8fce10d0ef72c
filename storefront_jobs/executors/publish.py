"""PUBLISH executor: upsert supplier products into the storefront catalog."""

from storefront_jobs.executors.base import BaseExecutor
from storefront_jobs.models.job import JobType
from storefront_jobs.services.normalizer import generate_handle, image_url


def catalog_fields(product):
    """Storefront fields derived from a supplier product."""
    images = []
    for image in product.images or []:
        url = image_url(image.get("url") or image.get("urlS3"))
        if url and url not in images:
            images.append(url)
    if not images:
        main = image_url(product.main_image_path)
        if main:
            images.append(main)

    return {
        "handle": generate_handle(product.name, product.supplier_id),
        "title": product.name,
        "description": product.description,
        "price": product.price,
        "stock": product.stock,
        "thumbnail": images[0] if images else None,
        "images": images or None,
    }


class PublishExecutor(BaseExecutor):
    """Publish priced supplier products; unchanged ones are skipped."""

    job_type = JobType.PUBLISH

    def select_items(self, config):
        return self.catalog.publishable_ids(active_only=config.active_only)

    def process_item(self, product_pk, config):
        product = self.catalog.get_supplier_product_by_pk(product_pk)
        if product is None:
            return False

        fields = catalog_fields(product)
        published = self.catalog.get_catalog_product_for(product_pk)
        if published is not None and all(getattr(published, key) == value for key, value in fields.items()):
            return False

        self.catalog.upsert_catalog_product(product_pk, fields)
        return True
