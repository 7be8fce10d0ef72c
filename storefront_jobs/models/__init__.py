"""SQLAlchemy ORM models."""

from storefront_jobs.models.job import Job, JobStatus, JobType
from storefront_jobs.models.product import CatalogProduct, RawProduct, SupplierProduct

__all__ = [
    "Job",
    "JobStatus",
    "JobType",
    "RawProduct",
    "SupplierProduct",
    "CatalogProduct",
]
