"""Pytest configuration and fixtures."""

import os

os.environ.setdefault("DATABASE_URL", "sqlite://")

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from storefront_jobs.database import init_db
from storefront_jobs.exceptions import SupplierError
from storefront_jobs.schemas.supplier import ProductPage
from storefront_jobs.services.catalog import CatalogStore
from storefront_jobs.services.jobs import JobsService


@pytest.fixture(scope="function")
def session_factory():
    """Create a test database for each test."""
    # In-memory SQLite shared by every session of the test
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    init_db(engine)

    yield sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)

    engine.dispose()


@pytest.fixture
def jobs_service(session_factory):
    return JobsService(session_factory)


@pytest.fixture
def catalog(session_factory):
    return CatalogStore(session_factory)


class FakeSupplier:
    """In-memory stand-in for SupplierClient."""

    def __init__(self, products=None, details=None):
        self.products = products or []
        self.details = details or {}
        self.failures = {}  # supplier_id -> exceptions raised on the next calls, in order
        self.broken = {}  # supplier_id -> exception raised on every call
        self.listing_calls = []
        self.detail_calls = []

    def list_products(self, page_size, start, category_id):
        self.listing_calls.append(start)
        return ProductPage(count=len(self.products), objects=self.products[start : start + page_size])

    def get_product_detail(self, supplier_id):
        self.detail_calls.append(supplier_id)
        if self.failures.get(supplier_id):
            raise self.failures[supplier_id].pop(0)
        if supplier_id in self.broken:
            raise self.broken[supplier_id]
        if supplier_id not in self.details:
            raise SupplierError(f"Empty detail for product {supplier_id}")
        return self.details[supplier_id]


@pytest.fixture
def supplier():
    return FakeSupplier()


@pytest.fixture
def sleeps():
    """Recorded sleep calls; executors never really sleep in tests."""
    return []


def make_payload(supplier_id, **overrides):
    payload = {
        "id": supplier_id,
        "name": f"Product {supplier_id}",
        "type": "SIMPLE",
        "sku": f"SKU{supplier_id}",
        "sale_price": "25000.00",
        "suggested_price": "40000",
        "categories": [{"id": 1, "name": "Hogar"}],
        "gallery": [{"id": 1, "urlS3": f"products/{supplier_id}/main.jpg", "main": True}],
        "inventory": {"warehouses": [{"id": 1, "stock": 5}, {"id": 2, "stock": "7"}]},
    }
    payload.update(overrides)
    return payload


def make_detail(supplier_id, stock=12, description="Great product"):
    return {
        "id": supplier_id,
        "type": "SIMPLE",
        "description": description,
        "photos": [{"id": 10, "url": f"https://cdn.example.com/{supplier_id}.jpg", "main": True}],
        "warehouse_product": [{"id": 1, "stock": stock}],
    }
