"""Persistence for supplier and catalog products.

Each method runs in its own short transaction so a stage can be cancelled
or crash between items without leaving a half-written batch behind.
"""

import logging
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional

from storefront_jobs.config import settings
from storefront_jobs.database import SessionLocal
from storefront_jobs.models.product import CatalogProduct, RawProduct, SupplierProduct
from storefront_jobs.services.normalizer import main_category_id

logger = logging.getLogger(__name__)


class CatalogStore:
    """Read and upsert products for the ingestion stages."""

    def __init__(self, session_factory=None):
        self.session_factory = session_factory or SessionLocal

    # Raw listing payloads
    def upsert_raw_product(self, payload: Dict[str, Any]) -> bool:
        """Store a listing payload. Returns False when the stored copy is identical."""
        db = self.session_factory()
        try:
            supplier_id = payload["id"]
            raw = db.query(RawProduct).filter(RawProduct.supplier_id == supplier_id).first()
            now = datetime.utcnow()

            if raw is None:
                db.add(RawProduct(supplier_id=supplier_id, payload=payload, synced_at=now))
            elif raw.payload == payload:
                return False
            else:
                raw.payload = payload
                raw.synced_at = now

            db.commit()
            return True
        finally:
            db.close()

    def raw_product_ids(self, category_id: Optional[int] = None) -> List[int]:
        db = self.session_factory()
        try:
            if category_id is None:
                rows = db.query(RawProduct.id).order_by(RawProduct.id).all()
                return [row.id for row in rows]

            rows = db.query(RawProduct.id, RawProduct.payload).order_by(RawProduct.id).all()
            return [row.id for row in rows if main_category_id(row.payload) == category_id]
        finally:
            db.close()

    def get_raw_product(self, raw_id: int) -> Optional[RawProduct]:
        db = self.session_factory()
        try:
            return db.query(RawProduct).filter(RawProduct.id == raw_id).first()
        finally:
            db.close()

    # Normalized supplier products
    def get_supplier_product(self, supplier_id: int) -> Optional[SupplierProduct]:
        db = self.session_factory()
        try:
            return db.query(SupplierProduct).filter(SupplierProduct.supplier_id == supplier_id).first()
        finally:
            db.close()

    def get_supplier_product_by_pk(self, product_pk: int) -> Optional[SupplierProduct]:
        db = self.session_factory()
        try:
            return db.query(SupplierProduct).filter(SupplierProduct.id == product_pk).first()
        finally:
            db.close()

    def upsert_supplier_product(self, fields: Dict[str, Any], raw_synced_at: datetime):
        """Insert or update normalized fields. Enrichment fields are left as they are."""
        db = self.session_factory()
        try:
            product = (
                db.query(SupplierProduct)
                .filter(SupplierProduct.supplier_id == fields["supplier_id"])
                .first()
            )
            if product is None:
                product = SupplierProduct()
                db.add(product)

            for key, value in fields.items():
                setattr(product, key, value)
            product.raw_synced_at = raw_synced_at
            db.commit()
        finally:
            db.close()

    def enrichment_candidates(self, limit: int, priority: str = "active", force: bool = False) -> List[int]:
        """
        Supplier products that still need detail data.

        Products whose last enrichment attempt is more recent than
        ENRICH_RETRY_AFTER and that still have no description are left out,
        as they most likely hit the supplier's rate limit.
        """
        db = self.session_factory()
        try:
            query = db.query(SupplierProduct)
            if priority == "active":
                query = query.filter(SupplierProduct.active.is_(True))
            if priority == "high_stock":
                query = query.order_by(SupplierProduct.stock.desc(), SupplierProduct.id)
            else:
                query = query.order_by(SupplierProduct.id)

            retry_cutoff = datetime.utcnow() - timedelta(seconds=settings.ENRICH_RETRY_AFTER)
            candidates = []
            for product in query.all():
                if not force and product.is_enriched:
                    continue
                if not product.description and product.last_synced_at and product.last_synced_at > retry_cutoff:
                    continue
                candidates.append(product.id)
                if len(candidates) >= limit:
                    break
            return candidates
        finally:
            db.close()

    def save_enrichment(self, product_pk: int, description: Optional[str], images: List[Dict[str, Any]]):
        db = self.session_factory()
        try:
            product = db.query(SupplierProduct).filter(SupplierProduct.id == product_pk).one()
            now = datetime.utcnow()
            product.description = description
            product.images = images
            product.description_synced_at = now
            product.last_synced_at = now
            db.commit()
        finally:
            db.close()

    def touch_supplier_product(self, product_pk: int):
        """Record an enrichment attempt so the product is not retried right away."""
        db = self.session_factory()
        try:
            db.query(SupplierProduct).filter(SupplierProduct.id == product_pk).update(
                {"last_synced_at": datetime.utcnow()}, synchronize_session=False
            )
            db.commit()
        finally:
            db.close()

    def publishable_ids(self, active_only: bool = True) -> List[int]:
        db = self.session_factory()
        try:
            query = db.query(SupplierProduct.id).filter(SupplierProduct.price > 0)
            if active_only:
                query = query.filter(SupplierProduct.active.is_(True))
            return [row.id for row in query.order_by(SupplierProduct.id).all()]
        finally:
            db.close()

    # Published catalog
    def get_catalog_product_for(self, supplier_product_pk: int) -> Optional[CatalogProduct]:
        db = self.session_factory()
        try:
            return (
                db.query(CatalogProduct)
                .filter(CatalogProduct.supplier_product_id == supplier_product_pk)
                .first()
            )
        finally:
            db.close()

    def get_catalog_product(self, catalog_pk: int) -> Optional[CatalogProduct]:
        db = self.session_factory()
        try:
            return db.query(CatalogProduct).filter(CatalogProduct.id == catalog_pk).first()
        finally:
            db.close()

    def upsert_catalog_product(self, supplier_product_pk: int, fields: Dict[str, Any]):
        db = self.session_factory()
        try:
            product = (
                db.query(CatalogProduct)
                .filter(CatalogProduct.supplier_product_id == supplier_product_pk)
                .first()
            )
            if product is None:
                product = CatalogProduct(supplier_product_id=supplier_product_pk)
                db.add(product)

            for key, value in fields.items():
                setattr(product, key, value)
            product.published_at = datetime.utcnow()
            db.commit()
        finally:
            db.close()

    def published_ids(self) -> List[int]:
        db = self.session_factory()
        try:
            return [row.id for row in db.query(CatalogProduct.id).order_by(CatalogProduct.id).all()]
        finally:
            db.close()

    def update_stock(self, catalog_pk: int, stock: int):
        """Write fresh stock to the catalog product and its supplier product."""
        db = self.session_factory()
        try:
            product = db.query(CatalogProduct).filter(CatalogProduct.id == catalog_pk).one()
            now = datetime.utcnow()
            product.stock = stock
            product.stock_synced_at = now
            db.query(SupplierProduct).filter(SupplierProduct.id == product.supplier_product_id).update(
                {"stock": stock}, synchronize_session=False
            )
            db.commit()
        finally:
            db.close()
