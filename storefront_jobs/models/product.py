"""Supplier and catalog product models written by the stage executors."""

from datetime import datetime

from sqlalchemy import JSON, Boolean, Column, DateTime, ForeignKey, Index, Integer, Text

from storefront_jobs.database import Base


class RawProduct(Base):
    """Supplier listing payload stored as received."""

    __tablename__ = "supplier_raw_products"

    id = Column(Integer, primary_key=True, autoincrement=True)
    supplier_id = Column(Integer, nullable=False, unique=True)
    payload = Column(JSON, nullable=False)
    synced_at = Column(DateTime, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)


class SupplierProduct(Base):
    """Normalized supplier product, enriched with detail data."""

    __tablename__ = "supplier_products"

    id = Column(Integer, primary_key=True, autoincrement=True)
    supplier_id = Column(Integer, nullable=False, unique=True)
    name = Column(Text, nullable=False)
    product_type = Column(Text, nullable=False)  # 'SIMPLE' or 'VARIABLE'
    sku = Column(Text, nullable=False)
    price = Column(Integer, nullable=False, default=0)
    suggested_price = Column(Integer)
    stock = Column(Integer, nullable=False, default=0)
    active = Column(Boolean, nullable=False, default=True)
    category_id = Column(Integer)
    category_ids = Column(JSON)
    main_image_path = Column(Text)
    warehouses = Column(JSON)
    variations = Column(JSON)
    raw_synced_at = Column(DateTime)  # synced_at of the raw row this was built from

    # Enrichment
    description = Column(Text)
    images = Column(JSON)
    description_synced_at = Column(DateTime)
    last_synced_at = Column(DateTime)

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    __table_args__ = (Index("idx_supplier_products_category", "category_id"),)

    @property
    def is_enriched(self):
        has_description = bool(self.description) and self.description_synced_at is not None
        has_images = isinstance(self.images, list) and len(self.images) > 0
        return has_description and has_images


class CatalogProduct(Base):
    """Storefront product published from a supplier product."""

    __tablename__ = "catalog_products"

    id = Column(Integer, primary_key=True, autoincrement=True)
    supplier_product_id = Column(
        Integer, ForeignKey("supplier_products.id", ondelete="CASCADE"), nullable=False, unique=True
    )
    handle = Column(Text, nullable=False, unique=True)
    title = Column(Text, nullable=False)
    description = Column(Text)
    price = Column(Integer, nullable=False)
    stock = Column(Integer, nullable=False, default=0)
    thumbnail = Column(Text)
    images = Column(JSON)
    published_at = Column(DateTime)
    stock_synced_at = Column(DateTime)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)
