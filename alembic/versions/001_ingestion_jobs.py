"""Ingestion jobs and supplier catalog tables

Revision ID: 001
Revises:
Create Date: 2025-01-01 00:00:00.000000

"""
from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op

# revision identifiers, used by Alembic.
revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

JOB_TYPES = ("RAW", "NORMALIZE", "ENRICH", "PUBLISH", "STOCK_REFRESH")
JOB_STATUSES = ("PENDING", "RUNNING", "DONE", "FAILED")


def upgrade() -> None:
    # Create ingestion_jobs table
    op.create_table(
        "ingestion_jobs",
        sa.Column("id", sa.Uuid, primary_key=True),
        sa.Column("type", sa.Enum(*JOB_TYPES, name="ingestion_job_type"), nullable=False),
        sa.Column("status", sa.Enum(*JOB_STATUSES, name="ingestion_job_status"), nullable=False),
        sa.Column("progress", sa.Integer, nullable=False, server_default="0"),
        sa.Column("attempts", sa.Integer, nullable=False, server_default="0"),
        sa.Column("params", sa.JSON),
        sa.Column("result", sa.JSON),
        sa.Column("error", sa.Text),
        sa.Column("locked_by", sa.Text),
        sa.Column("locked_at", sa.DateTime),
        sa.Column("started_at", sa.DateTime),
        sa.Column("finished_at", sa.DateTime),
        sa.Column("created_at", sa.DateTime, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime, server_default=sa.func.now()),
    )
    # Claim scans filter on (type, status)
    op.create_index("idx_ingestion_jobs_type_status", "ingestion_jobs", ["type", "status"])
    op.create_index("idx_ingestion_jobs_created_at", "ingestion_jobs", ["created_at"])

    # Create supplier_raw_products table
    op.create_table(
        "supplier_raw_products",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("supplier_id", sa.Integer, nullable=False, unique=True),
        sa.Column("payload", sa.JSON, nullable=False),
        sa.Column("synced_at", sa.DateTime, nullable=False),
        sa.Column("created_at", sa.DateTime, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime, server_default=sa.func.now()),
    )

    # Create supplier_products table
    op.create_table(
        "supplier_products",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("supplier_id", sa.Integer, nullable=False, unique=True),
        sa.Column("name", sa.Text, nullable=False),
        sa.Column("product_type", sa.Text, nullable=False),
        sa.Column("sku", sa.Text, nullable=False),
        sa.Column("price", sa.Integer, nullable=False, server_default="0"),
        sa.Column("suggested_price", sa.Integer),
        sa.Column("stock", sa.Integer, nullable=False, server_default="0"),
        sa.Column("active", sa.Boolean, nullable=False, server_default=sa.true()),
        sa.Column("category_id", sa.Integer),
        sa.Column("category_ids", sa.JSON),
        sa.Column("main_image_path", sa.Text),
        sa.Column("warehouses", sa.JSON),
        sa.Column("variations", sa.JSON),
        sa.Column("raw_synced_at", sa.DateTime),
        sa.Column("description", sa.Text),
        sa.Column("images", sa.JSON),
        sa.Column("description_synced_at", sa.DateTime),
        sa.Column("last_synced_at", sa.DateTime),
        sa.Column("created_at", sa.DateTime, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime, server_default=sa.func.now()),
    )
    op.create_index("idx_supplier_products_category", "supplier_products", ["category_id"])

    # Create catalog_products table
    op.create_table(
        "catalog_products",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column(
            "supplier_product_id",
            sa.Integer,
            sa.ForeignKey("supplier_products.id", ondelete="CASCADE"),
            nullable=False,
            unique=True,
        ),
        sa.Column("handle", sa.Text, nullable=False, unique=True),
        sa.Column("title", sa.Text, nullable=False),
        sa.Column("description", sa.Text),
        sa.Column("price", sa.Integer, nullable=False),
        sa.Column("stock", sa.Integer, nullable=False, server_default="0"),
        sa.Column("thumbnail", sa.Text),
        sa.Column("images", sa.JSON),
        sa.Column("published_at", sa.DateTime),
        sa.Column("stock_synced_at", sa.DateTime),
        sa.Column("updated_at", sa.DateTime, server_default=sa.func.now()),
    )


def downgrade() -> None:
    op.drop_table("catalog_products")
    op.drop_table("supplier_products")
    op.drop_table("supplier_raw_products")
    op.drop_table("ingestion_jobs")
    sa.Enum(name="ingestion_job_status").drop(op.get_bind(), checkfirst=True)
    sa.Enum(name="ingestion_job_type").drop(op.get_bind(), checkfirst=True)
