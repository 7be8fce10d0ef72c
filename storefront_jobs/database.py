"""Database engine and session factory."""

from sqlalchemy import create_engine
from sqlalchemy.orm import declarative_base, sessionmaker

from storefront_jobs.config import settings

engine = create_engine(settings.DATABASE_URL, pool_pre_ping=True)

# Jobs and products are handed across session boundaries (worker -> executor)
SessionLocal = sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)
Base = declarative_base()


def init_db(bind=None):
    """Create tables that are missing. Production schemas come from Alembic."""
    import storefront_jobs.models  # noqa: F401

    Base.metadata.create_all(bind=bind or engine)
