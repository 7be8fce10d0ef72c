"""FastAPI application entry point."""

import logging

from fastapi import FastAPI

from storefront_jobs.config import settings
from storefront_jobs.routes import jobs

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)

logger = logging.getLogger(__name__)

# Create FastAPI app
app = FastAPI(
    title="Storefront Jobs",
    description="Supplier catalog ingestion jobs",
    version="0.1.0",
)

app.include_router(jobs.router)

# Worker loops hosted by the web process (optional)
supervisor = None


@app.on_event("startup")
def startup_event():
    """Start the worker loops in background threads when enabled."""
    global supervisor
    if not settings.RUN_WORKERS_IN_APP:
        logger.info("RUN_WORKERS_IN_APP is off, run storefront-workers separately")
        return

    from storefront_jobs.supervisor import Supervisor

    supervisor = Supervisor()
    supervisor.start()
    logger.info("Background worker loops started")


@app.on_event("shutdown")
def shutdown_event():
    """Let in-flight jobs finish, then stop the worker loops."""
    if supervisor is not None:
        logger.info("Stopping background worker loops...")
        supervisor.stop(timeout=10)


@app.get("/health")
def health():
    """Health check endpoint."""
    return {"status": "healthy"}
