# =============================================================================
# FastAPI Main Application
# =============================================================================
# Entry point for the ingest API: upload triggers and job status polling.
# =============================================================================

from fastapi import FastAPI

from app import __version__
from app.routers import health, ingest

# Application instance
app = FastAPI(
    title="File Ingest API",
    description="Trigger ingestion of uploaded CSV/Excel files and poll job status.",
    version=__version__,
)

# Include routers
app.include_router(health.router)
app.include_router(ingest.router)
