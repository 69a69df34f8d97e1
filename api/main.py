"""
FastAPI application initialization
"""

from fastapi import FastAPI
import uvicorn
from api.routes import health, bases, snapshots
from api.middleware import RequestContextMiddleware
from core.config import settings
from core.logging import setup_logging
import logging

setup_logging()

logger = logging.getLogger(__name__)

app = FastAPI(
    title="Airtable Snapshot API",
    description="Turns an Airtable base into a self-contained SQLite snapshot",
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc"
)

app.add_middleware(RequestContextMiddleware)

app.include_router(health.router)
app.include_router(bases.router)
app.include_router(snapshots.router)


@app.on_event("startup")
async def startup_event():
    """Application startup event"""
    logger.info("Starting Airtable Snapshot API")
    logger.info(f"Environment: {settings.ENVIRONMENT}")
    logger.info(f"Airtable API: {settings.AIRTABLE_API_BASE_URL}")


@app.get("/")
async def root():
    """Root endpoint"""
    return {
        "message": "Airtable Snapshot API",
        "version": "1.0.0",
        "docs": "/docs",
        "health": "/health",
        "endpoints": {
            "list_bases": "/api/list-bases",
            "generate_snapshot": "/api/generate-snapshot"
        }
    }


def main():
    uvicorn.run("api.main:app", host=settings.API_HOST, port=settings.API_PORT)


if __name__ == "__main__":
    main()
