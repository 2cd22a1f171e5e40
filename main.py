"""
API Extraction Service

FastAPI server that pulls data from arbitrary remote HTTP APIs:
authentication, pagination, format decoding, field mapping, and a
bounded text rendering of the aggregated records.

Usage:
    uvicorn main:app --host 0.0.0.0 --port 8001

Environment Variables:
    EXTRACTION_API_TOKEN - Optional bearer token required by /v1/extract/*
    LOG_LEVEL / LOG_FORMAT - Logging configuration
"""

from contextlib import asynccontextmanager
from fastapi import FastAPI
from pydantic import BaseModel

from api.v1 import extraction
from core.correlation_middleware import CorrelationMiddleware
from core.logging import setup_logging, get_logger
from core.middleware import setup_middleware
from core.settings import now_iso, settings


@asynccontextmanager
async def lifespan(app: FastAPI):
    setup_logging(
        log_level=settings.log_level,
        json_format=settings.log_format == "json",
        service_name=settings.service_name,
    )
    log = get_logger()
    log.info(
        "service_starting",
        service=settings.service_name,
        api_token_required=settings.extraction_api_token is not None,
    )

    yield

    log.info("service_stopped")


app = FastAPI(
    title="API Extraction Service",
    description="Configuration-driven extraction from remote HTTP APIs",
    version="1.0.0",
    lifespan=lifespan,
)

app.add_middleware(CorrelationMiddleware)
setup_middleware(app)

app.include_router(extraction.router, prefix="/v1")


class HealthResponse(BaseModel):
    status: str
    timestamp: str


@app.get("/health", response_model=HealthResponse)
async def health_check():
    """Health check endpoint (no auth required)."""
    return HealthResponse(status="healthy", timestamp=now_iso())


@app.get("/ping")
async def ping():
    return {"message": "Pong!"}


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=8001)
