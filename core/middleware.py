from fastapi.middleware.cors import CORSMiddleware
from fastapi.exceptions import RequestValidationError
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse
from fastapi import FastAPI, Request

from core.errors import ConfigurationError, ExtractionCancelled, FirstPageFailure
from core.logging import get_logger
from core.settings import now_iso, settings
from schemas.common import error_response, ApiStatus

log = get_logger("http_api")

# Non-standard "client closed request", used when the caller cancels
CLIENT_CLOSED_REQUEST = 499


def _error(status_code: int, message: str, status: ApiStatus, error_code: str, data=None) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=error_response(
            message=message,
            status=status,
            error_code=error_code,
            data=data,
            timestamp=now_iso(),
        )
    )


def setup_middleware(app: FastAPI):
    """Setup CORS and map extraction errors to response envelopes"""

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        log.warning("request_validation_failed", path=request.url.path, errors=len(exc.errors()))
        return _error(
            422,
            "Request validation failed",
            ApiStatus.VALIDATION_ERROR,
            "VALIDATION_ERROR",
            {"errors": jsonable_encoder(exc.errors())},
        )

    @app.exception_handler(ConfigurationError)
    async def configuration_exception_handler(request: Request, exc: ConfigurationError):
        log.warning("extraction_misconfigured", path=request.url.path, error=str(exc), field=exc.field)
        return _error(400, str(exc), ApiStatus.CONFIGURATION_ERROR, "CONFIGURATION_ERROR", {"field": exc.field})

    @app.exception_handler(FirstPageFailure)
    async def first_page_exception_handler(request: Request, exc: FirstPageFailure):
        status = ApiStatus.RATE_LIMITED if exc.status_code == 429 else ApiStatus.UPSTREAM_ERROR
        return _error(
            502,
            "API extraction failed",
            status,
            "FIRST_PAGE_FAILURE",
            {"details": str(exc), **exc.to_dict()},
        )

    @app.exception_handler(ExtractionCancelled)
    async def cancelled_exception_handler(request: Request, exc: ExtractionCancelled):
        return _error(CLIENT_CLOSED_REQUEST, str(exc), ApiStatus.CANCELLED, "CANCELLED")

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
