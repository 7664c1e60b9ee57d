from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
import logging

from domain.errors import (
    AlreadyInProgress,
    ExtractionFailed,
    InvalidTransition,
    NotFound,
    PermanentFailure,
    ScreeningError,
    TransientFailure,
    Unauthorized,
    UnsupportedFormat,
    ValidationError,
)

logger = logging.getLogger(__name__)

STATUS_CODES = {
    ValidationError: 400,
    Unauthorized: 401,
    NotFound: 404,
    AlreadyInProgress: 409,
    InvalidTransition: 409,
    UnsupportedFormat: 422,
    ExtractionFailed: 422,
    PermanentFailure: 502,
    TransientFailure: 503,
}


def status_for(exc: ScreeningError) -> int:
    for cls in type(exc).__mro__:
        if cls in STATUS_CODES:
            return STATUS_CODES[cls]
    return 500


def attach_error_handlers(app: FastAPI) -> None:
    @app.exception_handler(ScreeningError)
    async def _screening_error(request: Request, exc: ScreeningError):
        status = status_for(exc)
        if status >= 500:
            logger.warning(f"{request.method} {request.url.path} -> {status}: {exc}")
        return JSONResponse(status_code=status, content={"detail": exc.message or str(exc),
                                                         "error": type(exc).__name__})

    @app.exception_handler(Exception)
    async def _unhandled(request: Request, exc: Exception):
        logger.exception("Unhandled: %s", exc)
        return JSONResponse(status_code=500, content={"detail": "Internal Server Error"})
