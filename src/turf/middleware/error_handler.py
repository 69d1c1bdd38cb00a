"""Exception handlers that keep every error response in one JSON shape.

Bodies always carry ``detail``; engine errors add ``error`` and ``retryable``.
"""

import structlog
from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from turf.errors import TurfError

logger = structlog.get_logger()


async def _turf_error(_request: Request, exc: TurfError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error("request_failed", error=exc.code, detail=exc.message, status=exc.status_code)
    else:
        logger.info("request_rejected", error=exc.code, detail=exc.message, status=exc.status_code)
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


async def _http_error(_request: Request, exc: StarletteHTTPException) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.detail},
        headers=getattr(exc, "headers", None),
    )


async def _validation_error(_request: Request, exc: RequestValidationError) -> JSONResponse:
    return JSONResponse(
        status_code=422,
        content={
            "detail": "Validation error",
            "error": "invalid_input",
            "retryable": False,
            "errors": jsonable_encoder(exc.errors()),
        },
    )


async def _unhandled(_request: Request, exc: Exception) -> JSONResponse:
    # Internal details stay in the log, never in the response.
    logger.error("unhandled_exception", error=repr(exc), exc_info=exc)
    return JSONResponse(status_code=500, content={"detail": "Internal server error"})


def setup_error_handlers(app: FastAPI) -> None:
    """Register the handlers on ``app``."""
    app.add_exception_handler(TurfError, _turf_error)  # type: ignore[arg-type]
    app.add_exception_handler(StarletteHTTPException, _http_error)  # type: ignore[arg-type]
    app.add_exception_handler(RequestValidationError, _validation_error)  # type: ignore[arg-type]
    app.add_exception_handler(Exception, _unhandled)
