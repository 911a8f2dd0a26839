"""
Error taxonomy and the FastAPI exception handlers that translate it to HTTP.

    ValidationError  → 400, client-caused, not logged as a server fault
    AnalysisError    → 500, logged with traceback, detail only if exposed
    StoreError       → 500, generic message
    anything else    → 500, generic message, nothing internal leaked
"""

from __future__ import annotations

import logging

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.responses import Response

logger = logging.getLogger(__name__)


class ToxGuardError(Exception):
    """Base class for errors raised by the service layer."""


class ValidationError(ToxGuardError):
    """Submitted input is malformed or too short."""


class AnalysisError(ToxGuardError):
    """Model load, inference or persistence failed during an analysis."""


class StoreError(ToxGuardError):
    """Reading from the persistence engine failed."""


def _internal_error(exc: Exception) -> JSONResponse:
    logger.error("Server Error: %s", exc, exc_info=(type(exc), exc, exc.__traceback__))
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"error": "Internal server error"},
    )


class UnhandledErrorMiddleware(BaseHTTPMiddleware):
    """
    Turns unexpected route errors into the generic 500 inside the middleware
    stack, so outer layers (CORS) still decorate the response. Starlette's own
    Exception handler runs outside every user middleware.
    """

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        try:
            return await call_next(request)
        except Exception as exc:
            return _internal_error(exc)


def register_exception_handlers(app: FastAPI, *, expose_details: bool = False) -> None:
    """
    Attach handlers for the error taxonomy to ``app``.

    ``expose_details`` controls whether the underlying cause of an
    AnalysisError is echoed to the client. It is passed in explicitly so the
    handlers never consult the environment themselves.
    """

    async def handle_validation(request: Request, exc: ValidationError) -> JSONResponse:
        logger.info("Rejected %s %s: %s", request.method, request.url.path, exc)
        return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content={"error": str(exc)})

    async def handle_request_validation(request: Request, exc: RequestValidationError) -> JSONResponse:
        logger.info("Malformed body on %s %s", request.method, request.url.path)
        details = [
            {"loc": list(err.get("loc", ())), "msg": err.get("msg", "")}
            for err in exc.errors()
        ]
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={"error": "Invalid request body", "details": details},
        )

    async def handle_analysis(request: Request, exc: AnalysisError) -> JSONResponse:
        cause = exc.__cause__ or exc
        logger.error("Analysis Error: %s", cause, exc_info=(type(cause), cause, cause.__traceback__))
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={
                "error": "Analysis failed",
                "details": str(cause) if expose_details else None,
            },
        )

    async def handle_store(request: Request, exc: StoreError) -> JSONResponse:
        cause = exc.__cause__ or exc
        logger.error("Store Error: %s", cause, exc_info=(type(cause), cause, cause.__traceback__))
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"error": "Failed to fetch history"},
        )

    async def handle_unexpected(request: Request, exc: Exception) -> JSONResponse:
        return _internal_error(exc)

    app.add_exception_handler(ValidationError, handle_validation)
    app.add_exception_handler(RequestValidationError, handle_request_validation)
    app.add_exception_handler(AnalysisError, handle_analysis)
    app.add_exception_handler(StoreError, handle_store)
    app.add_exception_handler(Exception, handle_unexpected)
