"""
Global Error Handling

This module defines application-wide exception handlers.

Design Goals
------------
- Never leak internal exception details to clients
- Map the known domain errors to stable status codes
- Log full stack traces internally for unexpected failures
"""

from __future__ import annotations

import logging
from typing import Dict, Any, Type

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

from ..chat.dispatcher import TurnInProgressError
from ..documents.store import DocumentNotFoundError, DocumentStoreError
from ..runtime.capabilities import CapabilityNotReadyError

logger = logging.getLogger("docchat.errors")


# error class -> (status code, machine-readable error name)
DOMAIN_ERRORS: Dict[Type[Exception], tuple[int, str]] = {
    CapabilityNotReadyError: (status.HTTP_503_SERVICE_UNAVAILABLE, "not_ready"),
    TurnInProgressError: (status.HTTP_409_CONFLICT, "turn_in_progress"),
    DocumentNotFoundError: (status.HTTP_404_NOT_FOUND, "document_not_found"),
    DocumentStoreError: (status.HTTP_500_INTERNAL_SERVER_ERROR, "storage_error"),
}


# ---------------------------------------------------------------------
# Public Exception Handlers
# ---------------------------------------------------------------------

async def domain_exception_handler(
    request: Request,
    exc: Exception,
) -> JSONResponse:
    """
    Translate a known domain error into its status code.

    The message of these errors is safe to show to the user.
    """
    status_code, error = DOMAIN_ERRORS.get(
        type(exc), (status.HTTP_400_BAD_REQUEST, "bad_request")
    )

    detail = exc.args[0] if exc.args else error
    logger.info(
        "%s %s -> %d (%s)",
        request.method,
        request.url.path,
        status_code,
        detail,
    )

    return JSONResponse(
        status_code=status_code,
        content={"error": error, "detail": str(detail)},
    )


async def unhandled_exception_handler(
    request: Request,
    exc: Exception,
) -> JSONResponse:
    """
    Catch-all handler for uncaught exceptions.

    Behavior
    --------
    - Logs the full exception stack trace for internal diagnostics.
    - Returns a generic 500 error to the client with no internal details.
    """

    # Log full traceback internally (never returned to client)
    logger.exception(
        "Unhandled exception during request: %s %s",
        request.method,
        request.url.path,
        exc_info=exc,
    )

    payload: Dict[str, Any] = {
        "error": "internal_server_error",
        "detail": "Internal server error",
    }

    return JSONResponse(
        status_code=500,
        content=payload,
    )


def register_exception_handlers(app: FastAPI) -> None:
    for error_cls in DOMAIN_ERRORS:
        app.add_exception_handler(error_cls, domain_exception_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)
