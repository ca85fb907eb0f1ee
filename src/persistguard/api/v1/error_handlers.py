# persistguard/api/v1/error_handlers.py
"""
FastAPI exception handlers that map normalized persistence errors to HTTP responses.

How to use:
    - Call register_exception_handlers(app) from the app factory.
    - Guarded sessions raise persistguard.exceptions.base.* exceptions (DuplicateEntryError, PersistenceError).
    - These handlers produce stable JSON payloads (via .to_payload()) and HTTP codes (via .http_status()).
"""

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
import logging
from persistguard.exceptions.base import DuplicateEntryError, PersistenceError

logger = logging.getLogger(__name__)


# Most specific first. Mapping is centralized in the exception classes.

async def duplicate_entry_handler(request: Request, exc: DuplicateEntryError) -> JSONResponse:
    """
    409 Conflict for duplicates.
    Payload: {"detail": "Entry already exists", "code": "duplicate"}
    """
    # Expected client-level scenario: INFO, no raw DB message.
    logger.info(
        "api.duplicate_entry",
        extra={"method": request.method, "path": request.url.path, "original_type": type(exc.original).__name__},
    )
    return JSONResponse(status_code=exc.http_status(), content=exc.to_payload())


async def persistence_error_handler(request: Request, exc: PersistenceError) -> JSONResponse:
    """
    Fallback for every other persistence failure -> 500.
    """
    logger.warning(
        "api.persistence_error",
        extra={"method": request.method, "path": request.url.path, "original_type": type(exc.original).__name__},
    )
    return JSONResponse(status_code=exc.http_status(), content=exc.to_payload())


# Helper to register all handlers on an app (call this from your app factory)
def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(DuplicateEntryError, duplicate_entry_handler)
    app.add_exception_handler(PersistenceError, persistence_error_handler)
