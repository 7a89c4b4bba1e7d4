"""
FastAPI exception handlers that map taxonomy errors to HTTP responses.

How to use:
    - Call `register_exception_handlers(app)` from the app factory (see `user_registry.main`).
    - Services and repositories raise `user_registry.exceptions.base.*` errors
      (NotFoundError, UsernameConflictError, ...).
    - These handlers produce stable JSON payloads (via .to_payload()) and the status
      code that belongs to the error kind (via .http_status()).

| Error                                    | Status | Log level |
| ---------------------------------------- | ------ | --------- |
| NotFoundError                            | 404    | INFO      |
| UsernameConflictError / EmailConflictError | 409  | INFO      |
| InvalidInputError, request validation    | 400    | INFO      |
| StorageError                             | 500    | ERROR     |
| anything else                            | 500    | ERROR     |
"""

from fastapi import Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
import logging
from user_registry.exceptions.base import (
    DomainError,
    ErrorKind,
    StorageError,
)

logger = logging.getLogger(__name__)


async def domain_error_handler(request: Request, exc: DomainError) -> JSONResponse:
    """
    Any taxonomy error. Payload: exc.to_payload() -> {"detail": "...", "code": "...", "fields": [...]}
    """
    status_code = exc.http_status()
    extra = {
        "method": request.method,
        "path": request.url.path,
        "code": exc.kind.value,
        "fields": exc.fields,
        "status_code": status_code,
    }

    if isinstance(exc, StorageError):
        # constraint name and cause go to the logs, never to the client
        logger.error(
            "api.storage_error",
            extra={**extra, "constraint": exc.constraint},
            exc_info=exc.__cause__ or exc,
        )
    else:
        logger.info("api.domain_error", extra=extra)

    return JSONResponse(status_code=status_code, content=exc.to_payload())


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """
    400 for bodies that fail schema validation.

    Payload:
        {"detail": "Validation failed", "code": "invalid_input", "errors": {"<field>": "<message>"}}
    """
    errors: dict[str, str] = {}
    for error in exc.errors():
        # loc is e.g. ("body", "email"); the first element names the request part
        loc = [str(part) for part in error.get("loc", ())[1:]] or ["body"]
        errors.setdefault(".".join(loc), error.get("msg", "Invalid value"))

    logger.info(
        "api.validation_error",
        extra={"method": request.method, "path": request.url.path, "fields": sorted(errors)},
    )
    return JSONResponse(
        status_code=400,
        content={"detail": "Validation failed", "code": ErrorKind.INVALID_INPUT.value, "errors": errors},
    )


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    """
    Last resort: 500 with a generic payload. Details are logged only.
    """
    logger.exception("api.unhandled_error", extra={"method": request.method, "path": request.url.path})
    return JSONResponse(status_code=500, content=StorageError("Internal server error").to_payload())


# Helper to register all handlers on an app (call this from your app factory)
def register_exception_handlers(app):
    app.add_exception_handler(DomainError, domain_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)
