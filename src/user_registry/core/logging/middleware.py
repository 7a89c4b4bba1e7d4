"""
Request ID + access log middleware for FastAPI / Starlette.

For each incoming HTTP request this middleware:
1. Takes the `X-Request-ID` header when it is a safe token (letters, digits,
   `.`, `_`, `-`, at most 128 chars); otherwise generates a UUID4. Unsafe values
   are replaced rather than trusted so they cannot inject newlines into logs.
2. Stores it with `set_request_id(rid)` so every log line produced while the
   request is handled carries it (see `RequestIdFilter`).
3. Returns it to the client in the `X-Request-ID` response header.
4. Writes one access log line ("http.request") with method, path, status_code,
   duration_ms and client_ip:

   | status       | level   |
   | ------------ | ------- |
   | < 400        | INFO    |
   | 400 - 499    | WARNING |
   | >= 500       | ERROR   |

Register it early so routers and exception handlers run inside it:
    app.add_middleware(RequestIDMiddleware)
"""

import logging
import re
import time
import uuid
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from .filters import set_request_id, reset_request_id

logger = logging.getLogger(__name__)

REQUEST_ID_HEADER = "X-Request-ID"
_SAFE_REQUEST_ID = re.compile(r"[A-Za-z0-9._\-]{1,128}")


def resolve_request_id(incoming: str | None) -> str:
    if incoming and _SAFE_REQUEST_ID.fullmatch(incoming):
        return incoming
    return str(uuid.uuid4())


def access_log_level(status_code: int) -> int:
    if status_code >= 500:
        return logging.ERROR
    if status_code >= 400:
        return logging.WARNING
    return logging.INFO


class RequestIDMiddleware(BaseHTTPMiddleware):
    """
    Starlette / FastAPI middleware that sets a request id and logs each request.
    """

    async def dispatch(self, request: Request, call_next):
        """
        Dispatch a request.

        Args:
            request: Starlette Request object.
            call_next: function that executes the next handler in the chain and returns a Response.

        Returns:
            Response: The response from downstream application, with X-Request-ID header set.
        """
        rid = resolve_request_id(request.headers.get(REQUEST_ID_HEADER))
        token = set_request_id(rid)
        start = time.perf_counter()
        status_code = 500

        try:
            # Exceptions that escape every handler propagate to the server after being logged below.
            response = await call_next(request)
            status_code = response.status_code
            response.headers[REQUEST_ID_HEADER] = rid
            return response
        finally:
            logger.log(
                access_log_level(status_code),
                "http.request",
                extra={
                    "method": request.method,
                    "path": request.url.path,
                    "status_code": status_code,
                    "duration_ms": round((time.perf_counter() - start) * 1000, 2),
                    "client_ip": request.client.host if request.client else None,
                },
            )
            reset_request_id(token)
