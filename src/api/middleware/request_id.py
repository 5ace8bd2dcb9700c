"""
Request correlation middleware.

Every request gets an X-Request-ID (taken from the client when supplied) that
is echoed back and attached to each log line through the logging context.
"""

import time
import uuid
from typing import Callable

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

from src.logging_config import get_logger, principal_id_var, request_id_var

logger = get_logger(__name__)

REQUEST_ID_HEADER = "X-Request-ID"
SLOW_REQUEST_MS = 1000


class RequestIdMiddleware(BaseHTTPMiddleware):
    """Binds a request id (and a blank principal) to the logging context."""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        request_id = request.headers.get(REQUEST_ID_HEADER) or str(uuid.uuid4())
        request.state.request_id = request_id

        rid_token = request_id_var.set(request_id)
        pid_token = principal_id_var.set(None)
        start = time.perf_counter()
        try:
            response = await call_next(request)
            response.headers[REQUEST_ID_HEADER] = request_id

            duration_ms = (time.perf_counter() - start) * 1000
            log = logger.warning if duration_ms > SLOW_REQUEST_MS else logger.debug
            log(
                "Request handled",
                extra={
                    "path": request.url.path,
                    "method": request.method,
                    "status_code": response.status_code,
                    "duration_ms": round(duration_ms, 1),
                },
            )
            return response
        finally:
            principal_id_var.reset(pid_token)
            request_id_var.reset(rid_token)
