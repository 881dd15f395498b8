"""Request correlation middleware.

Every request gets an X-Request-ID (the caller's, or a fresh UUID) that is
bound to the logging context for its duration and echoed on the response.
"""

import time
from typing import Callable

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

from .logging_config import get_logger
from .request_id import generate_request_id, request_id_var, set_request_id

REQUEST_ID_HEADER = "X-Request-ID"

logger = get_logger(__name__)


def _elapsed_ms(started: float) -> float:
    return round((time.perf_counter() - started) * 1000, 2)


class RequestIDMiddleware(BaseHTTPMiddleware):
    """Bind a request id and log one line per finished request."""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        request_id = request.headers.get(REQUEST_ID_HEADER) or generate_request_id()
        token = set_request_id(request_id)
        route = {"method": request.method, "path": request.url.path}
        started = time.perf_counter()

        try:
            response = await call_next(request)
        except Exception:
            logger.exception(
                "%s %s failed", request.method, request.url.path,
                extra={**route, "duration_ms": _elapsed_ms(started)},
            )
            raise
        else:
            logger.info(
                "%s %s -> %s", request.method, request.url.path, response.status_code,
                extra={**route, "status_code": response.status_code, "duration_ms": _elapsed_ms(started)},
            )
            response.headers[REQUEST_ID_HEADER] = request_id
            return response
        finally:
            request_id_var.reset(token)
