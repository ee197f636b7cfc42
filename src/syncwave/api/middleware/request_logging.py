"""Request correlation and timing middleware.

Every request gets an id (taken from ``X-Request-ID`` or generated) that is
bound to all log records emitted while handling it and echoed back in the
response. Requests slower than the threshold are logged as warnings.

For streaming responses the measured time covers the handler only, not the
transfer of the body.
"""

import time
import uuid
from typing import Callable

from fastapi import Request, Response
from loguru import logger
from starlette.middleware.base import BaseHTTPMiddleware


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Binds a request id to the log context and logs request timing.

    Attributes:
        slow_request_threshold: Seconds after which a request is logged as slow.
    """

    def __init__(self, app, slow_request_threshold: float = 1.0):
        super().__init__(app)
        self.slow_request_threshold = slow_request_threshold

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        request_id = request.headers.get("X-Request-ID") or uuid.uuid4().hex[:8]
        with logger.contextualize(request_id=request_id):
            start_time = time.perf_counter()
            response = await call_next(request)
            duration = time.perf_counter() - start_time
            duration_ms = round(duration * 1000, 2)

            if duration > self.slow_request_threshold:
                logger.warning(
                    f"SLOW REQUEST: {request.method} {request.url.path} "
                    f"took {duration_ms}ms (threshold: {self.slow_request_threshold * 1000}ms)"
                )
            else:
                logger.debug(
                    f"{request.method} {request.url.path} - "
                    f"{duration_ms}ms - {response.status_code}"
                )

            response.headers["X-Request-ID"] = request_id
            response.headers["X-Process-Time"] = str(duration)
            return response
