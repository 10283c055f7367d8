# backend/marketplace/middleware/request_id.py
"""
Request id middleware.

Takes ``X-Request-ID`` from the caller (or generates one), exposes it to log
records and error bodies for the lifetime of the request, and echoes it on the
response.
"""

import logging
import time
from typing import Callable
import uuid

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

from ..core.config import settings
from ..core.request_context import reset_request_id, set_request_id

logger = logging.getLogger(__name__)

REQUEST_ID_HEADER = "X-Request-ID"


class RequestIdMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        request_id = request.headers.get(REQUEST_ID_HEADER) or str(uuid.uuid4())
        request.state.request_id = request_id
        token = set_request_id(request_id)
        start_time = time.perf_counter()
        try:
            response = await call_next(request)
        finally:
            reset_request_id(token)

        elapsed = time.perf_counter() - start_time
        response.headers[REQUEST_ID_HEADER] = request_id
        response.headers["X-Response-Time-MS"] = str(int(elapsed * 1000))
        if elapsed > settings.slow_operation_seconds:
            logger.warning(
                "Slow request: %s %s took %.2fs [%s]",
                request.method,
                request.url.path,
                elapsed,
                request_id,
            )
        return response
