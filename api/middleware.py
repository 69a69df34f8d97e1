"""
Request context middleware
"""

import time
import uuid
import logging
from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import Response

logger = logging.getLogger(__name__)


class RequestContextMiddleware(BaseHTTPMiddleware):
    """
    Tags every request with an id and logs its latency.
    
    Response headers:
    - X-Request-ID
    - X-API-Latency-ms
    """

    async def dispatch(self, request: Request, call_next):
        request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())
        request.state.request_id = request_id
        started = time.perf_counter()

        response: Response = await call_next(request)

        latency_ms = int((time.perf_counter() - started) * 1000)
        response.headers["X-Request-ID"] = request_id
        response.headers["X-API-Latency-ms"] = str(latency_ms)

        logger.info(
            f"{request.method} {request.url.path} -> {response.status_code} ({latency_ms} ms)",
            extra={"event": "request_completed", "request_id": request_id}
        )
        return response
