import logging
import time
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request

logger = logging.getLogger(__name__)

class TimingMiddleware(BaseHTTPMiddleware):
    """Adds X-Latency-Ms and logs requests slower than slow_ms."""

    def __init__(self, app, slow_ms: int = 1000):
        super().__init__(app)
        self.slow_ms = slow_ms

    async def dispatch(self, request: Request, call_next):
        start = time.perf_counter()
        response = await call_next(request)
        latency_ms = int((time.perf_counter() - start) * 1000)
        response.headers["X-Latency-Ms"] = str(latency_ms)
        if latency_ms >= self.slow_ms:
            logger.warning(f"Slow request {request.method} {request.url.path}: {latency_ms} ms")
        return response
