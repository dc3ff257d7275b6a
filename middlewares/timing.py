import logging
import time

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request

logger = logging.getLogger("gradebook.request")


class TimingMiddleware(BaseHTTPMiddleware):
    """응답 헤더에 X-Latency-Ms를 붙이고, 필요하면 요청 한 줄 로그를 남깁니다."""

    def __init__(self, app, log_requests: bool = True):
        super().__init__(app)
        self.log_requests = log_requests

    async def dispatch(self, request: Request, call_next):
        start = time.perf_counter()
        response = await call_next(request)
        latency_ms = int((time.perf_counter() - start) * 1000)
        response.headers["X-Latency-Ms"] = str(latency_ms)
        if self.log_requests:
            logger.info("%s %s -> %s (%dms)", request.method, request.url.path, response.status_code, latency_ms)
        return response
