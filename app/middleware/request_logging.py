# app/middleware/request_logging.py
# One structured line per API request; 4xx/5xx as warnings. Query text is not logged here.

import logging
import time
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request

logger = logging.getLogger("employee_search.request")


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    def __init__(self, app, path_prefix: str = "/api"):
        super().__init__(app)
        self.path_prefix = path_prefix

    async def dispatch(self, request: Request, call_next):
        start = time.perf_counter()
        response = await call_next(request)
        path = request.url.path
        if not path.startswith(self.path_prefix):
            return response

        status = response.status_code
        extra = {
            "status": status,
            "path": path,
            "method": request.method,
            "latency_ms": round((time.perf_counter() - start) * 1000, 2),
        }
        if status >= 400:
            logger.warning("4xx_5xx_response", extra=extra)
        else:
            logger.info("request_completed", extra=extra)
        return response
