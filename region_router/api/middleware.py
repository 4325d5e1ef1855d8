"""FastAPI middleware for request logging."""

import time
import uuid
from typing import Callable

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

from region_router.geo.ip import get_client_ip
from region_router.logging import (
    log_api_request,
    set_request_context,
    clear_request_context,
)


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Middleware to log all API requests with timing and context."""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        request_id = str(uuid.uuid4())[:8]
        client_ip = get_client_ip(
            request.headers, request.client.host if request.client else None
        )

        set_request_context(request_id=request_id, client_ip=client_ip)
        start_time = time.perf_counter()

        try:
            response = await call_next(request)

            log_api_request(
                method=request.method,
                path=request.url.path,
                status_code=response.status_code,
                duration_ms=(time.perf_counter() - start_time) * 1000,
                user_agent=request.headers.get("User-Agent"),
            )

            response.headers["X-Request-ID"] = request_id
            return response

        except Exception as e:
            log_api_request(
                method=request.method,
                path=request.url.path,
                status_code=500,
                duration_ms=(time.perf_counter() - start_time) * 1000,
                user_agent=request.headers.get("User-Agent"),
                error=str(e),
            )
            raise

        finally:
            clear_request_context()
