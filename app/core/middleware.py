"""
HTTP middleware: correlation ids and request logging.
"""
import logging
import time
import uuid

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request

from app.core.config import settings
from app.core.logging import request_id_var

logger = logging.getLogger("app.http")


class CorrelationIdMiddleware(BaseHTTPMiddleware):
    """Propagates X-Request-ID into request.state, the logging context and the response."""

    async def dispatch(self, request: Request, call_next):
        request_id = request.headers.get(settings.request_id_header) or str(uuid.uuid4())
        request.state.correlation_id = request_id
        token = request_id_var.set(request_id)
        try:
            response = await call_next(request)
        finally:
            request_id_var.reset(token)
        response.headers[settings.request_id_header] = request_id
        return response


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """HTTP request/response logging middleware"""

    def __init__(self, app, excluded_paths=None):
        super().__init__(app)
        # Health checks and docs are polled constantly; time them but skip the log
        self.excluded_paths = set(excluded_paths or {
            "/health",
            "/liveness",
            "/readiness",
            "/docs",
            "/openapi.json",
        })

    async def dispatch(self, request: Request, call_next):
        if request.url.path not in self.excluded_paths:
            self._log_request(request)

        start_time = time.perf_counter()
        response = await call_next(request)
        process_time = time.perf_counter() - start_time
        response.headers["X-Process-Time"] = f"{process_time:.4f}"

        if request.url.path not in self.excluded_paths:
            self._log_response(request, response.status_code, process_time)
        return response

    def _log_request(self, request: Request) -> None:
        request_data = {
            "correlation_id": getattr(request.state, "correlation_id", None),
            "method": request.method,
            "path": request.url.path,
            "client_ip": request.client.host if request.client else None,
            "user_agent": request.headers.get("user-agent"),
        }
        logger.debug(f"{request.method} {request.url.path}", extra=request_data)

    def _log_response(self, request: Request, status_code: int, process_time: float) -> None:
        response_data = {
            "correlation_id": getattr(request.state, "correlation_id", None),
            "method": request.method,
            "path": request.url.path,
            "query_params": dict(request.query_params),
            "user_id": request.headers.get(settings.user_id_header),
            "status_code": status_code,
            "duration_ms": round(process_time * 1000, 2),
        }
        message = f"{request.method} {request.url.path} -> {status_code}"

        # Log level follows the status class
        if status_code >= 500:
            logger.error(message, extra=response_data)
        elif status_code >= 400:
            logger.warning(message, extra=response_data)
        else:
            logger.info(message, extra=response_data)
