"""
Request/response logging middleware with timing
"""
import json
import time
from typing import Any

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.types import ASGIApp

from core.config import settings
from core.logging_config import get_logger


logger = get_logger(__name__)


class LoggingMiddleware(BaseHTTPMiddleware):
    """
    Logs every request and its response status with the elapsed time.

    Request bodies are logged only in DEBUG, truncated to
    LOG_REQUEST_BODY_MAX_BYTES and with sensitive keys masked.
    """

    SKIP_PATHS = {"/health", "/docs", "/redoc", "/openapi.json"}

    SENSITIVE_FIELDS = {"password", "token", "secret", "api_key", "apikey", "x-api-key", "authorization"}

    def __init__(self, app: ASGIApp):
        super().__init__(app)
        self.max_body_log_bytes: int = settings.LOG_REQUEST_BODY_MAX_BYTES

    async def dispatch(self, request: Request, call_next):
        if request.url.path in self.SKIP_PATHS:
            return await call_next(request)

        start_time = time.time()
        request_info = await self._get_request_info(request)

        logger.info("request_started", **request_info)

        try:
            response = await call_next(request)
        except Exception as exc:
            duration = time.time() - start_time
            logger.error(
                "request_failed",
                duration=duration,
                error=str(exc),
                error_type=type(exc).__name__,
                **request_info,
                exc_info=True
            )
            raise

        duration = time.time() - start_time
        self._log_response(response, duration, request_info)
        response.headers["X-Process-Time"] = f"{duration:.3f}"
        return response

    async def _get_request_info(self, request: Request) -> dict:
        info = {
            "method": request.method,
            "path": request.url.path,
            "query_params": dict(request.query_params),
            "headers": self._sanitize_data(dict(request.headers)),
        }

        if request.method in ("POST", "PUT", "PATCH") and settings.DEBUG:
            body = await self._extract_body(request)
            if body is not None:
                info["body"] = body

        return info

    async def _extract_body(self, request: Request) -> Any:
        body = await request.body()
        if not body:
            return None
        snippet = body[: self.max_body_log_bytes].decode("utf-8", errors="ignore")
        if "application/json" in request.headers.get("content-type", "").lower():
            try:
                return self._sanitize_data(json.loads(snippet))
            except ValueError:
                return snippet
        return snippet

    def _sanitize_data(self, data: Any) -> Any:
        if isinstance(data, dict):
            return {
                k: ("***" if str(k).lower() in self.SENSITIVE_FIELDS else self._sanitize_data(v))
                for k, v in data.items()
            }
        if isinstance(data, list):
            return [self._sanitize_data(v) for v in data]
        return data

    def _log_response(self, response: Response, duration: float, request_info: dict):
        status_code = response.status_code
        log_data = {
            "status_code": status_code,
            "duration": duration,
            "method": request_info["method"],
            "path": request_info["path"],
        }
        if status_code < 400:
            logger.info("request_completed", **log_data)
        elif status_code < 500:
            logger.warning("request_client_error", **log_data)
        else:
            logger.error("request_server_error", **log_data)
