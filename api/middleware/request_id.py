"""
Request id middleware: every log line of a request carries the same
request_id, and the response echoes it back in X-Request-ID.
"""
import uuid

import structlog
from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware


class RequestIDMiddleware(BaseHTTPMiddleware):
    HEADER_NAME = "X-Request-ID"

    async def dispatch(self, request: Request, call_next):
        request_id = request.headers.get(self.HEADER_NAME) or str(uuid.uuid4())
        # read back by the exception handlers for the error envelope
        request.state.request_id = request_id

        structlog.contextvars.clear_contextvars()
        structlog.contextvars.bind_contextvars(
            request_id=request_id,
            client_ip=request.client.host if request.client else "unknown",
        )

        response = await call_next(request)
        response.headers[self.HEADER_NAME] = request_id
        return response
