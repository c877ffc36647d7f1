"""
Response envelope shared by the public endpoints and every error handler:
{code, message, data, error}.
"""
from datetime import datetime, timezone
from typing import Any, Optional

from pydantic import BaseModel, Field, field_serializer

from shared.codes import BusinessCode


class ErrorDetail(BaseModel):
    type: str
    details: Optional[dict] = None
    field: Optional[str] = None
    request_id: Optional[str] = None
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    @field_serializer("timestamp")
    def _utc_z(self, ts: datetime) -> str:
        return ts.astimezone(timezone.utc).isoformat().replace("+00:00", "Z")


class Response(BaseModel):
    code: int
    message: str
    data: Any = None
    error: Optional[ErrorDetail] = None


def success_response(data: Any = None, message: str = "Success") -> Response:
    return Response(code=BusinessCode.SUCCESS, message=message, data=data)


def error_response(
    code: int,
    message: str,
    error_type: str = "BusinessError",
    details: Optional[dict] = None,
    field: Optional[str] = None,
    request_id: Optional[str] = None,
) -> Response:
    """Envelope for a failed request; `data` is always null."""
    return Response(
        code=code,
        message=message,
        error=ErrorDetail(type=error_type, details=details, field=field, request_id=request_id),
    )
