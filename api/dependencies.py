"""
API dependencies - API key authentication and service wiring
"""
from typing import Optional

from fastapi import Depends, Query, Request
from fastapi.exceptions import RequestValidationError
from fastapi.security import APIKeyHeader
from pydantic import ValidationError

from application.dtos.payments import PaymentQueryDTO
from application.services.payment_service import PaymentService
from core.config import settings
from core.exceptions import UnauthorizedException
from core.logging_config import get_logger
from domain.payment.entity import PaymentStatus


logger = get_logger(__name__)

api_key_header = APIKeyHeader(
    name="X-API-Key",
    scheme_name="ApiKey",
    description="Static API key, one of the configured API_KEYS",
    auto_error=False,
)


async def require_api_key(
    request: Request,
    api_key: Optional[str] = Depends(api_key_header),
) -> str:
    """Reject the request unless X-API-Key is one of the configured keys."""
    client_ip = request.client.host if request.client else "unknown"
    if not api_key:
        logger.warning(
            "api_key_missing",
            client_ip=client_ip,
            user_agent=request.headers.get("User-Agent"),
            path=request.url.path,
        )
        raise UnauthorizedException("API key is required")

    valid_keys = settings.api_keys
    if not valid_keys:
        logger.error("api_keys_not_configured")

    if api_key not in valid_keys:
        logger.warning(
            "api_key_invalid",
            client_ip=client_ip,
            key_prefix=api_key[:8] + "...",
            path=request.url.path,
        )
        raise UnauthorizedException("Invalid API key")

    return api_key


def get_payment_service(request: Request) -> PaymentService:
    return request.app.state.payment_service


def payment_query_params(
    page: int = Query(1, description="1-based page number"),
    limit: int = Query(settings.DEFAULT_PAGE_SIZE, description="Page size"),
    sort_by: str = Query("createdAt", alias="sortBy"),
    sort_order: str = Query("desc", alias="sortOrder", description="asc or desc"),
    customer_id: Optional[str] = Query(None, alias="customerId"),
    status: Optional[PaymentStatus] = Query(None),
) -> PaymentQueryDTO:
    """Collect listing query parameters into a validated PaymentQueryDTO."""
    try:
        return PaymentQueryDTO(
            page=page,
            limit=limit,
            sort_by=sort_by,
            sort_order=sort_order,
            customer_id=customer_id,
            status=status,
        )
    except ValidationError as exc:
        raise RequestValidationError(exc.errors(include_url=False, include_context=False))
