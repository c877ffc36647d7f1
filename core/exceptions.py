"""
Custom exceptions and global exception handlers
"""
from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
import traceback
import uuid
from starlette import status as http_status
from starlette.exceptions import HTTPException as StarletteHTTPException

from .response import error_response
from shared.codes import BusinessCode
from core.logging_config import get_logger
from domain.common.exceptions import BusinessException


class UnauthorizedException(BusinessException):
    """Missing or unknown API key"""

    def __init__(self, message: str = "Unauthorized"):
        super().__init__(
            code=BusinessCode.UNAUTHORIZED,
            message=message,
            error_type="Unauthorized",
        )


def _request_id(request: Request) -> str:
    return getattr(getattr(request, "state", object()), "request_id", None) or str(uuid.uuid4())


def business_code_to_http_status(code: int) -> int:
    """Map a business code to an HTTP status (400 by default)."""
    mapping = {
        BusinessCode.PARAM_ERROR: http_status.HTTP_400_BAD_REQUEST,
        BusinessCode.PARAM_MISSING: http_status.HTTP_400_BAD_REQUEST,
        BusinessCode.PARAM_TYPE_ERROR: http_status.HTTP_400_BAD_REQUEST,
        BusinessCode.PARAM_VALIDATION_ERROR: http_status.HTTP_400_BAD_REQUEST,

        BusinessCode.BUSINESS_ERROR: http_status.HTTP_400_BAD_REQUEST,
        BusinessCode.NOT_FOUND: http_status.HTTP_404_NOT_FOUND,
        BusinessCode.PAYMENT_NOT_FOUND: http_status.HTTP_404_NOT_FOUND,
        BusinessCode.INVALID_PAYMENT_STATUS: http_status.HTTP_400_BAD_REQUEST,
        BusinessCode.PAYMENT_PROCESSING_ERROR: http_status.HTTP_400_BAD_REQUEST,

        BusinessCode.PERMISSION_ERROR: http_status.HTTP_403_FORBIDDEN,
        BusinessCode.UNAUTHORIZED: http_status.HTTP_401_UNAUTHORIZED,
        BusinessCode.FORBIDDEN: http_status.HTTP_403_FORBIDDEN,

        BusinessCode.SYSTEM_ERROR: http_status.HTTP_500_INTERNAL_SERVER_ERROR,
        BusinessCode.STORAGE_ERROR: http_status.HTTP_500_INTERNAL_SERVER_ERROR,
        BusinessCode.SERVICE_UNAVAILABLE: http_status.HTTP_503_SERVICE_UNAVAILABLE,
    }
    try:
        return mapping.get(BusinessCode(code), http_status.HTTP_400_BAD_REQUEST)
    except ValueError:
        return http_status.HTTP_400_BAD_REQUEST


def register_exception_handlers(app: FastAPI):
    """
    Register global exception handlers

    Args:
        app: FastAPI application
    """

    logger = get_logger(__name__)

    @app.exception_handler(BusinessException)
    async def business_exception_handler(request: Request, exc: BusinessException):
        """Business errors"""
        response = error_response(
            code=exc.code,
            message=exc.message,
            error_type=exc.error_type,
            details=exc.details,
            field=exc.field,
            request_id=_request_id(request),
        )
        status_code = business_code_to_http_status(exc.code)
        headers = {"WWW-Authenticate": "ApiKey"} if status_code == http_status.HTTP_401_UNAUTHORIZED else None
        return JSONResponse(status_code=status_code, content=response.model_dump(mode='json'), headers=headers)

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        """Malformed requests are a client error (400)"""
        errors = jsonable_encoder(exc.errors())

        first_error = errors[0] if errors else {}
        field = ".".join(str(loc) for loc in first_error.get("loc", [])[1:])

        response = error_response(
            code=BusinessCode.PARAM_VALIDATION_ERROR,
            message=f"Validation failed: {first_error.get('msg', 'unknown')}",
            error_type="ValidationError",
            details={"errors": errors},
            field=field or None,
            request_id=_request_id(request),
        )
        return JSONResponse(
            status_code=http_status.HTTP_400_BAD_REQUEST,
            content=response.model_dump(mode='json')
        )

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        """HTTP errors, including routing 404/405"""
        code_mapping = {
            400: BusinessCode.PARAM_ERROR,
            401: BusinessCode.UNAUTHORIZED,
            403: BusinessCode.FORBIDDEN,
            404: BusinessCode.NOT_FOUND,
            405: BusinessCode.PARAM_ERROR,
            500: BusinessCode.SYSTEM_ERROR,
            503: BusinessCode.SERVICE_UNAVAILABLE
        }
        code = code_mapping.get(exc.status_code, BusinessCode.SYSTEM_ERROR)

        response = error_response(
            code=code,
            message=str(exc.detail),
            error_type="HTTPError",
            details={"status_code": exc.status_code},
            request_id=_request_id(request),
        )
        return JSONResponse(
            status_code=exc.status_code,
            content=response.model_dump(mode='json'),
            headers=getattr(exc, "headers", None)
        )

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        """Anything not handled above"""
        request_id = _request_id(request)

        details = None
        if app.debug:
            details = {
                "exception": str(exc),
                "traceback": traceback.format_exc()
            }

        response = error_response(
            code=BusinessCode.SYSTEM_ERROR,
            message="Internal server error",
            error_type="SystemError",
            details=details,
            request_id=request_id,
        )

        logger.error(
            "unhandled_exception",
            request_id=request_id,
            error=str(exc),
            exc_info=True,
        )

        return JSONResponse(
            status_code=http_status.HTTP_500_INTERNAL_SERVER_ERROR,
            content=response.model_dump(mode='json')
        )
