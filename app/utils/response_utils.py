import re
from typing import Any, Dict, List, Optional
from fastapi import HTTPException, status
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException
from app.schemas.base import (
    create_success_response,
    create_error_response,
    create_paginated_response
)
from app.core.exceptions import AppError
from app.core.logging_config import get_logger

logger = get_logger(__name__)


class ResponseWrapper:
    """Utility class for wrapping responses in standard format"""

    @staticmethod
    def success(data: Any = None, message: str = "Success") -> Dict[str, Any]:
        return jsonable_encoder(create_success_response(data, message))

    @staticmethod
    def error(
        message: str,
        code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None
    ) -> Dict[str, Any]:
        """Wrap error response and make it JSON-safe"""
        raw = create_error_response(message, code, details)
        return jsonable_encoder(raw)

    @staticmethod
    def paginated(
        items: List[Any],
        total: int,
        page: int = 1,
        limit: int = 20,
        message: str = "Success",
        key: str = "items",
        extra: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        return jsonable_encoder(create_paginated_response(items, total, page, limit, message, key, extra))

    @staticmethod
    def created(data: Any = None, message: str = "Resource created successfully") -> Dict[str, Any]:
        return jsonable_encoder(create_success_response(data, message))

    @staticmethod
    def updated(data: Any = None, message: str = "Resource updated successfully") -> Dict[str, Any]:
        return jsonable_encoder(create_success_response(data, message))


def _conflicting_fields(error_msg: str) -> Dict[str, str]:
    match = re.search(r"Key \((.*?)\)=\((.*?)\)", error_msg)
    if not match:
        return {}
    columns = match.group(1).split(", ")
    values = match.group(2).split(", ")
    return {col: val for col, val in zip(columns, values)}


def handle_db_error(error: Exception) -> HTTPException:
    """Convert database errors to HTTP exceptions with detailed info"""
    error_msg = str(error).strip().replace("\n", " ")
    lowered = error_msg.lower()

    if "duplicate key" in lowered or "unique constraint" in lowered:
        detail = ResponseWrapper.error(
            message="Resource already exists with the same values",
            code="DUPLICATE_RESOURCE",
            details={"conflicting_fields": _conflicting_fields(error_msg)},
        )
        return HTTPException(status_code=status.HTTP_409_CONFLICT, detail=detail)

    elif "foreign key" in lowered:
        detail = ResponseWrapper.error(
            message="Referenced resource not found",
            code="FOREIGN_KEY_VIOLATION",
            details={"conflicting_fields": _conflicting_fields(error_msg)},
        )
        return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=detail)

    detail = ResponseWrapper.error(
        message="Database operation failed",
        code="DATABASE_ERROR",
    )
    return HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=detail)


def handle_http_error(error: Exception) -> HTTPException:
    """Convert HTTP and generic exceptions into structured ResponseWrapper format"""
    if isinstance(error, StarletteHTTPException):
        detail = getattr(error, "detail", str(error))
        if isinstance(detail, dict) and detail.get("success") is not None:
            return error

        detail = ResponseWrapper.error(
            message=str(detail),
            code="HTTP_ERROR",
        )
        return HTTPException(status_code=error.status_code, detail=detail, headers=getattr(error, "headers", None))

    logger.exception(f"Unexpected HTTP error: {error}")
    detail = ResponseWrapper.error(
        message="Unexpected server error",
        code="INTERNAL_ERROR",
    )
    return HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=detail)


def app_error_response(error: AppError) -> JSONResponse:
    """Render a typed application error as the standard envelope"""
    return JSONResponse(
        status_code=error.status_code,
        content=ResponseWrapper.error(error.message, error.code, error.details),
    )


def http_error_response(error: StarletteHTTPException) -> JSONResponse:
    """Render an HTTPException whose detail is (or becomes) the standard envelope"""
    wrapped = handle_http_error(error)
    return JSONResponse(
        status_code=wrapped.status_code,
        content=wrapped.detail,
        headers=getattr(wrapped, "headers", None),
    )


def normalize_pagination(page: Optional[int], limit: Optional[int], default_limit: int = 20, max_limit: int = 100) -> tuple[int, int, int]:
    """Clamp page/limit and return (page, limit, offset)"""
    page = page if page and page > 0 else 1
    if not limit or limit <= 0:
        limit = default_limit
    limit = min(limit, max_limit)
    return page, limit, (page - 1) * limit
