from typing import Any, Dict, List, Optional
from pydantic import AliasGenerator, BaseModel, ConfigDict
from pydantic.alias_generators import to_camel
from datetime import datetime, timezone


def _utc_timestamp() -> str:
    return datetime.now(timezone.utc).isoformat()


class RequestModel(BaseModel):
    """Request body accepting camelCase keys as well as field names"""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ReadModel(BaseModel):
    """
    Read model built from ORM rows or dataclasses, emitted with camelCase keys
    """
    model_config = ConfigDict(
        from_attributes=True,
        alias_generator=AliasGenerator(serialization_alias=to_camel),
    )

    @classmethod
    def render(cls, obj: Any) -> Dict[str, Any]:
        return cls.model_validate(obj).model_dump(by_alias=True)

    @classmethod
    def render_many(cls, objs: List[Any]) -> List[Dict[str, Any]]:
        return [cls.render(obj) for obj in objs]

# Utility functions for creating consistent responses
def create_success_response(data: Any = None, message: str = "Success") -> Dict[str, Any]:
    """Create a success response with UTC timestamp"""
    return {
        "success": True,
        "message": message,
        "data": data,
        "timestamp": _utc_timestamp()
    }

def create_error_response(message: str, code: Optional[str] = None, details: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    """Create an error response with UTC timestamp"""
    return {
        "success": False,
        "message": message,
        "code": code,
        "details": details,
        "timestamp": _utc_timestamp()
    }

def build_pagination(total: int, page: int, limit: int) -> Dict[str, Any]:
    pages = (total + limit - 1) // limit if limit else 0
    return {
        "page": page,
        "limit": limit,
        "total": total,
        "pages": pages,
        "hasNext": page * limit < total,
        "hasPrev": page > 1,
    }

def create_paginated_response(
    items: List[Any],
    total: int,
    page: int,
    limit: int,
    message: str = "Success",
    key: str = "items",
    extra: Optional[Dict[str, Any]] = None,
) -> Dict[str, Any]:
    """Create a paginated response; items live under ``data[key]``"""
    data = {key: items, "pagination": build_pagination(total, page, limit)}
    if extra:
        data.update(extra)
    return create_success_response(data, message)
