"""Unified API response wrapper.

All API endpoints return this format:
{
    "code": 0,           // 0=success, non-0=error code
    "message": "success",
    "kind": null,        // error taxonomy kind, e.g. "InvalidArgument"
    "data": { ... },     // null on error
    "timestamp": "...",
    "request_id": "..."
}
"""

import uuid
from typing import Any

from pydantic import BaseModel, Field

from src.pm_common.datetime_utils import utc_now
from src.pm_common.errors import AppError


class ApiResponse(BaseModel):
    code: int = 0
    message: str = "success"
    kind: str | None = None
    data: Any = None
    timestamp: str = Field(default_factory=lambda: utc_now().isoformat())
    request_id: str = Field(default_factory=lambda: f"req_{uuid.uuid4().hex[:12]}")


def success_response(data: Any = None) -> ApiResponse:
    return ApiResponse(code=0, message="success", data=data)


def error_response(exc: AppError) -> ApiResponse:
    data = {"reason": exc.reason} if exc.reason else None
    return ApiResponse(code=exc.code, message=exc.message, kind=exc.kind, data=data)
