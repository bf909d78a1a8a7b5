"""Unified API response wrapper.

All API endpoints return this format:
{
    "success": true,
    "data": { ... },     // null on error
    "error": null,       // message on error
    "code": 0,           // 0=success, non-0=AppError code
    "timestamp": "...",
    "request_id": "..."
}
"""

import uuid
from datetime import datetime, timezone
from typing import Any

from pydantic import BaseModel, Field


class ApiResponse(BaseModel):
    success: bool = True
    data: Any = None
    error: str | None = None
    code: int = 0
    timestamp: str = Field(default_factory=lambda: datetime.now(timezone.utc).isoformat())
    request_id: str = Field(default_factory=lambda: f"req_{uuid.uuid4().hex[:12]}")


def success_response(data: Any = None) -> ApiResponse:
    return ApiResponse(success=True, data=data)


def error_response(code: int, message: str) -> ApiResponse:
    return ApiResponse(success=False, code=code, error=message, data=None)
