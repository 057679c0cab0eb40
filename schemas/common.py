"""
schemas/common.py

- Shared schemas used across the project (Pydantic v2)
  1) Error response: ErrorDetail, ErrorResponse
  2) Pagination meta: Pagination, MetaInfo, make_meta()
"""

from __future__ import annotations

from datetime import datetime, timezone
from math import ceil
from typing import Any, Dict, Optional

from pydantic import BaseModel, Field, ConfigDict


# =========================================================
# 1) Error response
# =========================================================

class ErrorDetail(BaseModel):
    """Smallest unit of an error: code + message (+ optional context)"""
    code: str = Field(..., description="Error code (e.g. VALIDATION_ERROR, NOT_FOUND, INTERNAL_ERROR)")
    message: str = Field(..., description="Human readable message")
    subject: Optional[str] = Field(default=None, description="Offending subject code, when known")
    field: Optional[str] = Field(default=None, description="Offending input field, when known")
    key: Optional[Dict[str, Any]] = Field(default=None, description="Cohort key that had no data")

    model_config = ConfigDict(extra="ignore")

class ErrorResponse(BaseModel):
    """
    Standard error body returned by middlewares/error_handler.py
    """
    success: bool = False
    error: ErrorDetail
    generated_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        description="Response creation time (UTC)"
    )
    latency_ms: Optional[int] = Field(
        default=None, ge=0, description="Processing time in ms (filled from the timing middleware)"
    )

    model_config = ConfigDict(extra="ignore")


# =========================================================
# 2) Pagination
# =========================================================

class Pagination(BaseModel):
    """
    Paging parameters for list endpoints
    - page: starts at 1
    - size: 1~200
    """
    page: int = Field(1, ge=1, description="Current page (starts at 1)")
    size: int = Field(20, ge=1, le=200, description="Items per page")

    model_config = ConfigDict(extra="ignore")

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.size


class MetaInfo(BaseModel):
    total: int = Field(..., ge=0)
    page: int = Field(..., ge=1)
    size: int = Field(..., ge=1)
    pages: int = Field(..., ge=1)

    model_config = ConfigDict(extra="ignore")


def make_meta(total: int, page: int, size: int) -> MetaInfo:
    """
    Paging meta
    - pages is at least 1 even when total is 0
    """
    pages = max(1, ceil(total / max(1, size)))
    return MetaInfo(total=total, page=page, size=size, pages=pages)
