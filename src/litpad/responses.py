"""Response envelope models shared by every router."""

from __future__ import annotations

import math
from typing import Any, Generic, Literal, TypeVar

from pydantic import BaseModel

T = TypeVar("T")


class ResponseMessage(BaseModel):
    status: Literal["success"] = "success"
    message: str


class DataResponse(ResponseMessage, Generic[T]):
    data: T


class ErrorResponse(BaseModel):
    status: Literal["failure"] = "failure"
    code: str
    message: str
    data: Any | None = None


class PaginatedData(BaseModel):
    per_page: int
    current_page: int
    last_page: int


def paginate_meta(total: int, page: int, per_page: int) -> dict[str, int]:
    """Pagination fields for a page of ``per_page`` items out of ``total``."""
    return {
        "per_page": per_page,
        "current_page": page,
        "last_page": max(1, math.ceil(total / per_page)),
    }
