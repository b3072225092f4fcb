"""Common API response schemas."""

from typing import Any, Generic, TypeVar

from pydantic import BaseModel

T = TypeVar("T")


class ApiResponse(BaseModel, Generic[T]):
    """Consistent JSON envelope for API responses."""

    data: T


class ErrorResponse(BaseModel):
    """JSON body returned for every failed request."""

    error: str
    details: Any = None
    retry_after: float | None = None
