"""Common schemas used across multiple endpoints."""

from pydantic import BaseModel


class ErrorResponse(BaseModel):
    """Response model for errors."""
    detail: str
    code: str


class SuccessResponse(BaseModel):
    """Response model for operations with no payload."""
    success: bool = True
