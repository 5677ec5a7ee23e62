"""Pydantic schemas for authentication endpoints."""

from pydantic import BaseModel


class LoginRequest(BaseModel):
    """Request model for login."""
    username: str
    password: str


class LoginResponse(BaseModel):
    """Response model for login."""
    authenticated: bool
