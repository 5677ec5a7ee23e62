"""Authentication API routes."""

from fastapi import APIRouter, Depends

from vault.auth import PasswordGate
from vault.dependencies import get_password_gate
from vault.exceptions import InvalidCredentialsError
from vault.schemas.auth import LoginRequest, LoginResponse

router = APIRouter(prefix="/auth", tags=["Authentication"])


@router.post("/login", response_model=LoginResponse)
async def login(
    request: LoginRequest,
    gate: PasswordGate = Depends(get_password_gate),
):
    """
    Check the static vault credentials.

    Parameters:
        - username: Configured vault username
        - password: Configured vault password

    Returns:
        - authenticated: true

    Raises:
        - 401: Invalid credentials
    """
    if not gate.check_login(request.username, request.password):
        raise InvalidCredentialsError("Invalid username or password")
    return LoginResponse(authenticated=True)
