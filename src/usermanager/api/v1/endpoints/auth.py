# src/usermanager/api/v1/endpoints/auth.py
"""Authentication endpoints for the user manager API."""

from __future__ import annotations

from fastapi import APIRouter, Response, status

from usermanager.core.security import create_access_token
from usermanager.core.settings import settings
from usermanager.schemas.user import AuthResponse, MessageResponse, SignInRequest, SignUpRequest
from usermanager.services import user_service

from ..dependencies import SessionDep, clear_auth_cookie, set_auth_cookie

router = APIRouter(prefix="/auth", tags=["authentication"])


@router.post(
    "/sign-up",
    summary="Register a new account",
    status_code=status.HTTP_201_CREATED,
    response_model=AuthResponse,
)
async def sign_up(payload: SignUpRequest, response: Response, db: SessionDep) -> AuthResponse:
    """Create an account and log it in."""
    user = user_service.register_user(db, payload)
    token = create_access_token(user.id, user.role)
    set_auth_cookie(response, token)
    return AuthResponse(
        message="You are logged in!",
        token=token,
        expires_in=settings.token_ttl,
    )


@router.post(
    "/sign-in",
    summary="Authenticate with username and password",
    status_code=status.HTTP_200_OK,
    response_model=AuthResponse,
)
async def sign_in(payload: SignInRequest, response: Response, db: SessionDep) -> AuthResponse:
    """Check credentials and issue a session token."""
    user = user_service.authenticate(db, payload.user_name, payload.password)
    token = create_access_token(user.id, user.role)
    set_auth_cookie(response, token)
    return AuthResponse(
        message="You are logged in!",
        token=token,
        expires_in=settings.token_ttl,
    )


@router.post("/sign-out", response_model=MessageResponse)
async def sign_out(response: Response) -> MessageResponse:
    """Drop the auth cookie."""
    clear_auth_cookie(response)
    return MessageResponse(message="You are logged out")
