"""Shared API dependencies for authentication and role checks."""

import logging
from collections.abc import Callable
from typing import Annotated

from fastapi import Depends, Request, Response
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from usermanager.core.errors import AppError, ErrorKind
from usermanager.core.security import decode_access_token
from usermanager.core.settings import settings
from usermanager.db.session import get_db
from usermanager.models import Role, User
from usermanager.repositories.user_repo import UserRepository

logger = logging.getLogger(__name__)

# Bearer header is optional: browsers send the token in the auth cookie instead.
bearer_scheme = HTTPBearer(auto_error=False)

# Type alias for database session dependency
SessionDep = Annotated[Session, Depends(get_db)]


def _extract_token(
    request: Request,
    credentials: HTTPAuthorizationCredentials | None,
) -> str:
    """Return the raw JWT from the Bearer header or the auth cookie."""
    if credentials is not None and credentials.credentials:
        return credentials.credentials
    token = request.cookies.get(settings.auth_cookie_name)
    if not token:
        raise AppError(ErrorKind.INVALID_TOKEN, "Not authenticated")
    if token.lower().startswith("bearer "):
        token = token[7:]
    return token


def get_current_user(
    request: Request,
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(bearer_scheme)],
    db: SessionDep,
) -> User:
    """Get the current authenticated user from the JWT.

    Raises:
        AppError: ``INVALID_TOKEN`` if the token is missing or invalid, or the
            account has since been deleted.
    """
    payload = decode_access_token(_extract_token(request, credentials))
    user = UserRepository(db).get_by_id(int(payload["sub"]))
    if user is None:
        raise AppError(ErrorKind.INVALID_TOKEN, "User not found")
    return user


# Type alias for current user dependency
CurrentUserDep = Annotated[User, Depends(get_current_user)]


def require_roles(*roles: Role) -> Callable[[User], User]:
    """Build a dependency that only lets users with one of ``roles`` through."""
    allowed = {role.value for role in roles}

    def _check_role(current_user: CurrentUserDep) -> User:
        if current_user.role not in allowed:
            logger.warning(
                "User %s with role '%s' denied; requires %s",
                current_user.id,
                current_user.role,
                sorted(allowed),
            )
            raise AppError(ErrorKind.WRONG_ROLE, f"You have the role '{current_user.role}'")
        return current_user

    return _check_role


StaffUserDep = Annotated[User, Depends(require_roles(Role.MODERATOR, Role.ADMIN))]
AdminUserDep = Annotated[User, Depends(require_roles(Role.ADMIN))]


def set_auth_cookie(response: Response, token: str) -> None:
    """Store the access token in an HttpOnly cookie that expires with it."""
    response.set_cookie(
        key=settings.auth_cookie_name,
        value=token,
        max_age=settings.token_ttl,
        httponly=True,
        secure=settings.auth_cookie_secure,
        samesite="lax",
    )


def clear_auth_cookie(response: Response) -> None:
    response.delete_cookie(key=settings.auth_cookie_name)
