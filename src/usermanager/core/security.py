"""Password hashing and access token utilities."""
from __future__ import annotations

import hashlib
import hmac
import secrets
from datetime import UTC, datetime, timedelta
from typing import Any

from jose import JWTError, jwt

from usermanager.core.errors import AppError, ErrorKind
from usermanager.core.settings import settings


SALT_BYTES = 16


def _pbkdf2_hex(password: str, salt: str) -> str:
    # HASH_SALT is a server-wide pepper mixed into every per-user salt.
    digest = hashlib.pbkdf2_hmac(
        "sha256",
        password.encode("utf-8"),
        (settings.hash_salt + salt).encode("utf-8"),
        settings.password_hash_iterations,
    )
    return digest.hex()


def hash_password(password: str, salt: str | None = None) -> str:
    """Return ``"<salt>$<hex digest>"`` for ``password``.

    A random salt is generated unless one is given, so equal passwords
    produce different stored hashes.

    Raises:
        ValueError: If the password or the configured pepper is empty.
    """
    if not password:
        raise ValueError("empty password field")
    if not settings.hash_salt:
        raise ValueError("empty hash salt")
    if salt is None:
        salt = secrets.token_hex(SALT_BYTES)
    return f"{salt}${_pbkdf2_hex(password, salt)}"


def verify_password(password: str, password_hash: str) -> bool:
    """Check ``password`` against a stored ``salt$digest`` in constant time."""
    if not password:
        return False
    salt, sep, expected = password_hash.partition("$")
    if not sep or not salt or not expected:
        return False
    return hmac.compare_digest(hash_password(password, salt), password_hash)


def create_access_token(
    user_id: int,
    role: str,
    expires_delta: timedelta | None = None,
) -> str:
    """Sign a JWT carrying the user id and role."""
    expire = datetime.now(UTC) + (expires_delta or timedelta(seconds=settings.token_ttl))
    to_encode: dict[str, Any] = {"sub": str(user_id), "role": role, "exp": expire}
    encoded_jwt: str = jwt.encode(
        to_encode,
        settings.secret_key,
        algorithm=settings.jwt_algorithm,
    )
    return encoded_jwt


def decode_access_token(token: str) -> dict[str, Any]:
    """Verify a JWT and return its claims.

    Raises:
        AppError: ``INVALID_TOKEN`` if the signature, expiry or subject is invalid.
    """
    try:
        payload: dict[str, Any] = jwt.decode(
            token,
            settings.secret_key,
            algorithms=[settings.jwt_algorithm],
        )
    except JWTError as err:
        raise AppError(ErrorKind.INVALID_TOKEN).with_detail(err) from err

    subject = payload.get("sub")
    if subject is None or not str(subject).isdigit():
        raise AppError(ErrorKind.INVALID_TOKEN)
    return payload
