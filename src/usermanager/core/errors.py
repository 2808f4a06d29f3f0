"""Caller-visible error kinds for the user manager.

Every failure that crosses a service boundary is an :class:`AppError`
carrying one :class:`ErrorKind`. Handlers compare ``err.kind``; error
instances are never shared or compared by identity.
"""

from __future__ import annotations

from enum import Enum

from fastapi import status


class ErrorKind(str, Enum):
    """Closed set of error kinds, each mapped to an HTTP status."""

    USER_NOT_FOUND = "USER_NOT_FOUND"
    INVALID_VOTE_VALUE = "INVALID_VOTE_VALUE"
    DUPLICATE_VOTE = "DUPLICATE_VOTE"
    COOLDOWN_ACTIVE = "COOLDOWN_ACTIVE"
    SELF_VOTE_REJECTED = "SELF_VOTE_REJECTED"
    PERSISTENCE_FAILURE = "PERSISTENCE_FAILURE"
    USERNAME_TAKEN = "USERNAME_TAKEN"
    INVALID_CREDENTIALS = "INVALID_CREDENTIALS"
    INVALID_TOKEN = "INVALID_TOKEN"
    WRONG_ROLE = "WRONG_ROLE"
    ADMIN_NOT_DELETABLE = "ADMIN_NOT_DELETABLE"
    INVALID_PAGINATION = "INVALID_PAGINATION"

    @property
    def http_status(self) -> int:
        return _HTTP_STATUS[self]

    @property
    def default_message(self) -> str:
        return _DEFAULT_MESSAGES[self]


_HTTP_STATUS: dict[ErrorKind, int] = {
    ErrorKind.USER_NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ErrorKind.INVALID_VOTE_VALUE: status.HTTP_400_BAD_REQUEST,
    ErrorKind.DUPLICATE_VOTE: status.HTTP_409_CONFLICT,
    ErrorKind.COOLDOWN_ACTIVE: status.HTTP_429_TOO_MANY_REQUESTS,
    ErrorKind.SELF_VOTE_REJECTED: status.HTTP_400_BAD_REQUEST,
    ErrorKind.PERSISTENCE_FAILURE: status.HTTP_500_INTERNAL_SERVER_ERROR,
    ErrorKind.USERNAME_TAKEN: status.HTTP_409_CONFLICT,
    ErrorKind.INVALID_CREDENTIALS: status.HTTP_401_UNAUTHORIZED,
    ErrorKind.INVALID_TOKEN: status.HTTP_401_UNAUTHORIZED,
    ErrorKind.WRONG_ROLE: status.HTTP_403_FORBIDDEN,
    ErrorKind.ADMIN_NOT_DELETABLE: status.HTTP_403_FORBIDDEN,
    ErrorKind.INVALID_PAGINATION: status.HTTP_400_BAD_REQUEST,
}

_DEFAULT_MESSAGES: dict[ErrorKind, str] = {
    ErrorKind.USER_NOT_FOUND: "User not found",
    ErrorKind.INVALID_VOTE_VALUE: "Vote must be one of: up, down, remove",
    ErrorKind.DUPLICATE_VOTE: "You have already cast this vote for this user",
    ErrorKind.COOLDOWN_ACTIVE: "You can vote only once per cool-down period",
    ErrorKind.SELF_VOTE_REJECTED: "You cannot rate yourself",
    ErrorKind.PERSISTENCE_FAILURE: "Could not persist changes",
    ErrorKind.USERNAME_TAKEN: "Username is already taken",
    ErrorKind.INVALID_CREDENTIALS: "Invalid username or password",
    ErrorKind.INVALID_TOKEN: "Could not validate credentials",
    ErrorKind.WRONG_ROLE: "Your role does not allow this action",
    ErrorKind.ADMIN_NOT_DELETABLE: "Admin users cannot be deleted",
    ErrorKind.INVALID_PAGINATION: "Invalid pagination parameters",
}


class AppError(Exception):
    """Business error raised by services and translated at the HTTP boundary."""

    def __init__(self, kind: ErrorKind, message: str | None = None) -> None:
        self.kind = kind
        self.message = message or kind.default_message
        super().__init__(f"{kind.value}: {self.message}")

    @property
    def http_status(self) -> int:
        return self.kind.http_status

    def with_detail(self, detail: object) -> AppError:
        """Return a new error of the same kind with ``detail`` appended to the message."""
        return AppError(self.kind, f"{self.message}: {detail}")

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, AppError):
            return NotImplemented
        return self.kind is other.kind

    def __hash__(self) -> int:
        return hash(self.kind)
