"""User-related Pydantic schemas."""

import re
from datetime import datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .vote import VoteRecordResponse

PASSWORD_RULES = (
    re.compile(r".{7,}"),
    re.compile(r"[A-Z]"),
    re.compile(r"[a-z]"),
    re.compile(r"[0-9]"),
    re.compile(r"[^A-Za-z0-9]"),
)

RoleName = Literal["user", "moderator", "admin"]


def check_password_strength(value: str) -> str:
    """Require 7+ chars with upper, lower, digit and special characters."""
    if not all(rule.search(value) for rule in PASSWORD_RULES):
        raise ValueError(
            "password must contain at least 7 characters, 1 number, "
            "1 upper case, 1 lower case and 1 special character"
        )
    return value


class SignUpRequest(BaseModel):
    """Schema for account registration."""

    user_name: str = Field(..., min_length=5, max_length=64)
    first_name: str = Field(..., min_length=1, max_length=100)
    last_name: str = Field(..., min_length=1, max_length=100)
    password: str

    @field_validator("user_name")
    @classmethod
    def validate_user_name(cls, v: str) -> str:
        """Usernames appear in URLs, so whitespace and slashes are rejected."""
        if re.search(r"[\s/]", v):
            raise ValueError("user_name must not contain whitespace or '/'")
        return v

    @field_validator("password")
    @classmethod
    def validate_password(cls, v: str) -> str:
        return check_password_strength(v)


class SignInRequest(BaseModel):
    """Schema for sign-in submissions."""

    user_name: str
    password: str


class AuthResponse(BaseModel):
    """Response returned after sign-up or sign-in."""

    message: str
    token: str = Field(..., description="JWT access token, also set as a cookie")
    expires_in: int = Field(..., description="Token lifetime in seconds")


class MessageResponse(BaseModel):
    """Plain acknowledgement."""

    message: str


class UserUpdate(BaseModel):
    """Partial update of an account. Omitted or null fields are left unchanged."""

    user_name: str | None = Field(None, min_length=5, max_length=64)
    first_name: str | None = Field(None, min_length=1, max_length=100)
    last_name: str | None = Field(None, min_length=1, max_length=100)
    password: str | None = None
    role: RoleName | None = None

    @field_validator("user_name")
    @classmethod
    def validate_user_name(cls, v: str | None) -> str | None:
        if v is not None and re.search(r"[\s/]", v):
            raise ValueError("user_name must not contain whitespace or '/'")
        return v

    @field_validator("password")
    @classmethod
    def validate_password(cls, v: str | None) -> str | None:
        if v is None:
            return v
        return check_password_strength(v)


class UserResponse(BaseModel):
    """Public profile of an account."""

    id: int
    user_name: str
    role: RoleName
    first_name: str
    last_name: str
    rating: int
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class UserDetailResponse(UserResponse):
    """Public profile with the vote records the user has received."""

    votes: list[VoteRecordResponse] = Field(default_factory=list)


class GetUserResponse(BaseModel):
    """Envelope for a single user lookup."""

    message: str
    user: UserDetailResponse


class PaginationResponse(BaseModel):
    """One page of users with navigation links."""

    limit: int
    page: int
    sort: str
    total_rows: int
    total_pages: int
    first_page: str
    last_page: str
    previous_page: str | None = None
    next_page: str | None = None
    from_row: int
    to_row: int
    rows: list[UserResponse]


class GetUsersResponse(BaseModel):
    """Envelope for the paginated user listing."""

    message: str
    users: PaginationResponse


class UpdateUserResponse(BaseModel):
    """Envelope returned after an update."""

    message: str
    user: UserResponse
