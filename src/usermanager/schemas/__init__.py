"""
Pydantic schemas for API request/response models.

These schemas define the structure of API data for serialization and validation.
"""

from .user import (
    AuthResponse,
    GetUserResponse,
    GetUsersResponse,
    MessageResponse,
    PaginationResponse,
    SignInRequest,
    SignUpRequest,
    UpdateUserResponse,
    UserDetailResponse,
    UserResponse,
    UserUpdate,
)
from .vote import RatingResponse, VoteRecordResponse, VoteRequest

__all__ = [
    "AuthResponse", "MessageResponse", "SignInRequest", "SignUpRequest",
    "GetUserResponse", "GetUsersResponse", "PaginationResponse",
    "UpdateUserResponse", "UserDetailResponse", "UserResponse", "UserUpdate",
    "RatingResponse", "VoteRecordResponse", "VoteRequest",
]
