# src/usermanager/models/__init__.py
"""SQLAlchemy models for the user manager."""

from .user import Role, User
from .vote import VoteRecord, VoteValue

__all__ = [
    "Role", "User",
    "VoteRecord", "VoteValue",
]
