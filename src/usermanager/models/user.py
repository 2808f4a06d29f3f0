# src/usermanager/models/user.py
"""SQLAlchemy model for user accounts."""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import TYPE_CHECKING

from sqlalchemy import DateTime, Index, Integer, String, Text, text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from usermanager.db.session import Base
from usermanager.db.time import utcnow

if TYPE_CHECKING:
    from .vote import VoteRecord


class Role(str, Enum):
    """Permission levels, from least to most privileged."""

    USER = "user"
    MODERATOR = "moderator"
    ADMIN = "admin"


class User(Base):
    """Account identity, profile and aggregate rating state.

    ``rating`` is the sum of the effects of all active vote records received.
    ``last_rated_at`` is when this user last *cast* a vote and drives the
    rater cool-down.
    """

    __tablename__ = "users"
    __table_args__ = (
        # Usernames are unique among live accounts only; tombstones keep theirs.
        Index(
            "uq_users_user_name_live",
            "user_name",
            unique=True,
            sqlite_where=text("deleted_at IS NULL"),
            postgresql_where=text("deleted_at IS NULL"),
        ),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    user_name: Mapped[str] = mapped_column(String(64), nullable=False)
    role: Mapped[str] = mapped_column(String(16), nullable=False, default=Role.USER.value)
    first_name: Mapped[str] = mapped_column(Text, nullable=False)
    last_name: Mapped[str] = mapped_column(Text, nullable=False)
    password_hash: Mapped[str] = mapped_column(String(128), nullable=False)

    rating: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    last_rated_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow
    )
    deleted_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True, index=True
    )

    votes_received: Mapped[list[VoteRecord]] = relationship(
        "VoteRecord",
        foreign_keys="VoteRecord.target_id",
        back_populates="target",
        order_by="VoteRecord.id",
    )

    @property
    def is_deleted(self) -> bool:
        return self.deleted_at is not None

    @property
    def active_votes(self) -> list[VoteRecord]:
        """Vote records received that have not been tombstoned."""
        return [vote for vote in self.votes_received if vote.deleted_at is None]
