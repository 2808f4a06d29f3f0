# src/usermanager/models/vote.py
"""Models capturing peer rating votes between users."""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import TYPE_CHECKING

from sqlalchemy import CheckConstraint, DateTime, ForeignKey, Index, Integer, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from usermanager.db.session import Base
from usermanager.db.time import utcnow

if TYPE_CHECKING:
    from .user import User


class VoteValue(str, Enum):
    """A rater's stance on a target."""

    UP = "up"
    DOWN = "down"
    REMOVE = "remove"

    @property
    def effect(self) -> int:
        """Contribution of this vote to the target's aggregate rating."""
        return _EFFECTS[self]


_EFFECTS = {VoteValue.UP: 1, VoteValue.DOWN: -1, VoteValue.REMOVE: 0}


class VoteRecord(Base):
    """One rater's current vote on one target user.

    There is at most one live record per (target, rater); later votes update
    the record in place instead of inserting a new row.
    """

    __tablename__ = "vote_records"
    __table_args__ = (
        CheckConstraint("value IN ('up', 'down', 'remove')", name="ck_vote_records_value"),
        Index("ix_vote_records_target_rater", "target_id", "rater_id"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    target_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("users.id"),
        nullable=False,
    )
    rater_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("users.id"),
        nullable=False,
        index=True,
    )
    value: Mapped[str] = mapped_column(String(8), nullable=False)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow
    )
    deleted_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    target: Mapped[User] = relationship(
        "User",
        foreign_keys=[target_id],
        back_populates="votes_received",
    )

    @property
    def vote(self) -> VoteValue:
        return VoteValue(self.value)
