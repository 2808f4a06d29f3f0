"""Data access helpers for users and their vote records."""
from __future__ import annotations

from collections.abc import Mapping, Sequence
from datetime import datetime, timedelta
from typing import Any

from sqlalchemy import ColumnElement, func, or_, select, update
from sqlalchemy.orm import Session, selectinload

from usermanager.db.time import utcnow
from usermanager.models.user import User
from usermanager.models.vote import VoteRecord, VoteValue

__all__ = ["UserRepository"]


class UserRepository:
    """Thin wrapper around database access for users and vote records.

    Lookups never return tombstoned rows. Methods flush but do not commit;
    the caller owns the transaction.
    """

    def __init__(self, session: Session) -> None:
        """Initialize the repository with a SQLAlchemy session."""
        self.session = session

    def get_by_id(self, user_id: int) -> User | None:
        """Return a live user by identifier, with received votes loaded."""
        result = self.session.execute(
            select(User)
            .options(selectinload(User.votes_received))
            .where(User.id == user_id, User.deleted_at.is_(None))
        )
        return result.scalars().first()

    def get_by_username(self, user_name: str) -> User | None:
        """Return a live user by username, with received votes loaded."""
        result = self.session.execute(
            select(User)
            .options(selectinload(User.votes_received))
            .where(User.user_name == user_name, User.deleted_at.is_(None))
        )
        return result.scalars().first()

    def list_page(
        self,
        *,
        limit: int,
        offset: int,
        order_by: Sequence[ColumnElement[Any]],
    ) -> list[User]:
        """Return one page of live users in the requested order."""
        result = self.session.execute(
            select(User)
            .options(selectinload(User.votes_received))
            .where(User.deleted_at.is_(None))
            .order_by(*order_by)
            .limit(limit)
            .offset(offset)
        )
        return list(result.scalars())

    def count_live(self) -> int:
        """Return the number of users that are not tombstoned."""
        total = self.session.execute(
            select(func.count()).select_from(User).where(User.deleted_at.is_(None))
        ).scalar()
        return int(total or 0)

    def create(
        self,
        *,
        user_name: str,
        first_name: str,
        last_name: str,
        password_hash: str,
        role: str,
    ) -> User:
        """Insert a new user and return the persisted ORM instance."""
        user = User(
            user_name=user_name,
            first_name=first_name,
            last_name=last_name,
            password_hash=password_hash,
            role=role,
            rating=0,
        )
        self.session.add(user)
        self.session.flush()
        return user

    def update_fields(self, user: User, fields: Mapping[str, Any]) -> User:
        """Apply a partial update to ``user``."""
        for key, value in fields.items():
            setattr(user, key, value)
        self.session.flush()
        return user

    def soft_delete(self, user: User) -> User:
        """Tombstone ``user``; vote records referencing it are kept."""
        user.deleted_at = utcnow()
        self.session.flush()
        return user

    def find_vote(self, target_id: int, rater_id: int) -> VoteRecord | None:
        """Return the live vote record of ``rater_id`` on ``target_id``, if any."""
        result = self.session.execute(
            select(VoteRecord).where(
                VoteRecord.target_id == target_id,
                VoteRecord.rater_id == rater_id,
                VoteRecord.deleted_at.is_(None),
            )
        )
        return result.scalars().first()

    def append_vote(self, target_id: int, rater_id: int, value: VoteValue) -> VoteRecord:
        """Insert the first vote record of a rater on a target."""
        record = VoteRecord(target_id=target_id, rater_id=rater_id, value=value.value)
        self.session.add(record)
        self.session.flush()
        return record

    def update_vote(self, record: VoteRecord, value: VoteValue) -> VoteRecord:
        """Change the value of an existing vote record in place."""
        record.value = value.value
        self.session.flush()
        return record

    def apply_rating_delta(self, user_id: int, delta: int) -> None:
        """Adjust a user's rating with a single atomic UPDATE."""
        self.session.execute(
            update(User)
            .where(User.id == user_id)
            .values(rating=User.rating + delta)
            .execution_options(synchronize_session=False)
        )

    def claim_vote_slot(self, user_id: int, now: datetime, cooldown: timedelta) -> bool:
        """Stamp ``user_id`` as having voted at ``now`` if its cool-down has elapsed.

        The check and the stamp are one conditional UPDATE, so two overlapping
        requests from the same rater cannot both claim the slot.

        Returns:
            ``True`` if the slot was claimed, ``False`` if the rater is still
            cooling down.
        """
        result = self.session.execute(
            update(User)
            .where(
                User.id == user_id,
                or_(User.last_rated_at.is_(None), User.last_rated_at <= now - cooldown),
            )
            .values(last_rated_at=now)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1
