# src/usermanager/services/rating.py
"""Peer rating ledger.

A rater holds at most one live vote per target. Casting a vote moves that
(target, rater) pair between the states ``no vote``, ``up``, ``down`` and
``remove``; the target's aggregate rating changes by the net effect of
withdrawing the old vote and applying the new one. A rater may cast only one
vote per cool-down window, whatever the target.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import datetime, timedelta

from sqlalchemy.orm import Session

from usermanager.core.errors import AppError, ErrorKind
from usermanager.core.settings import settings
from usermanager.db.session import transaction_scope
from usermanager.db.time import ensure_aware, utcnow
from usermanager.models import User, VoteValue
from usermanager.repositories.user_repo import UserRepository

logger = logging.getLogger(__name__)

# (existing vote, requested vote) -> change applied to the target's rating.
# ``None`` stands for "this rater has never voted on this target".
TRANSITION_DELTAS: dict[tuple[VoteValue | None, VoteValue], int] = {
    (VoteValue.UP, VoteValue.DOWN): -2,
    (VoteValue.UP, VoteValue.REMOVE): -1,
    (VoteValue.DOWN, VoteValue.UP): 2,
    (VoteValue.DOWN, VoteValue.REMOVE): 1,
    (VoteValue.REMOVE, VoteValue.UP): 1,
    (VoteValue.REMOVE, VoteValue.DOWN): -1,
    (None, VoteValue.UP): 1,
    (None, VoteValue.DOWN): -1,
}


def parse_vote(value: str | VoteValue) -> VoteValue:
    """Convert a raw vote string into a :class:`VoteValue`."""
    if isinstance(value, VoteValue):
        return value
    try:
        return VoteValue(str(value).strip().lower())
    except ValueError as err:
        raise AppError(ErrorKind.INVALID_VOTE_VALUE).with_detail(repr(value)) from err


def transition_delta(existing: VoteValue | None, requested: VoteValue) -> int:
    """Return the rating change for moving from ``existing`` to ``requested``.

    Raises:
        AppError: ``DUPLICATE_VOTE`` when both votes are equal,
            ``INVALID_VOTE_VALUE`` when removing a vote that was never cast.
    """
    if existing is requested:
        raise AppError(ErrorKind.DUPLICATE_VOTE)
    try:
        return TRANSITION_DELTAS[(existing, requested)]
    except KeyError as err:
        raise AppError(
            ErrorKind.INVALID_VOTE_VALUE,
            "There is no vote to remove for this user",
        ) from err


class RatingLedger:
    """Resolve vote requests into rating changes and vote records."""

    def __init__(
        self,
        session: Session,
        *,
        cooldown: timedelta | None = None,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self.session = session
        self.repo = UserRepository(session)
        self.cooldown = settings.vote_cooldown if cooldown is None else cooldown
        self.clock = clock

    def _cooldown_error(self, rater: User, now: datetime) -> AppError:
        # The loaded rater may predate a vote committed by a concurrent request.
        self.session.refresh(rater, ["last_rated_at"])
        if rater.last_rated_at is None:
            return AppError(ErrorKind.COOLDOWN_ACTIVE)
        elapsed = now - ensure_aware(rater.last_rated_at)
        remaining = max(int((self.cooldown - elapsed).total_seconds()), 0)
        logger.warning("Rater %s is in cool-down for %ss", rater.id, remaining)
        return AppError(
            ErrorKind.COOLDOWN_ACTIVE,
            f"You can vote again in {remaining} seconds",
        )

    def cast_vote(self, rater_id: int, target_user_name: str, vote: str | VoteValue) -> User:
        """Cast ``vote`` from ``rater_id`` on the user named ``target_user_name``.

        The caller guarantees the rater is not the target. Every read and write
        runs in one transaction: the rater's cool-down slot is claimed first
        with a conditional update, and any later rejection rolls that claim
        back along with everything else.

        Returns:
            The target user with its refreshed rating and vote records.

        Raises:
            AppError: ``INVALID_VOTE_VALUE``, ``COOLDOWN_ACTIVE``,
                ``USER_NOT_FOUND``, ``DUPLICATE_VOTE`` or ``PERSISTENCE_FAILURE``.
        """
        requested = parse_vote(vote)
        now = self.clock()

        with transaction_scope(self.session):
            rater = self.repo.get_by_id(rater_id)
            if rater is None:
                raise AppError(ErrorKind.USER_NOT_FOUND, "Rater not found")
            if not self.repo.claim_vote_slot(rater_id, now, self.cooldown):
                raise self._cooldown_error(rater, now)

            target = self.repo.get_by_username(target_user_name)
            if target is None:
                raise AppError(ErrorKind.USER_NOT_FOUND).with_detail(target_user_name)

            record = self.repo.find_vote(target.id, rater_id)
            existing = record.vote if record is not None else None
            if existing is requested:
                logger.warning(
                    "User %s repeated vote %s on %s", rater_id, requested.value, target_user_name
                )
            delta = transition_delta(existing, requested)

            self.repo.apply_rating_delta(target.id, delta)
            if record is None:
                self.repo.append_vote(target.id, rater_id, requested)
            else:
                self.repo.update_vote(record, requested)

        self.session.expire(target)
        self.session.expire(rater)
        logger.info(
            "User %s voted %s on %s (%s -> %s, delta %+d)",
            rater_id,
            requested.value,
            target_user_name,
            existing.value if existing else "none",
            requested.value,
            delta,
        )
        return target
