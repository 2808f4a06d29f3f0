# src/usermanager/schemas/vote.py
"""Vote-related Pydantic schemas."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


class VoteRequest(BaseModel):
    """Schema for casting a vote on another user.

    The value is validated by the rating ledger so that unknown values are
    reported as ``INVALID_VOTE_VALUE`` rather than a generic 422.
    """

    vote: str = Field(..., description="One of: up, down, remove")


class VoteRecordResponse(BaseModel):
    """A rater's current vote on a user."""

    rater_id: int
    value: str
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class RatingResponse(BaseModel):
    """Aggregate rating of a user and the votes behind it."""

    user_name: str
    rating: int
    votes: list[VoteRecordResponse]
