"""User account and peer rating endpoints."""

from __future__ import annotations

import logging
from urllib.parse import urlencode

from fastapi import APIRouter, Query, Request, Response

from usermanager.core.errors import AppError, ErrorKind
from usermanager.core.settings import settings
from usermanager.models import User
from usermanager.schemas.user import (
    GetUserResponse,
    GetUsersResponse,
    MessageResponse,
    PaginationResponse,
    UpdateUserResponse,
    UserDetailResponse,
    UserResponse,
    UserUpdate,
)
from usermanager.schemas.vote import RatingResponse, VoteRecordResponse, VoteRequest
from usermanager.services import user_service
from usermanager.services.rating import RatingLedger
from usermanager.services.user_service import Page

from ..dependencies import (
    AdminUserDep,
    CurrentUserDep,
    SessionDep,
    StaffUserDep,
    clear_auth_cookie,
)

router = APIRouter(prefix="/users", tags=["users"])
logger = logging.getLogger(__name__)


def _user_detail(user: User) -> UserDetailResponse:
    detail = UserDetailResponse.model_validate(user)
    detail.votes = [VoteRecordResponse.model_validate(v) for v in user.active_votes]
    return detail


def _page_link(path: str, page: Page, number: int) -> str:
    query = urlencode({"limit": page.limit, "page": number, "sort": page.sort})
    return f"{path}?{query}"


def _pagination_response(path: str, page: Page) -> PaginationResponse:
    last = max(page.total_pages, 1)
    return PaginationResponse(
        limit=page.limit,
        page=page.page,
        sort=page.sort,
        total_rows=page.total_rows,
        total_pages=page.total_pages,
        first_page=_page_link(path, page, 1),
        last_page=_page_link(path, page, last),
        previous_page=_page_link(path, page, page.page - 1) if page.page > 1 else None,
        next_page=(
            _page_link(path, page, page.page + 1) if page.page < page.total_pages else None
        ),
        from_row=page.from_row,
        to_row=page.to_row,
        rows=[UserResponse.model_validate(u) for u in page.users],
    )


@router.get("", response_model=GetUsersResponse)
async def list_users(
    request: Request,
    current_user: StaffUserDep,
    db: SessionDep,
    limit: int | None = Query(None),
    page: int = Query(1),
    sort: str | None = Query(None),
) -> GetUsersResponse:
    """List live users page by page (moderators and admins only)."""
    result = user_service.list_users(
        db,
        limit=settings.page_size_default if limit is None else limit,
        page=page,
        sort=sort or settings.default_sort,
    )
    return GetUsersResponse(
        message=f"Hello, {current_user.user_name}. You are in the restricted zone.",
        users=_pagination_response(request.url.path, result),
    )


@router.get("/me", response_model=GetUserResponse)
async def get_me(current_user: CurrentUserDep) -> GetUserResponse:
    """Return the caller's own profile."""
    return GetUserResponse(
        message=f"There is user with ID {current_user.id}",
        user=_user_detail(current_user),
    )


@router.patch("/me", response_model=UpdateUserResponse)
async def update_me(
    payload: UserUpdate,
    current_user: CurrentUserDep,
    db: SessionDep,
) -> UpdateUserResponse:
    """Update the caller's own account."""
    user = user_service.update_user(db, current_user, current_user.id, payload)
    return UpdateUserResponse(
        message=f"There is updated user with id: {user.id}",
        user=UserResponse.model_validate(user),
    )


@router.delete("/me", response_model=MessageResponse)
async def delete_me(
    response: Response,
    current_user: CurrentUserDep,
    db: SessionDep,
) -> MessageResponse:
    """Delete the caller's own account and sign it out."""
    user_service.delete_own_account(db, current_user)
    clear_auth_cookie(response)
    return MessageResponse(message=f"User with id: {current_user.id} is deleted")


@router.get("/{user_id}", response_model=GetUserResponse)
async def get_user(user_id: int, db: SessionDep) -> GetUserResponse:
    """Return the public profile of one user."""
    user = user_service.get_user(db, user_id)
    return GetUserResponse(
        message=f"There is user with ID {user.id}",
        user=_user_detail(user),
    )


@router.patch("/{user_id}", response_model=UpdateUserResponse)
async def update_user(
    user_id: int,
    payload: UserUpdate,
    current_user: CurrentUserDep,
    db: SessionDep,
) -> UpdateUserResponse:
    """Update an account; non-admins may only update themselves."""
    user = user_service.update_user(db, current_user, user_id, payload)
    return UpdateUserResponse(
        message=f"There is updated user with id: {user.id}",
        user=UserResponse.model_validate(user),
    )


@router.delete("/{user_id}", response_model=MessageResponse)
async def delete_user(
    user_id: int,
    current_user: AdminUserDep,
    db: SessionDep,
) -> MessageResponse:
    """Delete another account (admins only)."""
    user_service.delete_user(db, current_user, user_id)
    return MessageResponse(message=f"User with id: {user_id} is deleted")


@router.get("/{user_name}/rating", response_model=RatingResponse)
async def get_rating(user_name: str, db: SessionDep) -> RatingResponse:
    """Return a user's aggregate rating and the votes behind it."""
    user = user_service.get_user_by_username(db, user_name)
    return RatingResponse(
        user_name=user.user_name,
        rating=user.rating,
        votes=[VoteRecordResponse.model_validate(v) for v in user.active_votes],
    )


@router.post("/{user_name}/rate", response_model=GetUserResponse)
async def rate_user(
    user_name: str,
    payload: VoteRequest,
    current_user: CurrentUserDep,
    db: SessionDep,
) -> GetUserResponse:
    """Cast an up, down or remove vote on another user."""
    if current_user.user_name == user_name:
        logger.warning("User %s tried to rate themselves", current_user.id)
        raise AppError(ErrorKind.SELF_VOTE_REJECTED)

    user = RatingLedger(db).cast_vote(current_user.id, user_name, payload.vote)
    return GetUserResponse(
        message=f"User {user.user_name} now has rating {user.rating}",
        user=_user_detail(user),
    )
