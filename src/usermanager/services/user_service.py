"""CRUD-style helpers for managing user accounts."""
from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Any

from sqlalchemy import ColumnElement
from sqlalchemy.orm import Session

from usermanager.core import security
from usermanager.core.errors import AppError, ErrorKind
from usermanager.core.settings import settings
from usermanager.db.session import transaction_scope
from usermanager.models.user import Role, User
from usermanager.repositories.user_repo import UserRepository
from usermanager.schemas.user import SignUpRequest, UserUpdate

__all__ = [
    "Page",
    "authenticate",
    "delete_own_account",
    "delete_user",
    "get_user",
    "get_user_by_username",
    "list_users",
    "parse_sort",
    "register_user",
    "update_user",
]

logger = logging.getLogger(__name__)

SORTABLE_FIELDS: dict[str, Any] = {
    "id": User.id,
    "user_name": User.user_name,
    "first_name": User.first_name,
    "last_name": User.last_name,
    "created_at": User.created_at,
    "rating": User.rating,
}


@dataclass(frozen=True)
class Page:
    """One page of users plus the totals needed to build navigation links."""

    users: list[User]
    limit: int
    page: int
    sort: str
    total_rows: int
    total_pages: int

    @property
    def from_row(self) -> int:
        if not self.users:
            return 0
        return (self.page - 1) * self.limit + 1

    @property
    def to_row(self) -> int:
        if not self.users:
            return 0
        return self.from_row + len(self.users) - 1


def parse_sort(sort: str) -> list[ColumnElement[Any]]:
    """Translate ``"<field> [asc|desc]"`` into ORDER BY clauses.

    Only whitelisted columns are accepted; ``id`` is appended as a tiebreaker
    so pages are stable.
    """
    parts = sort.strip().split()
    if not parts or len(parts) > 2:
        raise AppError(ErrorKind.INVALID_PAGINATION, f"Invalid sort: {sort!r}")
    field_name = parts[0].lower()
    direction = parts[1].lower() if len(parts) == 2 else "asc"
    column = SORTABLE_FIELDS.get(field_name)
    if column is None or direction not in ("asc", "desc"):
        raise AppError(ErrorKind.INVALID_PAGINATION, f"Invalid sort: {sort!r}")

    clauses = [column.desc() if direction == "desc" else column.asc()]
    if field_name != "id":
        clauses.append(User.id.asc())
    return clauses


def get_user(db: Session, user_id: int) -> User:
    """Return a live user by primary key."""
    user = UserRepository(db).get_by_id(user_id)
    if user is None:
        raise AppError(ErrorKind.USER_NOT_FOUND).with_detail(f"id {user_id}")
    return user


def get_user_by_username(db: Session, user_name: str) -> User:
    """Return a live user by username."""
    user = UserRepository(db).get_by_username(user_name)
    if user is None:
        raise AppError(ErrorKind.USER_NOT_FOUND).with_detail(user_name)
    return user


def list_users(db: Session, *, limit: int, page: int, sort: str) -> Page:
    """Return users with offset-based pagination."""
    if limit < 1 or limit > settings.page_size_max or page < 1:
        raise AppError(
            ErrorKind.INVALID_PAGINATION,
            f"limit must be 1..{settings.page_size_max} and page must be >= 1",
        )
    order_by = parse_sort(sort)
    repo = UserRepository(db)
    total_rows = repo.count_live()
    users = repo.list_page(limit=limit, offset=(page - 1) * limit, order_by=order_by)
    return Page(
        users=users,
        limit=limit,
        page=page,
        sort=sort,
        total_rows=total_rows,
        total_pages=math.ceil(total_rows / limit),
    )


def register_user(db: Session, payload: SignUpRequest, role: Role = Role.USER) -> User:
    """Persist a new account with a hashed password."""
    repo = UserRepository(db)
    if repo.get_by_username(payload.user_name) is not None:
        raise AppError(ErrorKind.USERNAME_TAKEN).with_detail(payload.user_name)

    with transaction_scope(db):
        user = repo.create(
            user_name=payload.user_name,
            first_name=payload.first_name,
            last_name=payload.last_name,
            password_hash=security.hash_password(payload.password),
            role=role.value,
        )
    db.refresh(user)
    logger.info("Registered user %s (id=%s, role=%s)", user.user_name, user.id, user.role)
    return user


def authenticate(db: Session, user_name: str, password: str) -> User:
    """Return the account matching the credentials."""
    user = UserRepository(db).get_by_username(user_name)
    if user is None or not security.verify_password(password, user.password_hash):
        logger.warning("Failed sign-in for %s", user_name)
        raise AppError(ErrorKind.INVALID_CREDENTIALS)
    return user


def update_user(db: Session, actor: User, user_id: int, update_data: UserUpdate) -> User:
    """Apply a partial update to ``user_id`` on behalf of ``actor``.

    Admins may update any account, including its role. Everyone else may only
    update their own profile and may not change their role.
    """
    is_admin = actor.role == Role.ADMIN.value
    if not is_admin and actor.id != user_id:
        logger.warning("User %s (%s) tried to update user %s", actor.id, actor.role, user_id)
        raise AppError(ErrorKind.WRONG_ROLE, f"You have the role '{actor.role}'")

    repo = UserRepository(db)
    db_user = get_user(db, user_id)
    update_dict = update_data.model_dump(exclude_unset=True, exclude_none=True)

    role = update_dict.get("role")
    if role is not None and role != db_user.role and not is_admin:
        raise AppError(ErrorKind.WRONG_ROLE, "Only admins can change roles")

    new_name = update_dict.get("user_name")
    if new_name is not None and new_name != db_user.user_name:
        if repo.get_by_username(new_name) is not None:
            raise AppError(ErrorKind.USERNAME_TAKEN).with_detail(new_name)

    password = update_dict.pop("password", None)
    if password is not None:
        update_dict["password_hash"] = security.hash_password(password)

    with transaction_scope(db):
        repo.update_fields(db_user, update_dict)
    db.refresh(db_user)
    logger.info("User %s updated user %s: %s", actor.id, user_id, sorted(update_dict))
    return db_user


def delete_user(db: Session, actor: User, user_id: int) -> User:
    """Tombstone ``user_id`` on behalf of an admin ``actor``.

    Admin accounts cannot be deleted this way, not even by themselves.
    """
    if actor.role != Role.ADMIN.value:
        raise AppError(ErrorKind.WRONG_ROLE, f"You have the role '{actor.role}'")

    db_user = get_user(db, user_id)
    if db_user.role == Role.ADMIN.value:
        logger.warning("Admin %s tried to delete admin %s", actor.id, user_id)
        raise AppError(ErrorKind.ADMIN_NOT_DELETABLE)

    with transaction_scope(db):
        UserRepository(db).soft_delete(db_user)
    logger.info("User %s deleted user %s", actor.id, user_id)
    return db_user


def delete_own_account(db: Session, user: User) -> User:
    """Tombstone the caller's own account, whatever its role."""
    with transaction_scope(db):
        UserRepository(db).soft_delete(user)
    logger.info("User %s deleted their own account", user.id)
    return user
