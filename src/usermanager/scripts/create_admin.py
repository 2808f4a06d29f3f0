# src/usermanager/scripts/create_admin.py
"""Create or promote an admin account.

Sign-up always creates plain users, so the first admin has to be made here:

    python -m usermanager.scripts.create_admin --user-name rootadmin \
        --first-name Root --last-name Admin --password 'S3cret!pw'
"""

from __future__ import annotations

import argparse
import logging
import sys

from pydantic import ValidationError
from sqlalchemy.orm import Session

from usermanager.core.errors import AppError
from usermanager.core.logging import configure_logging
from usermanager.db.session import SessionLocal, create_tables, transaction_scope
from usermanager.models import Role, User
from usermanager.repositories.user_repo import UserRepository
from usermanager.schemas.user import SignUpRequest
from usermanager.services import user_service

logger = logging.getLogger("usermanager.scripts.create_admin")


def ensure_admin(db: Session, payload: SignUpRequest) -> tuple[User, bool]:
    """Create ``payload`` as an admin, or promote the existing account.

    Returns:
        The admin user and whether it was newly created.
    """
    repo = UserRepository(db)
    existing = repo.get_by_username(payload.user_name)
    if existing is None:
        return user_service.register_user(db, payload, role=Role.ADMIN), True

    if existing.role != Role.ADMIN.value:
        with transaction_scope(db):
            repo.update_fields(existing, {"role": Role.ADMIN.value})
    return existing, False


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[0])
    parser.add_argument("--user-name", required=True)
    parser.add_argument("--first-name", default="Admin")
    parser.add_argument("--last-name", default="User")
    parser.add_argument("--password", required=True)
    parser.add_argument(
        "--create-tables",
        action="store_true",
        help="Create missing tables before inserting the account",
    )
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    configure_logging()
    args = parse_args(argv)
    try:
        payload = SignUpRequest(
            user_name=args.user_name,
            first_name=args.first_name,
            last_name=args.last_name,
            password=args.password,
        )
    except ValidationError as err:
        logger.error("Invalid admin account: %s", err)
        return 2

    if args.create_tables:
        create_tables()

    db = SessionLocal()
    try:
        user, created = ensure_admin(db, payload)
        logger.info(
            "%s admin %s (id=%s)",
            "Created" if created else "Promoted",
            user.user_name,
            user.id,
        )
    except AppError as err:
        logger.error("Could not create admin: %s", err)
        return 1
    finally:
        db.close()
    return 0


if __name__ == "__main__":
    sys.exit(main())
