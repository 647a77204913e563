"""User persistence on top of a SQLAlchemy session."""

import logging
from datetime import datetime
from typing import Any

from sqlalchemy import update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from app.errors import ConflictError, UnexpectedError
from app.models.user import User

logger = logging.getLogger("gatekeep")


def normalize_email(email: str) -> str:
    """Emails are case-insensitive; they are stored and looked up lower-cased."""
    return email.strip().lower()


class UserStore:
    """Point lookups, inserts and atomic updates of User rows."""

    def __init__(self, db: Session) -> None:
        self.db = db

    def get_by_id(self, user_id: int) -> User | None:
        return self.db.get(User, user_id)

    def get_by_email(self, email: str) -> User | None:
        return self.db.query(User).filter(User.email == normalize_email(email)).first()

    def get_by_reset_token(self, token: str, now: datetime) -> User | None:
        """Find the user holding this reset token, if it has not expired yet."""
        return (
            self.db.query(User)
            .filter(User.reset_token == token, User.reset_token_expires > now)
            .first()
        )

    def add(self, user: User) -> User:
        """Insert a new user and return it with generated fields populated.

        Raises ConflictError if the email is already taken.
        """
        user.email = normalize_email(user.email)
        self.db.add(user)
        try:
            self.db.commit()
        except IntegrityError as exc:
            self.db.rollback()
            raise ConflictError() from exc
        except SQLAlchemyError as exc:
            self.db.rollback()
            logger.exception("Failed to insert user")
            raise UnexpectedError() from exc

        self.db.refresh(user)
        return user

    def update(self, user_id: int, *criteria: Any, **values: Any) -> int:
        """Write several columns of one user in a single UPDATE statement.

        Extra criteria narrow the WHERE clause. Returns the number of rows changed.
        """
        stmt = update(User).where(User.id == user_id, *criteria).values(**values)
        try:
            result = self.db.execute(stmt)
            self.db.commit()
        except SQLAlchemyError as exc:
            self.db.rollback()
            logger.exception("Failed to update user %s", user_id)
            raise UnexpectedError() from exc

        # Keep already-loaded instances in sync with the row.
        self.db.expire_all()
        return result.rowcount
