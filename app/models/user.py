"""User model."""

from datetime import datetime

from sqlalchemy import CheckConstraint, Column, DateTime, Integer, String

from app.database import Base


class User(Base):
    """Application user with credential and password reset state."""

    __tablename__ = "users"
    __table_args__ = (
        CheckConstraint(
            "(reset_token IS NULL AND reset_token_expires IS NULL)"
            " OR (reset_token IS NOT NULL AND reset_token_expires IS NOT NULL)",
            name="ck_users_reset_token_pair",
        ),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    email = Column(String(256), unique=True, nullable=False, index=True)
    password_hash = Column(String(256), nullable=False)
    first_name = Column(String(128), nullable=True)
    last_name = Column(String(128), nullable=True)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    reset_token = Column(String(128), nullable=True, index=True)
    reset_token_expires = Column(DateTime, nullable=True)
