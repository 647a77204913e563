"""Database engine and per-request sessions."""

from collections.abc import Generator
from typing import Any

from sqlalchemy import create_engine
from sqlalchemy.orm import DeclarativeBase, Session, sessionmaker

from app.config import get_settings


def engine_options(url: str) -> dict[str, Any]:
    """Driver options shared by the app engine and the migration runner.

    SQLite connections are handed between threads by FastAPI's threadpool; server databases
    get their pooled connections checked before use.
    """
    if url.startswith("sqlite"):
        return {"connect_args": {"check_same_thread": False}}
    return {"pool_pre_ping": True}


settings = get_settings()
engine = create_engine(settings.DATABASE_URL, echo=settings.DEBUG, **engine_options(settings.DATABASE_URL))
SessionLocal = sessionmaker(bind=engine, autocommit=False, autoflush=False)


class Base(DeclarativeBase):
    """Declarative base for the users table."""


def get_db() -> Generator[Session, None, None]:
    """Yield a session that is closed when the request finishes."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
