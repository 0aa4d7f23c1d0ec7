# pyright: reportMissingTypeStubs=false
"""
Engine, session factory and declarative base for the scheduler.

The deletion guard relies on the database refusing to delete an invoice
that a therapist payment still references, so foreign keys are switched
on for SQLite connections too (PostgreSQL enforces them already).
"""

import logging
from typing import Any, Generator

from fastapi import HTTPException
from sqlalchemy import Engine, create_engine, event
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import DeclarativeBase, Mapper, Session, sessionmaker

from core.config import DATABASE_URL
from core.constants import DB_POOL_RECYCLE_SECONDS
from utils.datetime_utils import clinic_now

logger = logging.getLogger(__name__)


def enable_sqlite_foreign_keys(target: Engine) -> None:
    """Turn on ``PRAGMA foreign_keys`` for every new SQLite connection of an engine."""
    if target.dialect.name != "sqlite":
        return

    @event.listens_for(target, "connect")
    def _pragma_on_connect(dbapi_connection, connection_record):  # type: ignore
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


def _engine_options(url: str) -> dict[str, Any]:
    if url.startswith("sqlite"):
        return {"connect_args": {"check_same_thread": False}}
    return {
        "pool_pre_ping": True,  # Verify connections before use
        "pool_recycle": DB_POOL_RECYCLE_SECONDS,
    }


engine = create_engine(DATABASE_URL, echo=False, **_engine_options(DATABASE_URL))
enable_sqlite_foreign_keys(engine)

SessionLocal = sessionmaker(
    bind=engine,
    autocommit=False,
    autoflush=False,
    expire_on_commit=False,  # Services hand committed rows back to the API layer
)


class Base(DeclarativeBase):
    pass


def _has_column(mapper: Mapper, name: str) -> bool:
    return name in mapper.columns


@event.listens_for(Base, "before_insert", propagate=True)  # type: ignore
def stamp_created(mapper: Mapper, connection, target) -> None:  # type: ignore
    """Fill created_at/updated_at with clinic local time unless already set."""
    now = clinic_now()
    for name in ("created_at", "updated_at"):
        if _has_column(mapper, name) and getattr(target, name, None) is None:
            setattr(target, name, now)


@event.listens_for(Base, "before_update", propagate=True)  # type: ignore
def stamp_updated(mapper: Mapper, connection, target) -> None:  # type: ignore
    if _has_column(mapper, "updated_at"):
        target.updated_at = clinic_now()


def get_db() -> Generator[Session, None, None]:
    """
    FastAPI dependency yielding one session per request.

    Services commit their own work; anything left pending when the request
    fails is rolled back here before the session is closed.
    """
    db = SessionLocal()
    try:
        yield db
    except HTTPException:
        db.rollback()
        raise
    except SQLAlchemyError as e:
        logger.exception(f"Database error during request: {e}")
        db.rollback()
        raise
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()
