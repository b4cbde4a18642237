"""SQLAlchemy engine, session factory, and declarative Base for the medical_bills store."""

from __future__ import annotations

import os
from sqlalchemy import create_engine
from sqlalchemy.orm import DeclarativeBase, sessionmaker

DATABASE_URL: str = os.getenv("DATABASE_URL", "sqlite:///./medbills.db")
SQL_ECHO: bool = os.getenv("SQL_ECHO", "false").lower() == "true"

# SQLite needs check_same_thread=False for use across threads (FastAPI workers)
_connect_args = {"check_same_thread": False} if DATABASE_URL.startswith("sqlite") else {}

engine = create_engine(DATABASE_URL, connect_args=_connect_args, echo=SQL_ECHO, pool_pre_ping=True)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, expire_on_commit=False, bind=engine)

BILL_TABLES = ("medical_bills", "audit_log")


class Base(DeclarativeBase):
    pass


def get_db():
    """FastAPI dependency: yield a DB session and close it after the request."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def init_db() -> None:
    """Create the bill tables. Called once at application startup."""
    from db import models  # noqa: F401 — ensure models are registered on Base
    Base.metadata.create_all(bind=engine)


def drop_db() -> None:
    """Drop the bill tables; used to reset the store between test runs."""
    from db import models  # noqa: F401
    Base.metadata.drop_all(bind=engine)


if __name__ == "__main__":
    from sqlalchemy import inspect

    print("Creating database tables...")
    init_db()
    print(f"   Database: {DATABASE_URL}")
    tables = set(inspect(engine).get_table_names())
    for table in BILL_TABLES:
        print(f"   Table: {table} ({'ok' if table in tables else 'missing'})")
