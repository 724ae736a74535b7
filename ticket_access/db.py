from collections.abc import Iterator

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

from .config import settings


def build_engine(database_url: str, timeout_seconds: float) -> Engine:
    connect_args: dict = {}
    if database_url.startswith("sqlite"):
        connect_args = {"check_same_thread": False, "timeout": timeout_seconds}
    elif database_url.startswith("postgresql"):
        # statement_timeout is in milliseconds.
        connect_args = {
            "connect_timeout": max(int(timeout_seconds), 1),
            "options": f"-c statement_timeout={int(timeout_seconds * 1000)}",
        }
    kwargs: dict = {"connect_args": connect_args, "pool_pre_ping": True}
    if not database_url.startswith("sqlite"):
        kwargs["pool_timeout"] = timeout_seconds
    return create_engine(database_url, **kwargs)


engine = build_engine(settings.database_url, settings.store_timeout_seconds)
SessionLocal = sessionmaker(bind=engine, autocommit=False, autoflush=False)


def get_db() -> Iterator[Session]:
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
