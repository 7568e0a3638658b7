# database/db_setup.py
from sqlalchemy import create_engine
from sqlalchemy.orm import declarative_base, sessionmaker
from sqlalchemy.pool import StaticPool

from core.config import DATABASE_URL

# ---------------------------------------------------------------------
# Base class for ORM models
# ---------------------------------------------------------------------
Base = declarative_base()

# ---------------------------------------------------------------------
# Engine factory
# ---------------------------------------------------------------------
def get_engine(url: str | None = None):
    """
    Return a SQLAlchemy Engine for `url` (defaults to DATABASE_URL).

    SQLite connections are shared across threads; in-memory SQLite uses a
    single static connection so every session sees the same database.

    Example:
        engine = get_engine("sqlite://")
    """
    url = url or DATABASE_URL
    kwargs = {"echo": False, "future": True}
    if url.startswith("sqlite"):
        kwargs["connect_args"] = {"check_same_thread": False}
        if url in ("sqlite://", "sqlite:///:memory:"):
            kwargs["poolclass"] = StaticPool
    return create_engine(url, **kwargs)


def init_db(engine) -> None:
    """Create all concept tables (no-op for existing ones)."""
    # models register themselves on Base when imported
    from . import models  # noqa: F401

    Base.metadata.create_all(engine)


def make_session_factory(engine):
    """Session factory shared by the concepts of one process."""
    return sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)
