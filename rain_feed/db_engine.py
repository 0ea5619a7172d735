"""
SQLAlchemy engine and session management for the Rain feed.

A Database is constructed explicitly and handed to every store that
needs it; there is no module-level engine.
"""

from contextlib import contextmanager
from typing import Generator, Optional

from sqlalchemy import create_engine, Engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from rain_feed.constants import DB_NAME
from rain_feed.orm_models import Base

# Seconds a writer waits for SQLite's write lock before giving up
SQLITE_BUSY_TIMEOUT = 30


class Database:
    """Owns an engine and the session factory bound to it."""

    def __init__(self, engine: Engine):
        self.engine = engine
        self._session_factory = sessionmaker(bind=engine, expire_on_commit=False)

    @classmethod
    def from_url(cls, url: Optional[str] = None) -> "Database":
        """Create a database from a SQLAlchemy URL (defaults to a local SQLite file)."""
        url = url or f"sqlite:///{DB_NAME}"
        if url == "sqlite://" or url.endswith(":memory:"):
            return cls.in_memory()
        connect_args = {}
        if url.startswith("sqlite"):
            connect_args = {"check_same_thread": False, "timeout": SQLITE_BUSY_TIMEOUT}
        return cls(create_engine(url, connect_args=connect_args))

    @classmethod
    def in_memory(cls) -> "Database":
        """Create a private in-memory database shared across threads (for testing)."""
        engine = create_engine(
            "sqlite://",
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )
        return cls(engine)

    def init_db(self):
        """Initialize the database schema."""
        Base.metadata.create_all(self.engine)

    def dispose(self) -> None:
        self.engine.dispose()

    @contextmanager
    def session(self) -> Generator[Session, None, None]:
        """Get a session context manager for database operations.

        Usage:
            with db.session() as session:
                session.add(obj)
                # commit happens automatically on successful exit
        """
        session = self._session_factory()
        try:
            yield session
            session.commit()
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()
