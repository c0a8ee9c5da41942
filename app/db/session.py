"""
Database session management for the Gemini key validator.
Provides SQLAlchemy session management over any SQLAlchemy URL (SQLite by default).
"""

import logging
from pathlib import Path
from typing import Generator, Optional
from sqlalchemy import create_engine, Engine
from sqlalchemy.engine import make_url
from sqlalchemy.orm import sessionmaker, Session
from sqlalchemy.pool import StaticPool
from contextlib import contextmanager

from app.core.settings import get_settings
from app.db.models import Base

logger = logging.getLogger(__name__)


class DatabaseSessionManager:
    """Manages database sessions and connections."""

    def __init__(self, database_url: Optional[str] = None, echo: Optional[bool] = None):
        self.settings = get_settings()
        self.database_url = database_url or self.settings.database_url
        self.echo = self.settings.db_echo if echo is None else echo
        self._engine: Optional[Engine] = None
        self._session_factory: Optional[sessionmaker] = None
        self._initialize_database()

    def _engine_kwargs(self) -> dict:
        url = make_url(self.database_url)
        if url.get_backend_name() != "sqlite":
            return {"pool_pre_ping": True, "pool_recycle": 3600}

        kwargs: dict = {"connect_args": {"check_same_thread": False}}
        database = url.database
        if not database or database == ":memory:":
            # A single shared connection keeps the in-memory database alive
            kwargs["poolclass"] = StaticPool
        else:
            Path(database).parent.mkdir(parents=True, exist_ok=True)
        return kwargs

    def _initialize_database(self):
        """Initialize database engine and session factory."""
        try:
            self._engine = create_engine(
                self.database_url,
                echo=self.echo,
                **self._engine_kwargs(),
            )

            # Create session factory
            self._session_factory = sessionmaker(
                bind=self._engine, autocommit=False, autoflush=False
            )

            # Create tables if they don't exist
            Base.metadata.create_all(self._engine)

            logger.info("Database session manager initialized (%s)", make_url(self.database_url).get_backend_name())

        except Exception as e:
            logger.error(f"Failed to initialize database: {e}")
            raise

    @property
    def engine(self) -> Engine:
        """Get database engine."""
        if not self._engine:
            self._initialize_database()
        assert self._engine is not None
        return self._engine

    def get_session(self) -> Session:
        """Get a new database session."""
        if not self._session_factory:
            self._initialize_database()
        assert self._session_factory is not None
        return self._session_factory()

    @contextmanager
    def session_scope(self) -> Generator[Session, None, None]:
        """Provide a transactional scope around a series of operations."""
        session = self.get_session()
        try:
            yield session
            session.commit()
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    def close(self):
        """Close the database engine."""
        if self._engine:
            self._engine.dispose()
            self._engine = None
            self._session_factory = None


# Global database session manager
_db_manager: Optional[DatabaseSessionManager] = None


def get_database_manager() -> DatabaseSessionManager:
    """Get or create the global database session manager."""
    global _db_manager
    if _db_manager is None:
        _db_manager = DatabaseSessionManager()
    return _db_manager


def close_database_manager() -> None:
    """Dispose the global engine, if one was created."""
    global _db_manager
    if _db_manager is not None:
        _db_manager.close()
        _db_manager = None
