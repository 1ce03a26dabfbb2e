"""
Database configuration and session management for the Sweet Shop service.

This module sets up the database connection using SQLAlchemy. Instead of a
module-level engine, the application constructs a `Database` handle at startup
and disposes of it at shutdown.
"""
import logging
from typing import Optional

from fastapi import Request
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, declarative_base, sessionmaker
from sqlalchemy.pool import StaticPool

from .config import DATABASE_URL

logger = logging.getLogger(__name__)

# Base class for declarative models
Base = declarative_base()


class Database:
    """
    Owns the SQLAlchemy engine and session factory for one application.

    Attributes:
        url (str): Database URL the engine was created for
        engine: SQLAlchemy engine
        SessionLocal: Session factory bound to the engine
    """

    def __init__(self, url: Optional[str] = None):
        self.url = url or DATABASE_URL
        engine_kwargs = {}
        if self.url.startswith("sqlite"):
            # Requests are served from worker threads
            engine_kwargs["connect_args"] = {"check_same_thread": False}
            if self.url in ("sqlite://", "sqlite:///:memory:"):
                # One shared connection, otherwise every session sees an empty database
                engine_kwargs["poolclass"] = StaticPool
        self.engine = create_engine(self.url, **engine_kwargs)
        self.SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=self.engine)

    def create_all(self) -> None:
        """Create all tables registered on `Base`."""
        # Models must be imported so their tables are registered
        from . import models  # noqa: F401

        Base.metadata.create_all(bind=self.engine)

    def session(self) -> Session:
        return self.SessionLocal()

    def close(self) -> None:
        """Dispose of the engine and its connection pool."""
        logger.info("Closing database engine")
        self.engine.dispose()


def get_db(request: Request):
    """
    Dependency function that provides a database session.

    Yields:
        Session: SQLAlchemy database session bound to the application's Database

    Usage:
        Use as a FastAPI dependency to inject database sessions into route handlers.
    """
    db = request.app.state.database.session()
    try:
        yield db
    finally:
        db.close()
