"""
Session management module for database operations.
Provides utilities for managing database sessions safely.
"""

from contextlib import contextmanager
from typing import Callable, Generator, Optional
from sqlalchemy import text
from sqlalchemy.orm import Session
from sqlalchemy.exc import SQLAlchemyError

from cycletrack.utils.logger import get_logger

# Set up logging
logger = get_logger(__name__)


class DatabaseSession:
    """
    Database session manager with automatic rollback on errors.

    Args:
        session_factory: Callable returning a new Session; defaults to the
            application's configured sessionmaker
    """

    def __init__(self, session_factory: Optional[Callable[[], Session]] = None):
        """Initialize the database session manager."""
        if session_factory is None:
            from cycletrack.database.config import SessionLocal
            session_factory = SessionLocal
        self.session_factory = session_factory

    @contextmanager
    def get_session(self) -> Generator[Session, None, None]:
        """
        Context manager for database sessions.

        Automatically commits on success and rolls back on error, so
        everything done inside the block is one transaction.

        Yields:
            Session: SQLAlchemy database session

        Example:
            with db_session.get_session() as session:
                profile = session.query(CycleProfile).first()
        """
        session = self.session_factory()
        try:
            yield session
            session.commit()
            logger.debug("Database session committed successfully")
        except SQLAlchemyError as e:
            session.rollback()
            logger.error(f"Database error occurred, rolling back: {str(e)}")
            raise
        except Exception as e:
            session.rollback()
            logger.error(f"Unexpected error occurred, rolling back: {str(e)}")
            raise
        finally:
            session.close()

    @contextmanager
    def transaction(self, session: Optional[Session] = None) -> Generator[Session, None, None]:
        """
        Run inside an existing session, or a new committed one.

        Args:
            session: Existing session to use, or None to create new one

        Yields:
            Session: SQLAlchemy database session
        """
        if session is not None:
            # Caller owns the session and its commit
            yield session
        else:
            with self.get_session() as new_session:
                yield new_session

    def test_connection(self) -> bool:
        """
        Test database connection.

        Returns:
            bool: True if connection successful, False otherwise
        """
        try:
            with self.get_session() as session:
                session.execute(text("SELECT 1"))
            logger.info("Database connection test successful")
            return True
        except SQLAlchemyError as e:
            logger.error(f"Database connection test failed: {str(e)}")
            return False


_default_session: Optional[DatabaseSession] = None


def get_default_session() -> DatabaseSession:
    """Session manager bound to the configured database, created on first use."""
    global _default_session
    if _default_session is None:
        _default_session = DatabaseSession()
    return _default_session
