"""
Database Module for the Store Back-Office

This module handles database initialization, connection management, and session handling.
"""

import os
import logging
from contextlib import contextmanager
from typing import Generator, Optional

from sqlalchemy import create_engine, event, text
from sqlalchemy.orm import sessionmaker, scoped_session, Session
from sqlalchemy.pool import StaticPool

from models import Base, create_performance_indexes
from config import Config

# Configure logging
logger = logging.getLogger(__name__)

class DatabaseManager:
    """Manages database connections and sessions."""

    def __init__(self, database_url: Optional[str] = None):
        """Initialize database manager."""
        self.database_url = database_url or self._get_database_url()
        self.engine = None
        self.session_factory = None
        self._scoped_session = None

    def _get_database_url(self) -> str:
        """Get database URL from the environment or configuration, defaulting to a local SQLite file."""
        database_url = os.getenv('DATABASE_URL') or Config.DATABASE_URL
        if database_url:
            return database_url

        db_path = os.path.join(os.path.dirname(__file__), 'database.db')
        logger.info("Using development SQLite database")
        return f"sqlite:///{db_path}"

    @property
    def is_sqlite(self) -> bool:
        return self.database_url.startswith('sqlite')

    def initialize(self, create_tables: bool = False) -> None:
        """Initialize database connection."""
        try:
            if self.is_sqlite:
                in_memory = ':memory:' in self.database_url or self.database_url == 'sqlite://'
                engine_kwargs = {
                    'echo': Config.DATABASE_ECHO,
                    'connect_args': {
                        'check_same_thread': False,  # Sessions are handed between request threads
                        'timeout': 30,
                    },
                    'pool_pre_ping': True,
                }
                if in_memory:
                    # One shared connection, otherwise every checkout gets an empty database
                    engine_kwargs['poolclass'] = StaticPool
                self.engine = create_engine(self.database_url, **engine_kwargs)

                # Enforce foreign keys so junction rows cannot point at missing rows
                @event.listens_for(self.engine, "connect")
                def set_sqlite_pragma(dbapi_connection, connection_record):
                    cursor = dbapi_connection.cursor()
                    cursor.execute("PRAGMA foreign_keys=ON")
                    if not in_memory:
                        cursor.execute("PRAGMA journal_mode=WAL")
                    cursor.close()

            else:
                # PostgreSQL settings
                self.engine = create_engine(
                    self.database_url,
                    echo=Config.DATABASE_ECHO,
                    pool_size=Config.DATABASE_POOL_SIZE,
                    max_overflow=Config.DATABASE_MAX_OVERFLOW,
                    pool_timeout=Config.DATABASE_POOL_TIMEOUT,
                    pool_pre_ping=True,
                    pool_recycle=Config.DATABASE_POOL_RECYCLE,
                    connect_args={
                        'options': f"-c statement_timeout={Config.DATABASE_STATEMENT_TIMEOUT_MS}"
                    },
                )

            # Create session factory
            self.session_factory = sessionmaker(
                bind=self.engine,
                autoflush=False,
                expire_on_commit=False
            )

            # Create scoped session for thread-safe access
            self._scoped_session = scoped_session(self.session_factory)

            if create_tables:
                logger.info("Creating database tables...")
                self.create_tables()

            # Mask sensitive information in logs
            safe_url = self.database_url
            if '@' in safe_url:
                safe_url = safe_url.split('://')[0] + '://***@' + safe_url.split('@')[1]
            logger.info(f"Database initialized successfully: {safe_url}")

        except Exception as e:
            logger.error(f"Failed to initialize database: {e}")
            raise

    def create_tables(self) -> None:
        """Create all database tables."""
        try:
            Base.metadata.create_all(self.engine)
            create_performance_indexes(self.engine)
            logger.info("Database tables created successfully")

        except Exception as e:
            logger.error(f"Failed to create database tables: {e}")
            raise

    def drop_tables(self) -> None:
        """Drop all database tables. Use with caution!"""
        try:
            Base.metadata.drop_all(self.engine)
            logger.warning("All database tables dropped")

        except Exception as e:
            logger.error(f"Failed to drop database tables: {e}")
            raise

    def get_session(self) -> Session:
        """Get a database session."""
        if not self._scoped_session:
            raise RuntimeError("Database not initialized. Call initialize() first.")

        return self._scoped_session()

    @contextmanager
    def session_scope(self) -> Generator[Session, None, None]:
        """Provide a transactional scope around a series of operations.

        Commits once when the block exits normally; any exception rolls the
        whole unit back before it propagates. The session is always closed.
        """
        session = self.get_session()
        try:
            yield session
            session.commit()
        except Exception as e:
            session.rollback()
            logger.debug(f"Database session rolled back: {e}")
            raise
        finally:
            session.close()

    def close(self) -> None:
        """Close database connections."""
        if self._scoped_session:
            self._scoped_session.remove()

        if self.engine:
            self.engine.dispose()

        logger.info("Database connections closed")

    def health_check(self) -> dict:
        """Check database health."""
        try:
            with self.session_scope() as session:
                result = session.execute(text("SELECT 1")).scalar()

                return {
                    'status': 'healthy',
                    'database': self.database_url.split('@')[-1] if '@' in self.database_url else self.database_url,
                    'connection_test': result == 1
                }

        except Exception as e:
            logger.error(f"Database health check failed: {e}")
            return {
                'status': 'unhealthy',
                'error': str(e)
            }

# Global database manager instance
db_manager = DatabaseManager()

# Convenience functions for common operations
def init_database(database_url: Optional[str] = None, create_tables: bool = True) -> None:
    """Initialize the global database manager."""
    global db_manager
    if database_url:
        db_manager = DatabaseManager(database_url)
    db_manager.initialize(create_tables)

@contextmanager
def db_session_scope() -> Generator[Session, None, None]:
    """Get a transactional database session scope."""
    with db_manager.session_scope() as session:
        yield session

def close_database() -> None:
    """Close the global database manager."""
    db_manager.close()

def database_health_check() -> dict:
    """Check database health."""
    return db_manager.health_check()
