"""Engine, session and error handling for the feedback database."""

import os
import logging
from contextlib import contextmanager
from functools import wraps
from typing import Any, Dict, Iterator, Optional

from sqlalchemy import create_engine, Engine, event, text
from sqlalchemy.orm import sessionmaker, Session
from sqlalchemy.pool import QueuePool, StaticPool
from sqlalchemy.exc import SQLAlchemyError, DisconnectionError

from ..config.settings import DatabaseConfig
from ..models.database import Base

logger = logging.getLogger(__name__)

DEFAULT_DATABASE_URL = 'sqlite:///feedback_quality.db'
_IN_MEMORY_URLS = ('sqlite://', 'sqlite:///', 'sqlite:///:memory:')


class DatabaseError(Exception):
    """Raised when a feedback query or schema operation fails."""


class ConnectionError(DatabaseError):
    """Raised when the database drops the connection mid-operation."""


def is_in_memory(url: str) -> bool:
    return url in _IN_MEMORY_URLS or ':memory:' in url


class DatabaseManager:
    """Owns the SQLAlchemy engine and hands out transactional sessions.

    The engine is built lazily on first use. SQLite gets foreign keys
    switched on for every connection; in-memory SQLite is pinned to one
    shared connection so the schema survives between sessions.
    """

    def __init__(self, database_url: Optional[str] = None, echo: bool = False,
                 pool_size: int = 10, max_overflow: int = 20):
        self.database_url = (
            database_url
            or os.getenv('DATABASE_URL')
            or os.getenv('DB_URL')
            or DEFAULT_DATABASE_URL
        )
        self.echo = echo or os.getenv('DB_ECHO', 'false').lower() == 'true'
        self.pool_size = pool_size
        self.max_overflow = max_overflow
        self.engine: Optional[Engine] = None
        self.SessionLocal: Optional[sessionmaker] = None

    @classmethod
    def from_config(cls, config: DatabaseConfig) -> 'DatabaseManager':
        return cls(config.url, echo=config.echo,
                   pool_size=config.pool_size, max_overflow=config.max_overflow)

    @property
    def is_sqlite(self) -> bool:
        return self.database_url.startswith('sqlite')

    def _engine_options(self) -> Dict[str, Any]:
        if not self.is_sqlite:
            return {
                'poolclass': QueuePool,
                'pool_size': self.pool_size,
                'max_overflow': self.max_overflow,
                'pool_pre_ping': True,
                'pool_recycle': 3600,
            }

        options: Dict[str, Any] = {'connect_args': {'check_same_thread': False}}
        if is_in_memory(self.database_url):
            options['poolclass'] = StaticPool
        return options

    def initialize(self) -> None:
        """Build the engine and session factory if not done already."""
        if self.engine is not None:
            return

        try:
            engine = create_engine(self.database_url, echo=self.echo, **self._engine_options())
        except Exception as e:
            logger.error(f"Could not create engine for {self.database_url}: {e}")
            raise

        if self.is_sqlite:
            @event.listens_for(engine, "connect")
            def enable_foreign_keys(dbapi_connection, connection_record):
                cursor = dbapi_connection.cursor()
                cursor.execute("PRAGMA foreign_keys=ON")
                cursor.close()

        self.engine = engine
        self.SessionLocal = sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)
        logger.info(f"Feedback database ready ({engine.dialect.name})")

    def _run_schema(self, action: str) -> None:
        self.initialize()
        try:
            if action == 'create':
                Base.metadata.create_all(bind=self.engine)
            else:
                Base.metadata.drop_all(bind=self.engine)
        except SQLAlchemyError as e:
            logger.error(f"Schema {action} failed: {e}")
            raise
        logger.info(f"Schema {action} complete: {', '.join(sorted(Base.metadata.tables))}")

    def create_tables(self) -> None:
        self._run_schema('create')

    def drop_tables(self) -> None:
        """Drop every feedback table. Data is lost."""
        self._run_schema('drop')

    @contextmanager
    def get_session(self) -> Iterator[Session]:
        """Yield a session that commits on success and rolls back on error."""
        self.initialize()
        session = self.SessionLocal()
        try:
            yield session
            session.commit()
        except Exception:
            session.rollback()
            logger.exception("Rolled back feedback database session")
            raise
        finally:
            session.close()

    def health_check(self) -> bool:
        try:
            with self.get_session() as session:
                session.execute(text("SELECT 1"))
        except Exception as e:
            logger.warning(f"Database health check failed: {e}")
            return False
        return True

    def close(self) -> None:
        if self.engine is None:
            return
        self.engine.dispose()
        self.engine = None
        self.SessionLocal = None
        logger.info("Feedback database engine disposed")


def init_database(database_url: Optional[str] = None) -> DatabaseManager:
    """Create a manager for ``database_url`` and make sure the tables exist."""
    db_manager = DatabaseManager(database_url)
    db_manager.create_tables()
    return db_manager


def handle_db_exceptions(func):
    """Re-raise SQLAlchemy failures from ``func`` as DatabaseError."""
    @wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except DisconnectionError as e:
            logger.error(f"{func.__name__} lost the database connection: {e}")
            raise ConnectionError(f"Database connection lost: {e}") from e
        except SQLAlchemyError as e:
            logger.error(f"{func.__name__} failed: {e}")
            raise DatabaseError(f"Database operation failed: {e}") from e
    return wrapper
