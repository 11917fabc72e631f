"""
Database connection and session management.
"""
from sqlalchemy import create_engine, text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import sessionmaker, Session
from sqlalchemy.pool import QueuePool, StaticPool
from contextlib import contextmanager
from typing import Generator

from core.logger import get_logger
from database.models import Base

logger = get_logger("database")


class Database:
    """Database connection manager."""

    def __init__(
        self,
        database_url: str,
        pool_size: int = 10,
        max_overflow: int = 20,
        timeout_seconds: int = 5
    ):
        """
        Initialize database connection.

        Args:
            database_url: SQLAlchemy connection URL (PostgreSQL in production, SQLite locally)
            pool_size: Number of connections to maintain
            max_overflow: Maximum overflow connections
            timeout_seconds: Connect, pool checkout and (PostgreSQL) statement timeout
        """
        self.database_url = database_url
        if database_url.startswith("sqlite"):
            engine_kwargs = {
                "connect_args": {"check_same_thread": False, "timeout": timeout_seconds},
            }
            if ":memory:" in database_url or database_url in ("sqlite://", "sqlite:///"):
                # One shared connection, otherwise every session sees an empty database
                engine_kwargs["poolclass"] = StaticPool
        else:
            engine_kwargs = {
                "poolclass": QueuePool,
                "pool_size": pool_size,
                "max_overflow": max_overflow,
                "pool_timeout": timeout_seconds,
                "connect_args": {"connect_timeout": timeout_seconds},
            }
            if database_url.startswith("postgresql"):
                # Slow statements on a live connection surface as OperationalError too
                engine_kwargs["connect_args"]["options"] = f"-c statement_timeout={timeout_seconds * 1000}"
        self.engine = create_engine(
            database_url,
            pool_pre_ping=True,  # Verify connections before using
            echo=False,  # Set to True for SQL query logging
            **engine_kwargs
        )
        self.SessionLocal = sessionmaker(autocommit=False, autoflush=False, expire_on_commit=False, bind=self.engine)
        logger.info(f"Database engine initialized: {database_url.split('@')[1] if '@' in database_url else 'local'}")

    def create_tables(self):
        """Create all database tables."""
        Base.metadata.create_all(bind=self.engine)
        logger.info("Database tables created")

    def ping(self) -> bool:
        """Return True if the database answers a trivial query."""
        try:
            with self.engine.connect() as conn:
                conn.execute(text("SELECT 1"))
            return True
        except SQLAlchemyError as e:
            logger.warning(f"Database ping failed: {e}")
            return False

    @contextmanager
    def get_session(self) -> Generator[Session, None, None]:
        """
        Get database session context manager.

        Usage:
            with db.get_session() as session:
                # Use session
                pass
        """
        session = self.SessionLocal()
        try:
            yield session
            session.commit()
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    def dispose(self):
        self.engine.dispose()
        logger.info("Database connections closed")
