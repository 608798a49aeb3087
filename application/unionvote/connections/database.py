"""
SQLAlchemy database handle.

One ``Database`` is created at application startup and passed to the
repository; nothing connects at import time.
"""

from contextlib import contextmanager
from typing import Any, Dict, List

from sqlalchemy import create_engine, text
from sqlalchemy.orm import declarative_base, sessionmaker, Session
from sqlalchemy.pool import QueuePool

# Logger
from unionvote.logging.utils import get_app_logger
logger = get_app_logger("unionvote.database")

# Base class for ORM models
Base = declarative_base()


def normalize_database_url(url: str) -> str:
    """Use the psycopg3 driver for plain postgresql:// URLs."""
    if url and url.startswith("postgresql://"):
        return url.replace("postgresql://", "postgresql+psycopg://", 1)
    return url


def create_db_engine(url: str):
    url = normalize_database_url(url)
    if url.startswith("sqlite"):
        # SQLite connections are shared with the TestClient worker thread
        return create_engine(url, connect_args={"check_same_thread": False}, echo=False)
    return create_engine(
        url,
        poolclass=QueuePool,
        pool_size=10,           # Number of connections to maintain in pool
        max_overflow=20,        # Additional connections beyond pool_size
        pool_pre_ping=True,     # Validate connections before use
        pool_recycle=3600,      # Recycle connections after 1 hour
        echo=False,
    )


class Database:
    """Engine plus session factory with transaction helpers."""

    def __init__(self, url: str, auto_create: bool = False):
        self.engine = create_db_engine(url)
        self.SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=self.engine)
        if auto_create:
            self.create_all()
        logger.info(f"database_initialized | dialect={self.engine.dialect.name} auto_create={auto_create}")

    def create_all(self):
        # Register the tables on Base.metadata
        from unionvote.models import ballot, member, verification_code  # noqa: F401
        Base.metadata.create_all(bind=self.engine)

    @contextmanager
    def get_raw_transaction(self):
        """
        Session with transaction management for raw SQL operations.
        Commits on success, rolls back on any exception.
        """
        db: Session = self.SessionLocal()
        try:
            yield db
            db.commit()
        except Exception:
            db.rollback()
            raise
        finally:
            db.close()

    def execute_raw_sql_readonly(self, query: str, params: Dict[str, Any] = None) -> List[Dict[str, Any]]:
        """
        Execute a read-only query and return rows as dictionaries.

        Args:
            query: SQL query string
            params: Query parameters (optional)

        Returns:
            List of dictionaries representing query results
        """
        db: Session = self.SessionLocal()
        try:
            result = db.execute(text(query), params or {})
            columns = result.keys()
            return [dict(zip(columns, row)) for row in result.fetchall()]
        finally:
            db.close()

    def ping(self) -> bool:
        self.execute_raw_sql_readonly("SELECT 1")
        return True

    def dispose(self):
        self.engine.dispose()
