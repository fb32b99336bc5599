"""
Database management layer for feedback persistence.

Provides abstraction for database connections, sessions, and health checks.
SQLite is the default for local development; any SQLAlchemy URL works.
"""

from typing import Generator
from sqlalchemy import create_engine, text, Engine
from sqlalchemy.orm import sessionmaker, Session
from config import get_settings
import logging

logger = logging.getLogger(__name__)


class DatabaseManager:
    """
    Manages database connections and sessions.

    Provides:
    - Engine creation (pooled for server databases)
    - Session factory
    - Table creation and health checks
    """

    def __init__(self, database_url: str | None = None):
        self.settings = get_settings()
        self.database_url = database_url or str(self.settings.database_url)
        self._engine: Engine | None = None
        self._session_factory: sessionmaker | None = None

    @property
    def engine(self) -> Engine:
        if self._engine is None:
            self._engine = self._create_engine()
        return self._engine

    @property
    def session_factory(self) -> sessionmaker:
        if self._session_factory is None:
            self._session_factory = sessionmaker(
                bind=self.engine,
                autocommit=False,
                autoflush=False
            )
        return self._session_factory

    @property
    def is_sqlite(self) -> bool:
        return self.database_url.startswith("sqlite")

    def _create_engine(self) -> Engine:
        """
        Create the SQLAlchemy engine.

        Pool sizing only applies to server databases; SQLite gets
        check_same_thread disabled so background threads can write.
        """
        logger.info(f"Creating database engine for: {self._mask_password(self.database_url)}")

        if self.is_sqlite:
            engine = create_engine(
                self.database_url,
                connect_args={"check_same_thread": False},
                echo=self.settings.log_level == "DEBUG",
            )
        else:
            engine = create_engine(
                self.database_url,
                pool_size=self.settings.db_pool_size,
                max_overflow=self.settings.db_max_overflow,
                pool_timeout=self.settings.db_pool_timeout,
                pool_pre_ping=True,  # Verify connections before using
                echo=self.settings.log_level == "DEBUG",
            )

        logger.info("Database engine created successfully")
        return engine

    def create_tables(self) -> None:
        """Create all tables registered on the ORM metadata."""
        from shared.models.entities import Base

        Base.metadata.create_all(bind=self.engine)

    def get_session(self) -> Session:
        return self.session_factory()

    def health_check(self) -> bool:
        """
        Check database connectivity.

        Returns:
            bool: True if database is accessible, False otherwise
        """
        try:
            with self.engine.connect() as conn:
                conn.execute(text("SELECT 1"))
            logger.info("Database health check passed")
            return True
        except Exception as e:
            logger.error(f"Database health check failed: {e}")
            return False

    def close(self):
        """Close the database engine and dispose of connections."""
        if self._engine:
            self._engine.dispose()
            logger.info("Database engine closed")

    @staticmethod
    def _mask_password(url: str) -> str:
        """Mask the password in a database URL for logging."""
        if "@" in url and ":" in url:
            parts = url.split("@")
            if len(parts) == 2:
                credentials = parts[0]
                if ":" in credentials:
                    user_pass = credentials.split(":")
                    if len(user_pass) >= 3:
                        # Keep protocol and user, mask password
                        return f"{':'.join(user_pass[:-1])}:****@{parts[1]}"
        return url


# Global database manager instance
_db_manager: DatabaseManager | None = None


def get_db_manager() -> DatabaseManager:
    """Get or create the global database manager instance."""
    global _db_manager
    if _db_manager is None:
        _db_manager = DatabaseManager()
    return _db_manager


def reset_db_manager():
    """Dispose and forget the global database manager (useful for testing)."""
    global _db_manager
    if _db_manager is not None:
        _db_manager.close()
    _db_manager = None


def get_db() -> Generator[Session, None, None]:
    """
    Dependency injection for FastAPI endpoints.

    Usage:
        @app.get("/")
        def endpoint(db: Session = Depends(get_db)):
            return db.query(Model).all()
    """
    db_manager = get_db_manager()
    session = db_manager.get_session()
    try:
        yield session
    finally:
        session.close()
