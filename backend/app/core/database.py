"""
Database connection and session management.
"""
import logging
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import declarative_base, sessionmaker
from sqlalchemy.pool import StaticPool

from app.core.config import DATABASE_DSN

logger = logging.getLogger(__name__)

# Bound to an engine by init_engine()
SessionLocal = sessionmaker(autoflush=False)

Base = declarative_base()


def init_engine(dsn: Optional[str] = None) -> Engine:
    """Create the engine and bind SessionLocal to it."""
    dsn = dsn or DATABASE_DSN
    if not dsn:
        raise ValueError("DATABASE_DSN not configured. Create app/config_local.py from config_local.example.py")

    if dsn.startswith("sqlite"):
        # Single shared connection so in-memory databases survive across sessions and threads
        engine = create_engine(
            dsn,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )
    else:
        engine = create_engine(
            dsn,
            pool_pre_ping=True,  # Verify connections before using
            pool_recycle=3600,  # Recycle connections after 1 hour
            pool_size=10,
            max_overflow=20,
            pool_timeout=60,
            echo=False,
        )

    SessionLocal.configure(bind=engine)
    return engine


def get_db():
    """Dependency for FastAPI to get database session."""
    db = SessionLocal()
    try:
        yield db
    finally:
        try:
            db.close()
        except Exception as e:
            # Connection may already be lost; the session is discarded either way
            logger.warning(f"Error closing database session (connection may be lost): {str(e)}")


def utcnow() -> datetime:
    """Current time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


def ensure_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Treat naive datetimes read back from the database as UTC."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)
