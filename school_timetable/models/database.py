"""
Database configuration and session management using SQLAlchemy.
"""

from typing import Generator

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

from school_timetable.config import SQLALCHEMY_DATABASE_URL


def build_engine(url: str = SQLALCHEMY_DATABASE_URL) -> Engine:
    """Create an engine; pooled settings only apply to server databases."""
    if url.startswith("sqlite"):
        return create_engine(url, connect_args={"check_same_thread": False}, echo=False)
    return create_engine(
        url,
        pool_size=10,
        max_overflow=20,
        pool_pre_ping=True,
        pool_recycle=3600,
        echo=False,
    )


engine = build_engine()

# Create session factory
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def get_db() -> Generator[Session, None, None]:
    """
    Dependency for getting a database session in FastAPI.
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def init_db(bind: Engine = engine) -> None:
    """
    Initialize database - create all tables.
    """
    from school_timetable.models.models import Base
    Base.metadata.create_all(bind=bind)


def close_db(bind: Engine = engine) -> None:
    """Close the connection pool; pooled connections are opened again on demand."""
    bind.dispose()
