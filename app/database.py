"""
Database Configuration Module

SQLAlchemy 2.0 engine and session factory for the movie and review stores.

Session per store call
======================
The stores expose single-record operations only:

1. A store method opens a new session from the factory
2. It performs exactly one read or one write
3. It commits (for writes) and closes the session

No transaction spans a movie write and a review write. Route handlers
receive the session *factory* through dependency injection so tests can
point every store at a throwaway database, and the worker threads of a
cascading delete each get their own session.
"""

from collections.abc import Callable

from sqlalchemy import create_engine
from sqlalchemy.orm import DeclarativeBase, Session, sessionmaker

from app.config import get_settings

settings = get_settings()


# =============================================================================
# Database Engine
# =============================================================================
# Key parameters:
# - pool_size: Number of connections to keep open permanently
# - max_overflow: How many extra connections can be created during high load
# - pool_pre_ping: Test connection health before using (prevents stale connections)
# - echo: Log all SQL statements (useful for debugging, disable in production)

engine = create_engine(
    settings.database_url,
    pool_size=settings.db_pool_size,
    max_overflow=settings.db_max_overflow,
    pool_pre_ping=True,
    echo=settings.debug,
)


# =============================================================================
# Session Factory
# =============================================================================
# - autoflush=False: Don't auto-flush before queries (more predictable behavior)
# - expire_on_commit=False: records returned by a store stay readable after
#   the store has committed and closed its session

SessionLocal = sessionmaker(
    autocommit=False,
    autoflush=False,
    expire_on_commit=False,
    bind=engine,
)

SessionFactory = Callable[[], Session]


# =============================================================================
# Base Model Class
# =============================================================================
class Base(DeclarativeBase):
    """
    Base class for all SQLAlchemy models.

        class Movie(Base):
            __tablename__ = "movies"
            ...

    Alembic uses Base.metadata to discover models for migrations.
    """
    pass


# =============================================================================
# Dependency Injection
# =============================================================================
def get_session_factory() -> SessionFactory:
    """
    Session factory dependency for FastAPI.

    Stores open their own short-lived sessions from this factory.
    Override it in tests:

        app.dependency_overrides[get_session_factory] = lambda: TestSession

    Returns:
        Callable producing new SQLAlchemy sessions
    """
    return SessionLocal


# =============================================================================
# Utility Functions
# =============================================================================
def create_tables() -> None:
    """
    Create all database tables.

    WARNING: In production, use Alembic migrations instead!
    """
    Base.metadata.create_all(bind=engine)
