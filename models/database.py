"""
Database Configuration Module
=============================

Provides the SQLAlchemy engine and session management for the GPSR
compliance records store. Defaults to a local SQLite file; point
GPSR_DATABASE_URL at PostgreSQL or another backend for shared deployments.
"""

from contextlib import contextmanager
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, declarative_base

from config.settings import settings

DATABASE_URL = settings.database_url


def build_engine(url: str):
    """Create an engine, applying the SQLite threading flag when needed."""
    connect_args = {}
    if url.startswith("sqlite"):
        connect_args["check_same_thread"] = False  # Required for SQLite
    return create_engine(url, echo=False, connect_args=connect_args)


engine = build_engine(DATABASE_URL)

# Session factory
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

# Base class for declarative models
Base = declarative_base()


@contextmanager
def get_session():
    """
    Context manager for database sessions.

    Commits on success and rolls back on failure.

    Usage:
        with get_session() as session:
            service = AccessControlService(session)
    """
    session = SessionLocal()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


def init_db(bind=None):
    """
    Initialize the database schema.

    Creates all tables defined in the models if they don't exist.
    Safe to call multiple times.
    """
    from . import entities  # noqa: F401 - Ensure models are loaded
    Base.metadata.create_all(bind=bind or engine)


def reset_db(bind=None):
    """
    Reset the database by dropping and recreating all tables.

    WARNING: This destroys all data. Use only for development/testing.
    """
    from . import entities  # noqa: F401
    Base.metadata.drop_all(bind=bind or engine)
    Base.metadata.create_all(bind=bind or engine)
