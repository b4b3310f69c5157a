"""
Database connection and session management.
"""
import logging
import os

from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from db.models import Base

logger = logging.getLogger(__name__)

DATABASE_URL = os.getenv('DATABASE_URL', 'sqlite:///bookshelf.db')

# Session factory, bound to an engine by configure_database()
SessionLocal = sessionmaker(autocommit=False, autoflush=False, expire_on_commit=False)
engine = None


def configure_database(url: str = None):
    """Create the engine for ``url`` and bind the session factory to it."""
    global engine
    url = url or DATABASE_URL
    engine = create_engine(url, echo=False, pool_pre_ping=True)
    SessionLocal.configure(bind=engine)
    logger.info("Database configured: %s", engine.url.render_as_string(hide_password=True))
    return engine


def get_db():
    """Get database session."""
    if engine is None:
        configure_database()
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def init_database():
    """Initialize database tables."""
    if engine is None:
        configure_database()
    Base.metadata.create_all(engine)


def drop_database():
    """Drop all tables."""
    if engine is None:
        configure_database()
    Base.metadata.drop_all(engine)
