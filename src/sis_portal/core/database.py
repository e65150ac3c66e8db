"""Database connection and session management.

This module handles the database connection using SQLAlchemy. SQLite is the
default store; any SQLAlchemy URL can be supplied through DATABASE_URL.
"""

from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker

from sis_portal.config import DATA_DIR, DATABASE_URL
from sis_portal.models.base import Base
# Import models to ensure they are registered with Base.metadata
from sis_portal import models  # noqa: F401

_is_sqlite = DATABASE_URL.startswith("sqlite")

if _is_sqlite:
    # Ensure data directory exists
    DATA_DIR.mkdir(parents=True, exist_ok=True)

engine = create_engine(
    DATABASE_URL,
    connect_args={"check_same_thread": False} if _is_sqlite else {},
)

if _is_sqlite:

    @event.listens_for(engine, "connect")
    def _enable_sqlite_foreign_keys(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def init_db():
    Base.metadata.create_all(bind=engine)


def get_db():
    """Dependency for getting a database session."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
