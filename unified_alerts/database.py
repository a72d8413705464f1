# unified_alerts/database.py
"""
Database connection, session management, and table creation.
Uses SQLAlchemy with PostgreSQL + PostGIS. All models are auto-imported here
so create_tables() creates every table in one call.
"""

from contextlib import contextmanager

from sqlalchemy import create_engine, text
from sqlalchemy.orm import declarative_base, sessionmaker
from unified_alerts.config import settings

engine = create_engine(
    settings.database_url,
    pool_pre_ping=True,          # Auto-reconnect if DB connection drops
    pool_size=2,
    max_overflow=0,
    echo=False,                  # Set True to log all SQL queries (debug only)
)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

Base = declarative_base()


@contextmanager
def session_scope():
    """Yields a DB session for one run and closes it afterwards."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def check_connection(db) -> None:
    """Raises SQLAlchemyError if the store cannot be reached."""
    db.execute(text("SELECT 1"))


def create_tables():
    """
    Creates all DB tables. Safe to call multiple times.
    unified_incidents and traffic_cameras are normally owned by the ingester;
    create_all only creates them when they are missing.
    """
    from unified_alerts.models.incident import UnifiedIncident       # noqa
    from unified_alerts.models.traffic_camera import TrafficCamera   # noqa
    from unified_alerts.models.camera_capture import CameraCapture   # noqa

    with engine.begin() as conn:
        conn.execute(text("CREATE EXTENSION IF NOT EXISTS postgis"))
    Base.metadata.create_all(bind=engine)
