"""
Database session management - SQLAlchemy engine and session factory.
This module provides the database connection and session dependency for FastAPI.
"""

from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from app.core.config import settings

# ---------------------------------------------------------------------------
# DATABASE ENGINE
# ---------------------------------------------------------------------------
# pool_pre_ping=True: check a pooled connection with "SELECT 1" before use,
# so a database restart doesn't surface as errors on the next requests.
engine = create_engine(
    settings.DATABASE_URL,
    pool_pre_ping=True,
)

# ---------------------------------------------------------------------------
# SESSION FACTORY
# ---------------------------------------------------------------------------
# autocommit=False: every write path calls db.commit() explicitly. The claim
# workflow depends on this - its ownership write and the telemetry fix-up
# are committed separately.
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def get_db():
    """
    FastAPI dependency that provides a database session.

    Usage in a route:
        @router.get("/farms")
        def list_farms(db: Session = Depends(get_db)):
            ...

    One session per request; close() always runs, even if the route raises,
    and returns the connection to the pool.
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
