# WORKFLOW: Database session management and connection handling.
# Used by: Import pipeline, API endpoints, scripts
# Functions:
# 1. create_db_engine() - Build an engine (SQLite gets SAVEPOINT support)
# 2. get_session_factory() - Lazy session factory bound to the configured engine
# 3. get_db() - Dependency injection for FastAPI endpoints
# 4. init_db() - Create tables
# 5. check_db_connection() - Health check for database connectivity
#
# Database lifecycle:
# Startup: init_db() -> Create tables -> Check connection
# Import run: session factory -> one transaction -> commit or rollback -> close
# Health checks: check_db_connection() -> Monitor connectivity

from sqlalchemy import create_engine, event, text
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool
from core.config import settings
import logging

logger = logging.getLogger(__name__)

# Lazy-loaded database engine and session factory
_engine = None
_SessionLocal = None


def create_db_engine(database_url: str, echo: bool = False) -> Engine:
    """
    Create a database engine for the given URL.

    SQLite's driver manages transactions on its own and breaks SAVEPOINTs,
    which the importer relies on for per-row failures, so SQLite engines get
    explicit BEGIN handling.
    """
    if database_url.startswith("sqlite"):
        engine = create_engine(
            database_url,
            poolclass=StaticPool,
            echo=echo,
            connect_args={"check_same_thread": False},
        )

        @event.listens_for(engine, "connect")
        def _disable_driver_transactions(dbapi_connection, connection_record):
            dbapi_connection.isolation_level = None

        @event.listens_for(engine, "begin")
        def _begin(conn):
            conn.exec_driver_sql("BEGIN")

        return engine

    return create_engine(
        database_url,
        pool_pre_ping=True,
        echo=echo,
        connect_args={
            "options": "-c timezone=utc"
        }
    )


def get_engine():
    """Get database engine (lazy-loaded)."""
    global _engine
    if _engine is None:
        _engine = create_db_engine(settings.database_url, echo=settings.debug)
    return _engine


def get_session_factory():
    """Get session factory (lazy-loaded)."""
    global _SessionLocal
    if _SessionLocal is None:
        _SessionLocal = sessionmaker(autoflush=False, bind=get_engine())
    return _SessionLocal


def get_db():
    """
    Dependency to get database session.
    Yields a database session and ensures it's closed after use.
    """
    SessionLocal = get_session_factory()
    db = SessionLocal()
    try:
        yield db
    except Exception as e:
        logger.error(f"Database session error: {e}")
        db.rollback()
        raise
    finally:
        db.close()


def init_db(engine=None):
    """
    Initialize database tables.
    """
    from db.models import Base

    try:
        Base.metadata.create_all(bind=engine or get_engine())
        logger.info("Database tables created successfully")
    except Exception as e:
        logger.error(f"Database initialization failed: {e}")
        raise


def check_db_connection(engine=None) -> bool:
    """
    Check if database connection is working.
    """
    try:
        with (engine or get_engine()).connect() as conn:
            conn.execute(text("SELECT 1")).fetchone()
        return True
    except Exception as e:
        logger.error(f"Database connection check failed: {e}")
        return False
