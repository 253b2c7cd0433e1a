from sqlalchemy import create_engine
from sqlalchemy.engine import make_url
from sqlalchemy.orm import declarative_base, sessionmaker
from app.core.config import settings


def _engine_options(url) -> dict:
    """Pool options for the configured backend"""
    options = {
        "pool_pre_ping": True,
        # Bounded pool: at most DB_POOL_SIZE connections in flight,
        # further requests wait up to DB_POOL_TIMEOUT seconds for one
        "pool_size": settings.DB_POOL_SIZE,
        "max_overflow": 0,
        "pool_timeout": settings.DB_POOL_TIMEOUT,
    }
    if make_url(url).get_backend_name() == "sqlite":
        # Sessions are created in the threadpool and used on the event loop
        options["connect_args"] = {"check_same_thread": False}
    return options


# Create database engine - manages connection pool
engine = create_engine(settings.database_url, **_engine_options(settings.database_url))

# Create session factory - each request gets a new session
# autocommit=False: Changes require explicit commit (prevents accidental commits)
# autoflush=False: Don't auto-flush before queries
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

# Base class for all database models
Base = declarative_base()


def init_db() -> None:
    """Create missing tables. Imports the models so they register on Base."""
    from app.models import user  # noqa: F401

    Base.metadata.create_all(bind=engine)


def get_db():
    """
    Dependency for getting database session.

    The session is returned to the pool after the request completes,
    on every exit path including exceptions.
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
