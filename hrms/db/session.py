"""
Database session management
"""
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from hrms.core.config import settings
from hrms.db.base import Base


def engine_options(database_url: str, timeout_seconds: int) -> dict:
    """
    Engine keyword arguments that bound every store operation by timeout_seconds.

    SQLite waits at most timeout_seconds on a locked database; PostgreSQL aborts
    statements after the same budget. Pool checkout is bounded in both cases.
    """
    if database_url.startswith("sqlite"):
        return {
            "connect_args": {"check_same_thread": False, "timeout": timeout_seconds},
        }
    options = {"pool_pre_ping": True, "pool_timeout": timeout_seconds}
    if database_url.startswith("postgresql"):
        options["connect_args"] = {
            "connect_timeout": timeout_seconds,
            "options": f"-c statement_timeout={timeout_seconds * 1000}",
        }
    return options


engine = create_engine(
    settings.DATABASE_URL,
    echo=False,
    **engine_options(settings.DATABASE_URL, settings.STORE_TIMEOUT_SECONDS)
)

# Create all tables automatically on startup for SQLite
if settings.DATABASE_URL.startswith("sqlite"):
    import hrms.models  # noqa: F401
    Base.metadata.create_all(bind=engine)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
