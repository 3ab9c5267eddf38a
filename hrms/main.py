"""
HRMS Backend - Main Application Entry Point
"""
import logging
from urllib.parse import urlparse, urlunparse

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy.exc import OperationalError

from hrms.api.router import api_router
from hrms.core.config import settings
from hrms.core.errors import register_exception_handlers
from hrms.core.logging import setup_logging
from hrms.core.security import hash_password
from hrms.db.session import SessionLocal
from hrms.models.user import User

# Setup logging first
setup_logging()
logger = logging.getLogger(__name__)


def _mask_database_url(url: str) -> str:
    """Mask password in DATABASE_URL for safe logging; show full path for sqlite."""
    parsed = urlparse(url)
    if parsed.scheme.startswith("sqlite") or not parsed.password:
        return url
    netloc = f"{parsed.username}:****@{parsed.hostname or ''}"
    if parsed.port:
        netloc += f":{parsed.port}"
    return urlunparse(parsed._replace(netloc=netloc))


app = FastAPI(
    title="HRMS Backend",
    description="Employees, attendance and leave with leave/attendance reconciliation",
    version=settings.VERSION or "1.0.0"
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.get_allowed_origins_list(),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

register_exception_handlers(app)

# Include all API routes under /api/v1
app.include_router(api_router, prefix="/api/v1")


@app.on_event("startup")
def startup_log_config() -> None:
    """Log DATABASE_URL and the calendar timezone at startup."""
    logger.info("DATABASE_URL (app): %s", _mask_database_url(settings.DATABASE_URL))
    logger.info("Calendar days are taken in %s", settings.CALENDAR_TZ)


@app.on_event("startup")
def bootstrap_initial_admin() -> None:
    """
    Create the initial login account if no user exists yet.
    """
    db = SessionLocal()
    try:
        if db.query(User.id).first() is not None:
            logger.info("Users already exist, skipping initial bootstrap")
            return

        db.add(User(
            username=settings.INITIAL_ADMIN_USERNAME,
            name="System Administrator",
            password_hash=hash_password(settings.INITIAL_ADMIN_PASSWORD),
            active=True,
        ))
        db.commit()
        logger.info("Initial admin user '%s' created", settings.INITIAL_ADMIN_USERNAME)
        logger.info("Password: [set via INITIAL_ADMIN_PASSWORD environment variable]")
    except OperationalError as e:
        db.rollback()
        if "no such table" in str(e).lower():
            logger.warning("Database tables not ready yet, skipping initial bootstrap")
        else:
            logger.error("Database error during admin bootstrap: %s", e)
    finally:
        db.close()
