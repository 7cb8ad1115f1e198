"""FastAPI application entry point."""
import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from eventdash.config import settings
from eventdash.database import Base, engine
from eventdash.errors import DomainError, ValidationError
from eventdash.routers.actions import failure_response
from eventdash.services.response_cache import ResponseCache

# Import routers
from eventdash.routers import users, events, reminders

# Import all models so Base.metadata knows about them
from eventdash.models.user import User          # noqa: F401
from eventdash.models.event import Event        # noqa: F401
from eventdash.models.reminder import Reminder  # noqa: F401

logging.basicConfig(
    level=settings.LOG_LEVEL.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

app = FastAPI(
    title="Event Dashboard",
    description="Event management dashboard: events, reminders and the due-reminder feed",
    version="0.1.0",
)

# One listing cache per process, injected into the query engine
app.state.response_cache = ResponseCache(
    ttl_seconds=settings.CACHE_TTL_SECONDS,
    max_entries=settings.CACHE_MAX_ENTRIES,
)

# CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS.split(","),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Register routers
app.include_router(users.router, prefix="/api/users", tags=["Users"])
app.include_router(events.router, prefix="/api/events", tags=["Events"])
app.include_router(reminders.router, prefix="/api/reminders", tags=["Reminders"])


@app.exception_handler(DomainError)
async def domain_error_handler(request: Request, exc: DomainError):
    """Domain errors raised outside run_action (e.g. by require_user) use the same envelope."""
    return failure_response(exc)


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    first = errors[0] if errors else {}
    location = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
    message = f"{location}: {first.get('msg', 'invalid value')}" if location else first.get("msg", "Invalid input")
    logger.warning("Rejected request to %s: %s", request.url.path, message)
    return failure_response(ValidationError(message))


@app.on_event("startup")
def on_startup():
    """Create database tables on startup (for SQLite dev mode)."""
    if settings.DATABASE_URL.startswith("sqlite"):
        Base.metadata.create_all(bind=engine)


@app.get("/api/health")
def health_check():
    return {"status": "ok"}
