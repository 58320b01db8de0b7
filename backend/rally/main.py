"""FastAPI application entry point."""
import logging
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from rally.config import settings
from rally.database import Base, engine
from rally.errors import AttendanceError, TransientStoreError

# Import routers
from rally.routers import attendance, events, maintenance, organizer

# Import all models so Base.metadata knows about them
from rally.models.event import Event                        # noqa: F401
from rally.models.attendance import AttendanceRecord        # noqa: F401
from rally.models.attendance_log import AttendanceLogEntry  # noqa: F401
from rally.models.feedback import EventFeedback             # noqa: F401

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

app = FastAPI(
    title="Rally Attendance",
    description="RSVP, waitlist and attendance lifecycle for capacity-bounded sports events",
    version="0.1.0",
)

# CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS.split(","),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(AttendanceError)
def handle_attendance_error(request: Request, exc: AttendanceError):
    logger.info("%s %s rejected: %s", request.method, request.url.path, exc.code.value)
    return JSONResponse(status_code=exc.http_status, content=exc.to_dict())


@app.exception_handler(TransientStoreError)
def handle_transient_error(request: Request, exc: TransientStoreError):
    return JSONResponse(status_code=503, content=exc.to_dict(), headers={"Retry-After": "1"})


# Register routers
app.include_router(events.router, prefix="/api/events", tags=["Events"])
app.include_router(attendance.router, prefix="/api/events", tags=["Attendance"])
app.include_router(organizer.router, prefix="/api/events", tags=["Organizer"])
app.include_router(maintenance.router, prefix="/api/maintenance", tags=["Maintenance"])


@app.on_event("startup")
def on_startup():
    """Create database tables on startup (for SQLite dev mode)."""
    if settings.DATABASE_URL.startswith("sqlite"):
        Base.metadata.create_all(bind=engine)


@app.get("/api/health")
def health_check():
    return {"status": "ok"}
