import os
import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from app.core.config import settings
from app.core.errors import AttendanceError
from app.core.logging import configure_logging
from app.api import employees as employees_api
from app.api import timeclock as timeclock_api
from app.api import leave as leave_api
from app.api import summary as summary_api

configure_logging()
logger = logging.getLogger(__name__)


def init_database():
    """Create tables on startup."""
    from app.core.database import engine, Base
    from app.models import Employee, TimeEntry, LeaveRequest  # noqa: F401  ensure tables are registered

    logger.info("Creating database tables...")
    Base.metadata.create_all(bind=engine)
    logger.info("Database tables ready")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Create tables and start the dashboard refresh timer."""
    from app.core.database import SessionLocal
    from app.services.summary import DashboardCache

    init_database()

    app.state.dashboard = DashboardCache(SessionLocal, start=settings.DASHBOARD_REFRESH_ENABLED)
    try:
        yield
    finally:
        app.state.dashboard.stop()


# Disable API docs in production
docs_url = "/docs" if settings.ENVIRONMENT != "production" else None
redoc_url = "/redoc" if settings.ENVIRONMENT != "production" else None

app = FastAPI(
    title=settings.APP_NAME,
    description="Attendance & leave reconciliation API",
    version="1.0.0",
    lifespan=lifespan,
    docs_url=docs_url,
    redoc_url=redoc_url,
)


# Global exception handlers - always return JSON (never plain text)
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException


@app.exception_handler(AttendanceError)
async def attendance_error_handler(request, exc: AttendanceError):
    if exc.status_code >= 500:
        logger.warning(f"{type(exc).__name__} on {request.method} {request.url.path}: {exc.message}")
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.detail})


@app.exception_handler(Exception)
async def global_exception_handler(request, exc):
    import traceback
    logger.error("Unhandled exception: %s\n%s", exc, traceback.format_exc())
    return JSONResponse(
        status_code=500,
        content={"detail": f"Internal error: {str(exc)}"},
    )


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request, exc):
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.detail},
    )


# CORS - local dev + configured frontend
allowed_origins = [
    "http://localhost:3000",
    "http://localhost:5173",
]
frontend_url = settings.FRONTEND_URL or os.environ.get("FRONTEND_URL", "")
if frontend_url and frontend_url not in allowed_origins:
    allowed_origins.append(frontend_url)
    if not frontend_url.startswith("https"):
        allowed_origins.append(frontend_url.replace("http://", "https://"))

app.add_middleware(
    CORSMiddleware,
    allow_origins=allowed_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(employees_api.router)
app.include_router(timeclock_api.router)
app.include_router(leave_api.router)
app.include_router(summary_api.router)


@app.get("/health")
def health_check():
    return {"status": "healthy", "service": "attendance-reconciliation-api", "version": "1.0.0"}
