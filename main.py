import time
from datetime import datetime, timezone
from contextlib import asynccontextmanager
from fastapi import FastAPI, Request, status, HTTPException
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from routers import auth, sessions, users, admin, audit

# Import all models for SQLAlchemy relationship resolution
import models  # noqa: F401

from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from middleware.rate_limiter import limiter

from core.logging_config import setup_logging, get_logger
from core.database import init_db
from middleware import RequestIDMiddleware, get_request_id
from core.config import settings
from utils.logger import log_request
from utils.deps import db_dependency

setup_logging(
    log_level=settings.LOG_LEVEL,
    log_dir=settings.LOG_DIR
)

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    init_db()
    logger.info("Application startup complete", extra={"event": "startup", "env": settings.ENV})
    yield
    logger.info("Application shutting down", extra={"event": "shutdown"})


app = FastAPI(
    title="Pramara Auth API",
    description="Authentication, sessions and permissions for the project management backend",
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan
)


app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def log_requests(request: Request, call_next):
    """
    Log every request with status, duration and, once the auth gate has
    run, the caller's user id.
    """
    start_time = time.time()

    response = await call_next(request)

    duration = (time.time() - start_time) * 1000
    auth_context = getattr(request.state, "auth", None)

    log_request(
        logger,
        request.method,
        request.url.path,
        response.status_code,
        duration,
        user_id=auth_context.user_id if auth_context else None,
        extra={"client_ip": request.client.host if request.client else "unknown"}
    )

    return response


# Added last so it wraps the logging middleware and the id is set first
app.add_middleware(RequestIDMiddleware)


@app.get("/health")
def health_check(db: db_dependency):
    """
    Liveness plus a database round trip. 500 when the database can't be reached.
    """
    try:
        db.execute(text("SELECT 1"))
    except SQLAlchemyError as e:
        logger.error(f"Health check failed: {str(e)}", extra={"error_type": type(e).__name__})
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"ok": False, "db": "error"}
        )

    return {"ok": True, "db": "ok", "time": datetime.now(timezone.utc).isoformat()}


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """
    Malformed bodies and query strings get a fixed 400. The rejected values
    are never echoed back since they can be passwords or tokens.
    """
    logger.info(
        "Request validation failed",
        extra={
            "path": request.url.path,
            "fields": [".".join(str(part) for part in error["loc"]) for error in exc.errors()]
        }
    )

    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"detail": "Invalid request"}
    )


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """
    Last-resort handler: log the full error, return a generic 500.
    Persistence errors and stack traces never reach the client.
    """
    if isinstance(exc, (HTTPException, RequestValidationError)):
        raise exc

    logger.error(
        f"Unhandled exception: {str(exc)}",
        extra={
            "path": request.url.path,
            "method": request.method,
            "error_type": type(exc).__name__
        },
        exc_info=True
    )

    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"detail": "Internal server error", "requestId": get_request_id(request)}
    )


app.include_router(auth.router)
app.include_router(sessions.router)
app.include_router(users.router)
app.include_router(admin.router)
app.include_router(audit.router)


app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)
