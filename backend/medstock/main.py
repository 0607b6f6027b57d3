"""FastAPI application entry point."""

import logging
import sys
import time
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from pathlib import Path

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from sqlalchemy import text
from sqlalchemy.engine import make_url
from sqlalchemy.exc import SQLAlchemyError
from starlette.middleware.base import BaseHTTPMiddleware

from medstock.api.routes import api_router
from medstock.core.config import settings
from medstock.core.exceptions import InventoryError, StorageError
from medstock.core.rate_limit import limiter
from medstock.core.responses import AUDIT_STATUS_HEADER
from medstock.db.base import Base
from medstock.db.session import SessionLocal, engine
from medstock.services.bootstrap import seed_initial_data

# Configure logging
root_logger = logging.getLogger()
root_logger.setLevel(getattr(logging, settings.log_level))
root_logger.handlers.clear()

if settings.debug:
    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s"))
else:
    import json as _json

    class JSONFormatter(logging.Formatter):
        def format(self, record):
            payload = {
                "ts": self.formatTime(record, self.datefmt),
                "level": record.levelname,
                "logger": record.name,
                "msg": record.getMessage(),
                "module": record.module,
                "line": record.lineno,
            }
            if record.exc_info:
                payload["exc"] = self.formatException(record.exc_info)
            return _json.dumps(payload)

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(JSONFormatter())

root_logger.addHandler(handler)
logger = logging.getLogger(__name__)
request_logger = logging.getLogger("requests")


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """Add security headers to all responses."""

    async def dispatch(self, request: Request, call_next):
        response = await call_next(request)
        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "DENY"
        response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"
        response.headers["Content-Security-Policy"] = "default-src 'self'; frame-ancestors 'none'"
        return response


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Log every request with status, duration and client address."""

    async def dispatch(self, request: Request, call_next):
        if request.url.path in ["/health", "/health/ready", "/docs", "/openapi.json"]:
            return await call_next(request)

        start_time = time.time()
        client_ip = request.client.host if request.client else "unknown"

        try:
            response = await call_next(request)
        except Exception:
            request_logger.exception(
                "Error: %s %s - Time: %.3fs - Client: %s",
                request.method, request.url.path, time.time() - start_time, client_ip,
            )
            raise

        log_level = logging.WARNING if response.status_code >= 400 else logging.INFO
        request_logger.log(
            log_level,
            "Response: %s %s - Status: %s - Time: %.3fs - Client: %s",
            request.method, request.url.path, response.status_code, time.time() - start_time, client_ip,
        )
        if response.headers.get(AUDIT_STATUS_HEADER) == "failed":
            request_logger.error(
                "Audit entry missing for %s %s (client %s)", request.method, request.url.path, client_ip
            )
        return response


def _ensure_sqlite_directory() -> None:
    url = make_url(settings.database_url)
    if url.get_backend_name() == "sqlite" and url.database and url.database != ":memory:":
        Path(url.database).parent.mkdir(parents=True, exist_ok=True)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler."""
    logger.info("Starting MedStock inventory service")

    # Create tables if they don't exist (SQLite deployments)
    if settings.database_url.startswith("sqlite"):
        _ensure_sqlite_directory()
        Base.metadata.create_all(bind=engine)
        logger.info("Database tables created (SQLite mode)")

    if settings.seed_on_startup:
        db = SessionLocal()
        try:
            seed_initial_data(db, include_demo_inventory=settings.seed_demo_inventory)
            db.commit()
        except SQLAlchemyError:
            db.rollback()
            logger.exception("Startup seed failed")
            raise
        finally:
            db.close()

    yield

    logger.info("Shutting down MedStock inventory service")


app = FastAPI(
    title="MedStock",
    description="Hospital inventory stock tracking with expiration alerts and audit trail",
    version="1.0.0",
    lifespan=lifespan,
    redirect_slashes=True,
    docs_url="/docs" if settings.debug else None,
    redoc_url="/redoc" if settings.debug else None,
)

# Rate limiting setup
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)


@app.exception_handler(InventoryError)
async def inventory_error_handler(request: Request, exc: InventoryError):
    """Map domain errors to their HTTP status. Storage details never leave the server."""
    if isinstance(exc, StorageError):
        logger.error("Storage error on %s %s: %s", request.method, request.url.path, exc.message)
        return JSONResponse(status_code=exc.status_code, content={"detail": exc.public_message})
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.message})


@app.exception_handler(SQLAlchemyError)
async def database_error_handler(request: Request, exc: SQLAlchemyError):
    logger.error("Unhandled database error on %s %s", request.method, request.url.path, exc_info=exc)
    return JSONResponse(status_code=500, content={"detail": StorageError.public_message})


# Security headers middleware
app.add_middleware(SecurityHeadersMiddleware)

# Request logging middleware
app.add_middleware(RequestLoggingMiddleware)

# CORS middleware - added last so it runs first (Starlette LIFO order)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
    allow_headers=["Content-Type", "Authorization", "Accept", "Origin", "X-Requested-With"],
    expose_headers=[AUDIT_STATUS_HEADER],
    max_age=600,
)

# Include API routes
app.include_router(api_router, prefix=settings.api_prefix)


@app.get("/health")
def health_check():
    """Basic liveness check endpoint."""
    return {"status": "healthy", "version": "1.0.0"}


@app.get("/health/ready")
def readiness_check():
    """Readiness probe with a database round trip."""
    checks = {"database": "unknown"}

    db = SessionLocal()
    try:
        db.execute(text("SELECT 1"))
        checks["database"] = "healthy"
    except SQLAlchemyError:
        logger.exception("Database health check failed")
        checks["database"] = "unhealthy"
    finally:
        db.close()

    all_healthy = all(c == "healthy" for c in checks.values())
    body = {
        "status": "ready" if all_healthy else "degraded",
        "version": "1.0.0",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "checks": checks,
    }
    return JSONResponse(status_code=200 if all_healthy else 503, content=body)
