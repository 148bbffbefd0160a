from fastapi import Depends, FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.exceptions import RequestValidationError
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse
from contextlib import asynccontextmanager
from sqlalchemy import text
from sqlalchemy.exc import DBAPIError
from sqlalchemy.orm import Session
import logging
import uuid
import time

from app.api.v1.routes import (
    apk, applications, commands, company_users, devices, enrollments, notes, policies, tokens,
)
from app.core.config import settings
from app.core.errors import StorageUnavailableError
from app.core.logging_config import setup_logging
from app.db.session import get_db

# Setup logging first
setup_logging()
logger = logging.getLogger(__name__)

API_PREFIX = "/api/v1"
CONSOLE_PREFIX = f"{API_PREFIX}/console"


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Manage application lifespan: startup and shutdown.

    Initializes database tables if they don't exist.
    """
    # Startup
    logger.info("Starting MDM Console API...")

    try:
        from app.db.init_db import init_db
        init_db()
        logger.info("Database tables initialized successfully")
    except Exception as e:
        logger.error(f"Database initialization failed: {e}", exc_info=True)
        # Don't raise - allow app to start even if DB init fails
        # This allows for manual initialization if needed

    logger.info(f"Application starting in {settings.environment} mode, public URL {settings.server_url}")
    yield

    # Shutdown
    logger.info("Shutting down MDM Console API...")


# Create FastAPI app with lifespan
app = FastAPI(
    title="MDM Console API",
    description="Android device enrollment, policy and command backend",
    version="1.0.0",
    lifespan=lifespan
)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Convert Pydantic validation errors to our error format."""
    errors = exc.errors()
    if errors:
        first_error = errors[0]
        field_name = first_error.get("loc", ["unknown"])[-1] if first_error.get("loc") else "unknown"

        # Check if it's a missing field
        if first_error.get("type") == "missing":
            return JSONResponse(
                status_code=status.HTTP_400_BAD_REQUEST,
                content={
                    "detail": {
                        "code": "MISSING_FIELD",
                        "message": f"Missing required field: {field_name}",
                        "details": {"field": field_name}
                    }
                }
            )

    # Fallback to default validation error format
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={"detail": jsonable_encoder(errors)}
    )


@app.exception_handler(DBAPIError)
async def storage_exception_handler(request: Request, exc: DBAPIError):
    """Connectivity and driver failures surface as a generic, retryable 503."""
    logger.error(f"Storage error on {request.method} {request.url.path}: {exc}", exc_info=True)
    error = StorageUnavailableError()
    return JSONResponse(status_code=error.status_code, content={"detail": error.detail})


# Add request ID middleware
@app.middleware("http")
async def add_request_id(request: Request, call_next):
    """Add unique request ID to each request for traceability."""
    request_id = str(uuid.uuid4())[:8]

    # Add request ID to request state
    request.state.request_id = request_id

    # Add request ID to logger context
    old_factory = logging.getLogRecordFactory()
    def record_factory(*args, **kwargs):
        record = old_factory(*args, **kwargs)
        record.request_id = request_id
        return record
    logging.setLogRecordFactory(record_factory)

    start_time = time.time()
    try:
        response = await call_next(request)
    finally:
        # Restore original factory
        logging.setLogRecordFactory(old_factory)
    process_time = time.time() - start_time

    # Add request ID to response headers
    response.headers["X-Request-ID"] = request_id
    response.headers["X-Process-Time"] = str(round(process_time, 3))

    return response

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Device-facing routes (bearer token or enrollment token)
app.include_router(devices.router, prefix=API_PREFIX, tags=["devices"])
app.include_router(apk.download_router, prefix=API_PREFIX, tags=["devices"])

# Operator-facing routes (operator identity header)
app.include_router(policies.router, prefix=CONSOLE_PREFIX, tags=["policies"])
app.include_router(tokens.router, prefix=CONSOLE_PREFIX, tags=["enrollment-tokens"])
app.include_router(enrollments.router, prefix=CONSOLE_PREFIX, tags=["enrollments"])
app.include_router(commands.router, prefix=CONSOLE_PREFIX, tags=["commands"])
app.include_router(apk.router, prefix=CONSOLE_PREFIX, tags=["apk"])
app.include_router(company_users.router, prefix=CONSOLE_PREFIX, tags=["company-users"])
app.include_router(applications.router, prefix=CONSOLE_PREFIX, tags=["applications"])
app.include_router(notes.router, prefix=CONSOLE_PREFIX, tags=["device-notes"])


@app.get("/")
async def root():
    """Root endpoint."""
    return {"message": "MDM Console API", "version": "1.0.0"}


@app.get("/health")
async def health(db: Session = Depends(get_db)):
    """
    Health check endpoint with dependency verification.

    Returns:
        - 200: All systems healthy
        - 503: Database unreachable
    """
    health_status = {
        "status": "healthy",
        "database": {"status": "ok", "latency_ms": 0},
    }

    # Check database connectivity with latency
    try:
        start = time.time()
        db.execute(text("SELECT 1"))
        latency = (time.time() - start) * 1000
        health_status["database"] = {"status": "ok", "latency_ms": round(latency, 2)}
    except Exception as e:
        health_status["status"] = "unhealthy"
        health_status["database"] = {"status": "error", "error": type(e).__name__}
        logger.error(f"Database health check failed: {e}")

    status_code = 200 if health_status["status"] == "healthy" else 503

    return JSONResponse(content=health_status, status_code=status_code)
