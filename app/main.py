import sentry_sdk
import os
from sentry_sdk.integrations.fastapi import FastApiIntegration
from sentry_sdk.integrations.sqlalchemy import SqlalchemyIntegration
from datetime import datetime
from fastapi import FastAPI, Request, status, HTTPException
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.encoders import jsonable_encoder
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware
from sqlalchemy.exc import SQLAlchemyError
import time
import structlog
import uuid

from app.core.logging_config import configure_logging
from app.core.config import settings
from app.core.celery_app import celery_app
from app.core.exceptions import APIError
from app.core.rate_limiter import limiter
from app.db.session import SessionLocal, engine
from app.models.user import User, UserRole
from app.api.v1 import cart, orders, products, reviews, wishlist

API_VERSION = "1.0.0"
GENERIC_ERROR_MESSAGE = "Your request could not be processed. Please try again."

logger = structlog.get_logger()


def standardized_error_response(status_code: int, message: str, errors=None) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=jsonable_encoder(
            {
                "success": False,
                "message": message,
                "data": None,
                "errors": errors or [],
                "timestamp": f"{datetime.utcnow().isoformat()}Z",
            }
        ),
    )

# --------------------------------------------------
# CONFIGURE LOGGING (FIRST)
# --------------------------------------------------
configure_logging()

# --------------------------------------------------
# INITIALIZE SENTRY (ONLY IN PRODUCTION)
# --------------------------------------------------
if settings.ENVIRONMENT == "production" and settings.SENTRY_DSN:
    try:
        sentry_sdk.init(
            dsn=settings.SENTRY_DSN,
            environment=settings.ENVIRONMENT,
            traces_sample_rate=0.1,
            integrations=[
                FastApiIntegration(),
                SqlalchemyIntegration(),
            ],
        )
        logger.info("sentry_initialized")
    except Exception as exc:
        # Application continues without Sentry monitoring
        logger.warning("sentry_init_failed", error=str(exc))

# --------------------------------------------------
# CREATE FASTAPI APP (SINGLE INITIALIZATION)
# --------------------------------------------------
app = FastAPI(
    title=settings.PROJECT_NAME,
    openapi_url=f"{settings.API_V1_STR}/openapi.json",
    docs_url=f"{settings.API_V1_STR}/docs",
    redoc_url=f"{settings.API_V1_STR}/redoc"
)


@app.on_event("startup")
def validate_production_admin_bootstrap():
    """Fail fast in production when no admin account exists."""
    if settings.ENVIRONMENT != "production":
        return

    db = SessionLocal()
    try:
        admin_exists = (
            db.query(User.id)
            .filter(User.role == UserRole.ADMIN, User.is_active.is_(True))
            .first()
            is not None
        )
    finally:
        db.close()

    if not admin_exists:
        raise RuntimeError(
            "No active admin user found in production. "
            "Provision an admin user before starting the API."
        )

# --------------------------------------------------
# RATE LIMITING SETUP
# --------------------------------------------------
app.state.limiter = limiter
app.add_middleware(SlowAPIMiddleware)


@app.exception_handler(RateLimitExceeded)
async def rate_limit_handler(request: Request, exc: RateLimitExceeded):
    return standardized_error_response(
        status_code=status.HTTP_429_TOO_MANY_REQUESTS,
        message="Too many requests. Please try again later.",
    )

# --------------------------------------------------
# CORS MIDDLEWARE
# --------------------------------------------------
cors_origins = list(settings.BACKEND_CORS_ORIGINS)
if settings.ENVIRONMENT != "production":
    for origin in [
        "http://localhost:5500",
        "http://127.0.0.1:8000",
    ]:
        if origin not in cors_origins:
            cors_origins.append(origin)

app.add_middleware(
    CORSMiddleware,
    allow_origins=cors_origins,
    allow_credentials=False,
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
    allow_headers=[
        "Content-Type",
        "Authorization",
        "X-Correlation-ID",
        "X-Requested-With",
    ],
    expose_headers=["X-Process-Time", "X-Request-ID", "X-Correlation-ID"],
    max_age=3600,
)

# --------------------------------------------------
# SECURITY HEADERS MIDDLEWARE
# --------------------------------------------------
@app.middleware("http")
async def add_security_headers(request: Request, call_next):
    response = await call_next(request)
    response.headers["X-Content-Type-Options"] = "nosniff"
    response.headers["X-Frame-Options"] = "DENY"
    response.headers["Content-Security-Policy"] = "default-src 'none'; frame-ancestors 'none'"
    if settings.ENVIRONMENT == "production":
        response.headers["Strict-Transport-Security"] = "max-age=31536000; includeSubDomains"
    return response

# --------------------------------------------------
# REQUEST TIMING MIDDLEWARE
# --------------------------------------------------
@app.middleware("http")
async def add_process_time_header(request: Request, call_next):
    start_time = time.time()
    response = await call_next(request)
    process_time = time.time() - start_time
    response.headers["X-Process-Time"] = str(process_time)
    return response


@app.middleware("http")
async def add_correlation_id(request: Request, call_next):
    correlation_id = request.headers.get("X-Correlation-ID") or str(uuid.uuid4())
    request_id = str(uuid.uuid4())

    request.state.correlation_id = correlation_id
    request.state.request_id = request_id
    structlog.contextvars.bind_contextvars(correlation_id=correlation_id, request_id=request_id)

    try:
        response = await call_next(request)
    finally:
        structlog.contextvars.unbind_contextvars("correlation_id", "request_id")

    response.headers["X-Correlation-ID"] = correlation_id
    response.headers["X-Request-ID"] = request_id
    return response

# --------------------------------------------------
# REQUEST LOGGING MIDDLEWARE
# --------------------------------------------------
@app.middleware("http")
async def log_requests(request: Request, call_next):
    logger.info(
        "request_started",
        method=request.method,
        path=request.url.path,
        client_ip=request.client.host if request.client else None,
    )

    response = await call_next(request)

    logger.info(
        "request_completed",
        method=request.method,
        path=request.url.path,
        status_code=response.status_code,
    )

    return response

# --------------------------------------------------
# INCLUDE ROUTERS
# --------------------------------------------------
app.include_router(cart.router, prefix=f"{settings.API_V1_STR}/cart", tags=["Cart"])
app.include_router(orders.router, prefix=f"{settings.API_V1_STR}/order", tags=["Orders"])
app.include_router(products.router, prefix=f"{settings.API_V1_STR}/product", tags=["Products"])
app.include_router(reviews.router, prefix=f"{settings.API_V1_STR}/review", tags=["Reviews"])
app.include_router(wishlist.router, prefix=f"{settings.API_V1_STR}/wishlist", tags=["Wishlist"])

# --------------------------------------------------
# HEALTH CHECK ENDPOINTS
# --------------------------------------------------
@app.get("/health")
def health_check():
    return {
        "status": "healthy",
        "environment": settings.ENVIRONMENT,
        "version": API_VERSION
    }


@app.get("/health/database")
def database_health_check():
    try:
        with engine.connect() as connection:
            connection.exec_driver_sql("SELECT 1")

        pool = engine.pool
        metrics = {
            "pool_class": pool.__class__.__name__,
            "size": pool.size() if hasattr(pool, "size") else None,
            "checked_out": pool.checkedout() if hasattr(pool, "checkedout") else None,
            "overflow": pool.overflow() if hasattr(pool, "overflow") else None,
            "status": pool.status() if hasattr(pool, "status") else None,
        }
        return {"status": "healthy", "pool": metrics}
    except SQLAlchemyError as exc:
        return {
            "status": "unhealthy",
            "pool": {},
            "reason": f"Database connectivity check failed: {exc}",
        }


@app.get("/health/email")
def email_health_check():
    try:
        with celery_app.connection_or_acquire() as connection:
            connection.ensure_connection(max_retries=1)
    except Exception as exc:
        return {"status": "unhealthy", "reason": f"Broker connection failed: {exc}"}

    try:
        inspector = celery_app.control.inspect(timeout=1.0)
        active_workers = inspector.ping() or {}
        if not active_workers:
            return {"status": "unhealthy", "reason": "No active Celery workers"}

        return {"status": "healthy", "workers": len(active_workers)}
    except Exception as exc:
        return {"status": "unhealthy", "reason": f"Celery worker check failed: {exc}"}

# --------------------------------------------------
# ROOT ENDPOINT
# --------------------------------------------------
@app.get("/")
def root():
    return {
        "message": settings.PROJECT_NAME,
        "docs": f"{settings.API_V1_STR}/docs",
        "version": API_VERSION
    }


@app.get(f"{settings.API_V1_STR}/version")
def get_version():
    return {
        "version": API_VERSION,
        "commit": os.getenv("GIT_COMMIT", "unknown"),
    }

# --------------------------------------------------
# ERROR HANDLERS
# --------------------------------------------------
@app.exception_handler(APIError)
async def api_error_handler(request: Request, exc: APIError):
    return standardized_error_response(
        status_code=exc.status_code,
        message=exc.message,
        errors=exc.errors,
    )


@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException):
    detail = exc.detail

    if isinstance(detail, str):
        message = detail
        errors = []
    elif isinstance(detail, list):
        message = "Request failed"
        errors = detail
    elif isinstance(detail, dict):
        message = detail.get("message", "Request failed")
        errors = detail.get("errors", [])
    else:
        message = "Request failed"
        errors = []

    response = standardized_error_response(
        status_code=exc.status_code,
        message=message,
        errors=errors,
    )
    if exc.headers:
        response.headers.update(exc.headers)
    return response


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    return standardized_error_response(
        status_code=status.HTTP_400_BAD_REQUEST,
        message="Validation failed",
        errors=exc.errors(),
    )


@app.exception_handler(SQLAlchemyError)
async def database_exception_handler(request: Request, exc: SQLAlchemyError):
    logger.exception("database_error", error_type=type(exc).__name__, path=request.url.path)
    return standardized_error_response(
        status_code=status.HTTP_400_BAD_REQUEST,
        message=GENERIC_ERROR_MESSAGE,
    )

# --------------------------------------------------
# GLOBAL EXCEPTION HANDLER
# --------------------------------------------------
@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    # Unexpected exceptions: log and return controlled response
    logger.exception("unhandled_exception", error_type=type(exc).__name__, detail=str(exc))

    if settings.DEBUG and settings.ENVIRONMENT != "production":
        return standardized_error_response(
            status_code=status.HTTP_400_BAD_REQUEST,
            message=f"{GENERIC_ERROR_MESSAGE} ({type(exc).__name__}: {exc})",
            errors=[{"type": type(exc).__name__}],
        )

    return standardized_error_response(
        status_code=status.HTTP_400_BAD_REQUEST,
        message=GENERIC_ERROR_MESSAGE,
    )
