# app/main.py
"""
FastAPI application entry point.
Includes middleware, domain error handlers, and all routers.
"""

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse
from fastapi.middleware.cors import CORSMiddleware
from app.routers import lots, spaces, reservations, transactions, pricing, customers, health
from app.database import create_tables
from app.config import settings
from app.services.errors import (
    ParkingError, ValidationError, ConflictError, OverrideRequiredError, NotFoundError,
    ConfigurationError, NoAvailabilityError, ExpiredError,
)
from app.utils.logger import get_logger
import time

logger = get_logger(__name__)

app = FastAPI(
    title="Parking Lot Management API",
    description="Space lifecycle, client reservations and fee computation for parking lots.",
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc",
)

# ── CORS (dashboard and client apps call the API from the browser) ──────────
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],   # Restrict to dashboard origin in production
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ── Request Timing Middleware ────────────────────────────────────────────────
@app.middleware("http")
async def log_requests(request: Request, call_next):
    start = time.time()
    response = await call_next(request)
    duration = round((time.time() - start) * 1000, 2)
    logger.debug(f"{request.method} {request.url.path} → {response.status_code} ({duration}ms)")
    return response


# ── Domain Error Handlers ────────────────────────────────────────────────────
# Checked in order; OverrideRequiredError before its ConflictError parent.
ERROR_STATUS = (
    (OverrideRequiredError, status.HTTP_409_CONFLICT),
    (ValidationError, status.HTTP_422_UNPROCESSABLE_ENTITY),
    (ConflictError, status.HTTP_409_CONFLICT),
    (NotFoundError, status.HTTP_404_NOT_FOUND),
    (ConfigurationError, status.HTTP_500_INTERNAL_SERVER_ERROR),
    (NoAvailabilityError, status.HTTP_409_CONFLICT),
    (ExpiredError, status.HTTP_410_GONE),
)


def status_for(exc: ParkingError) -> int:
    for error_class, code in ERROR_STATUS:
        if isinstance(exc, error_class):
            return code
    return status.HTTP_400_BAD_REQUEST


@app.exception_handler(ParkingError)
async def parking_error_handler(request: Request, exc: ParkingError):
    code = status_for(exc)
    content = {"detail": exc.message, "error": exc.code}
    if isinstance(exc, OverrideRequiredError):
        content["override_required"] = True
    if code >= 500:
        logger.error(f"{request.method} {request.url.path}: {exc.code}: {exc.message}")
    else:
        logger.info(f"{request.method} {request.url.path} rejected ({exc.code}): {exc.message}")
    return JSONResponse(status_code=code, content=content)


# ── Global Exception Handler ─────────────────────────────────────────────────
@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    logger.error(f"Unhandled exception on {request.url.path}: {exc}", exc_info=True)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"detail": "Internal server error"},
    )


# ── Routers ──────────────────────────────────────────────────────────────────
app.include_router(lots.router,         prefix="/api/v1", tags=["🅿️  Lots"])
app.include_router(spaces.router,       prefix="/api/v1", tags=["🚗 Spaces"])
app.include_router(reservations.router, prefix="/api/v1", tags=["📅 Client Reservations"])
app.include_router(transactions.router, prefix="/api/v1", tags=["🧾 Transactions"])
app.include_router(pricing.router,      prefix="/api/v1", tags=["💲 Pricing"])
app.include_router(customers.router,    prefix="/api/v1", tags=["👤 Customers"])
app.include_router(health.router,       prefix="/api/v1", tags=["💚 Health"])


# ── Startup ───────────────────────────────────────────────────────────────────
@app.on_event("startup")
async def startup():
    logger.info("🚀 Parking backend starting up...")
    create_tables()
    logger.info("✅ Database tables ready")
    logger.info(f"🌐 Listening on http://{settings.BACKEND_IP}:{settings.BACKEND_PORT}")
    logger.info("📖 API docs at /docs")


@app.on_event("shutdown")
async def shutdown():
    logger.info("🛑 Parking backend shutting down...")
