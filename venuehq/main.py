import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy import text

# Import all models to ensure they're registered with SQLAlchemy Base
from . import (
    models,  # noqa: F401
    models_hours,  # noqa: F401
    models_invoice,  # noqa: F401
    models_loyalty,  # noqa: F401
    models_pnl,  # noqa: F401
    models_rota,  # noqa: F401
    models_short_link,  # noqa: F401
    models_sms,  # noqa: F401
    models_table_booking,  # noqa: F401
)
from .config import ALLOWED_ORIGINS, VENUE_NAME
from .database import Base, SessionLocal, engine
from .domain.business_hours.router import router as business_hours_router
from .domain.business_hours.service import seed_service_statuses
from .domain.customers.router import router as customers_router
from .domain.invoices.router import router as invoices_router
from .domain.loyalty.router import router as loyalty_router
from .domain.loyalty.service import seed_loyalty
from .domain.messages.router import router as messages_router
from .domain.pnl.router import router as pnl_router
from .domain.quotes.router import router as quotes_router
from .domain.rbac.repository import RbacRepository
from .domain.rbac.router import router as rbac_router
from .domain.rota.router import router as rota_router
from .domain.short_links.router import redirect_router as short_link_redirect_router
from .domain.short_links.router import router as short_links_router
from .domain.table_bookings.router import router as table_bookings_router
from .domain.table_bookings.service import seed_booking_policies

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

# Reduce verbosity of third-party libraries
logging.getLogger("httpx").setLevel(logging.WARNING)
logging.getLogger("httpcore").setLevel(logging.WARNING)


def seed_reference_data() -> None:
    """Insert permissions, service statuses, booking policies and the loyalty catalogue"""
    db = SessionLocal()
    try:
        created = RbacRepository.seed_permissions(db)
        if created:
            logger.info(f"🔐 Seeded {created} permissions")
        seed_service_statuses(db)
        seed_booking_policies(db)
        seed_loyalty(db)
    finally:
        db.close()


def redis_status() -> str:
    try:
        from .rate_limiter import get_redis_client

        get_redis_client().ping()
        return "connected"
    except Exception:
        return "unavailable"


def database_status() -> str:
    try:
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
        return "connected"
    except Exception as e:
        logger.error(f"❌ Database health check failed: {e}")
        return "unavailable"


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Application starting up...")
    try:
        Base.metadata.create_all(bind=engine, checkfirst=True)
        logger.info("Database tables created successfully")
    except Exception as e:
        # Ignore "already exists" errors from race conditions between workers
        error_msg = str(e)
        if "already exists" in error_msg or "duplicate key" in error_msg:
            logger.info("Database tables already exist (created by another worker)")
        else:
            logger.error(f"Failed to create database tables: {e}")

    try:
        seed_reference_data()
        logger.info("Reference data seeded")
    except Exception as e:
        logger.error(f"Failed to seed reference data: {e}")

    if redis_status() == "connected":
        logger.info("Redis connection established")
    else:
        logger.warning("Redis connection failed - Rate limited endpoints will return 503 until it recovers")

    yield
    logger.info("Application shutting down...")


app = FastAPI(title="VenueHQ API", version="1.0.0", lifespan=lifespan)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Flatten pydantic errors into field/message pairs"""
    errors = []
    for error in exc.errors():
        loc = [str(part) for part in error.get("loc", ()) if part not in ("body", "query", "path")]
        message = error.get("msg", "Invalid value")
        # "Value error, <message>" from field validators
        if message.startswith("Value error, "):
            message = message[len("Value error, "):]
        errors.append({"field": ".".join(loc) or None, "message": message})

    logger.warning(f"Validation error for {request.url.path}: {errors}")
    return JSONResponse(status_code=422, content={"detail": "Validation error", "errors": errors})


@app.middleware("http")
async def log_requests(request: Request, call_next):
    try:
        response = await call_next(request)
        return response
    except Exception as e:
        logger.error(f"{request.method} {request.url.path} - Error: {str(e)}")
        raise


logger.info(f"CORS allowed origins: {ALLOWED_ORIGINS}")

app.add_middleware(
    CORSMiddleware,
    allow_origins=ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS", "PATCH"],
    allow_headers=["*"],
)

# Routes
app.include_router(rbac_router)
app.include_router(customers_router)
app.include_router(business_hours_router)
app.include_router(messages_router)
app.include_router(table_bookings_router)
app.include_router(invoices_router)
app.include_router(quotes_router)
app.include_router(loyalty_router)
app.include_router(rota_router)
app.include_router(pnl_router)
app.include_router(short_links_router)
app.include_router(short_link_redirect_router)


@app.get("/")
def root():
    return {"message": f"VenueHQ API is running for {VENUE_NAME}"}


@app.get("/health")
def health():
    database = database_status()
    return {
        "status": "healthy" if database == "connected" else "degraded",
        "database": database,
        "redis": redis_status(),
    }
