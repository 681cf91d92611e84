import logging
import os
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError
from starlette.exceptions import HTTPException as StarletteHTTPException

# Import models so every table is registered with Base before create_all
from . import models  # noqa: F401
from .database import Base, engine
from .domain.availability import router as availability_router
from .domain.bookings import router as bookings_router
from .routes.auth import router as auth_router
from .routes.clients import router as clients_router
from .routes.emails import router as emails_router
from .routes.fields import router as fields_router
from .routes.pet_images import router as pet_images_router
from .routes.pets import router as pets_router
from .routes.profile import router as profile_router
from .routes.service_availability import router as service_availability_router
from .routes.services import router as services_router
from .routes.sites import router as sites_router
from .routes.staff import router as staff_router
from .routes.staff_availability import router as staff_availability_router
from .routes.users import router as users_router
from .routes.vehicles import router as vehicles_router
from .security_middleware import SecurityHeadersMiddleware

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

# Reduce verbosity of third-party libraries
logging.getLogger("httpx").setLevel(logging.WARNING)
logging.getLogger("httpcore").setLevel(logging.WARNING)

SECURITY_HEADERS_ENABLED = os.getenv("SECURITY_HEADERS_ENABLED", "true").lower() == "true"


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Application starting up...")
    try:
        Base.metadata.create_all(bind=engine, checkfirst=True)
        logger.info("Database tables created successfully")
    except SQLAlchemyError as e:
        # Several workers may race to create the same tables
        error_msg = str(e)
        if "already exists" in error_msg or "duplicate key" in error_msg:
            logger.info("Database tables already exist (created by another worker)")
        else:
            logger.error(f"Failed to create database tables: {e}")
            raise

    yield
    logger.info("Application shutting down...")


app = FastAPI(title="Dog Daycare API", version="1.0.0", lifespan=lifespan)


def format_validation_error(error: dict) -> str:
    """'<field>: <message>' for the first failing field"""
    loc = [str(part) for part in error.get("loc", ()) if part not in ("body", "query", "path")]
    message = error.get("msg", "Invalid request")
    if message.startswith("Value error, "):
        message = message[len("Value error, ") :]
    return f"{'.'.join(loc)}: {message}" if loc else message


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": exc.detail},
        headers=getattr(exc, "headers", None),
    )


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    logger.warning(f"Validation error for {request.url.path}: {errors}")
    message = format_validation_error(errors[0]) if errors else "Invalid request body"
    return JSONResponse(status_code=400, content={"error": message})


@app.exception_handler(SQLAlchemyError)
async def database_exception_handler(request: Request, exc: SQLAlchemyError):
    logger.error(
        f"❌ Database error on {request.method} {request.url.path}: {exc}", exc_info=True
    )
    return JSONResponse(status_code=500, content={"error": "Internal server error"})


if SECURITY_HEADERS_ENABLED:
    app.add_middleware(
        SecurityHeadersMiddleware, exclude_paths=["/health", "/docs", "/openapi.json"]
    )
    logger.info("Security headers enabled")
else:
    logger.warning("Security headers DISABLED - only use in development!")


# CORS Configuration
# Session cookies need credentials, which need explicit origins
ALLOWED_ORIGINS = os.getenv(
    "ALLOWED_ORIGINS",
    "http://localhost:3000,http://localhost:8081",
).split(",")

logger.info(f"CORS allowed origins: {ALLOWED_ORIGINS}")

app.add_middleware(
    CORSMiddleware,
    allow_origins=ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS", "PATCH"],
    allow_headers=["*"],
)

# Routes
app.include_router(auth_router, prefix="/api")
app.include_router(sites_router, prefix="/api")
app.include_router(fields_router, prefix="/api")
app.include_router(services_router, prefix="/api")
app.include_router(service_availability_router, prefix="/api")
app.include_router(staff_availability_router, prefix="/api")
app.include_router(vehicles_router, prefix="/api")
app.include_router(staff_router, prefix="/api")
app.include_router(users_router, prefix="/api")
app.include_router(profile_router, prefix="/api")
app.include_router(clients_router, prefix="/api")
app.include_router(pets_router, prefix="/api")
app.include_router(pet_images_router, prefix="/api")
app.include_router(bookings_router, prefix="/api")
app.include_router(availability_router, prefix="/api")
app.include_router(emails_router, prefix="/api")


@app.get("/")
def root():
    return {"message": "Dog Daycare API is running"}


@app.get("/health")
def health():
    return {"status": "healthy"}
