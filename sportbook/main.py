# sportbook/main.py
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from sportbook.config import settings
from sportbook.database import Base, engine
from sportbook.exceptions import BookingAppError, Unauthenticated
from sportbook.routes import bookings, businesses, facilities, reviews, users

# Configure logging
logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Create the database tables (Alembic owns schema changes after the first run)
    Base.metadata.create_all(bind=engine)
    logger.info("Sports booking API started")
    yield
    logger.info("Sports booking API shutting down")


app = FastAPI(
    title="Sports Facility Booking",
    description="Search, book and manage sports venues",
    version="1.0.0",
    lifespan=lifespan,
)

# CORS Middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(BookingAppError)
async def booking_error_handler(request: Request, exc: BookingAppError):
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.detail}")
    elif exc.status_code != 404:
        logger.warning(f"{request.method} {request.url.path} rejected ({exc.code}): {exc.detail}")

    headers = {"WWW-Authenticate": "Bearer"} if isinstance(exc, Unauthenticated) else None
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.detail, "code": exc.code},
        headers=headers,
    )


@app.exception_handler(Exception)
async def unexpected_error_handler(request: Request, exc: Exception):
    logger.exception(f"{request.method} {request.url.path} failed unexpectedly")
    return JSONResponse(
        status_code=500,
        content={"detail": "Internal server error", "code": "error"},
    )


# Registering Routers
app.include_router(users.router)
app.include_router(businesses.router)
app.include_router(facilities.router)
app.include_router(bookings.router)
app.include_router(reviews.router)

@app.get("/", tags=["Root"])
def read_root():
    return {"message": "Welcome to the Sports Facility Booking API"}
