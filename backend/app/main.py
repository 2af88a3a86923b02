from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

from backend.app.core.config import settings
from backend.app.core.logger import logger, setup_logging
from backend.app.core.redis_client import close_redis, init_redis
from backend.app.services.errors import BookingError, InternalError
from backend.app.services.events import slot_events
import backend.app.routers.admin as admin
import backend.app.routers.availability as availability
import backend.app.routers.bookings as bookings
import backend.app.routers.health as health
import backend.app.routers.stream as stream


setup_logging()


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Starting barbershop booking API")
    await init_redis()
    slot_events.start_relay()
    try:
        yield
    finally:
        await slot_events.stop_relay()
        await close_redis()
        logger.info("Barbershop booking API stopped")


app = FastAPI(
    title="Barbershop Booking API",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(BookingError)
async def booking_error_handler(request: Request, exc: BookingError) -> JSONResponse:
    if exc.status_code < 500:
        logger.info("{} {} rejected ({}): {}", request.method, request.url.path, exc.status_code, exc.message)
    return JSONResponse(status_code=exc.status_code, content=exc.to_payload())


@app.exception_handler(SQLAlchemyError)
async def store_error_handler(request: Request, exc: SQLAlchemyError) -> JSONResponse:
    logger.opt(exception=exc).error("Store failure on {} {}", request.method, request.url.path)
    error = InternalError()
    return JSONResponse(status_code=error.status_code, content=error.to_payload())


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.opt(exception=exc).error("Unhandled error on {} {}", request.method, request.url.path)
    error = InternalError()
    return JSONResponse(status_code=error.status_code, content=error.to_payload())


@app.get("/")
async def root() -> dict[str, str]:
    return {"status": "Barbershop booking API is running"}


app.include_router(health.router, prefix=settings.API_PREFIX)
app.include_router(availability.router, prefix=settings.API_PREFIX)
app.include_router(bookings.router, prefix=settings.API_PREFIX)
app.include_router(admin.router, prefix=settings.API_PREFIX)
app.include_router(stream.router, prefix=settings.API_PREFIX)
