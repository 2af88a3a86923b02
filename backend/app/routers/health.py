from fastapi import APIRouter, Depends
from redis.exceptions import RedisError
from sqlalchemy.exc import SQLAlchemyError

from backend.app.core import redis_client as redis_module
from backend.app.core.logger import logger
from backend.app.db.session import get_repository
from backend.app.services.errors import ServiceUnavailable
from backend.app.services.repository import BookingRepository


router = APIRouter()


@router.get("/healthz")
async def healthz() -> dict[str, bool]:
    """Basic liveness check."""
    return {"ok": True}


@router.get("/readiness")
async def readiness(repo: BookingRepository = Depends(get_repository)) -> dict[str, bool]:
    """Ensure Postgres (and Redis, when configured) is reachable."""
    try:
        await repo.ping()
    except SQLAlchemyError as exc:
        logger.error("Readiness: database unreachable: {}", exc)
        raise ServiceUnavailable("Database unavailable") from exc

    if redis_module.redis_client is not None:
        try:
            await redis_module.redis_client.ping()
        except RedisError as exc:
            logger.error("Readiness: Redis unreachable: {}", exc)
            raise ServiceUnavailable("Redis unavailable") from exc

    return {"ready": True}
