import logging

from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse
from redis.exceptions import RedisError
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from videotube.database import get_db, get_redis
from videotube.schemas import ApiResponse, HealthStatus

router = APIRouter(prefix="/healthcheck", tags=["Healthcheck"])
logger = logging.getLogger(__name__)


@router.get("", response_model=ApiResponse)
async def healthcheck(db: AsyncSession = Depends(get_db)):
    """Probe the database and, when configured, redis."""
    database = "ok"
    try:
        await db.execute(text("SELECT 1"))
    except SQLAlchemyError as e:
        logger.error(f"Database healthcheck failed: {e}")
        database = "unavailable"

    redis_status = "disabled"
    redis_client = get_redis()
    if redis_client is not None:
        try:
            await redis_client.ping()
            redis_status = "ok"
        except RedisError as e:
            logger.warning(f"Redis healthcheck failed: {e}")
            redis_status = "unavailable"

    health = HealthStatus(
        status="ok" if database == "ok" else "degraded",
        database=database,
        redis=redis_status,
    )
    if database != "ok":
        body = ApiResponse.error(
            status.HTTP_503_SERVICE_UNAVAILABLE, "Health check failed", data=health
        )
        return JSONResponse(status_code=body.status_code, content=body.model_dump(mode="json"))
    return ApiResponse.ok(health, message="Health check passed")
