import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from videotube.api.v1 import router as api_v1_router
from videotube.config import get_settings
from videotube.database import close_redis, engine, init_db, init_redis
from videotube.exceptions import ApiError
from videotube.schemas import ApiResponse

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

settings = get_settings()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager"""
    # Create tables (development only)
    if settings.debug:
        await init_db()

    if settings.toggle_lease_enabled:
        await init_redis()
        logger.info("Redis toggle leases enabled")

    yield

    await close_redis()
    await engine.dispose()


app = FastAPI(
    title=settings.app_name,
    description="Video sharing backend: videos, comments, likes, subscriptions, tweets and playlists",
    version="1.0.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def _envelope(status_code: int, message: str, data=None, headers=None) -> JSONResponse:
    body = ApiResponse.error(status_code, message, data)
    return JSONResponse(status_code=status_code, content=body.model_dump(mode="json"), headers=headers)


# Exception handlers
@app.exception_handler(ApiError)
async def api_error_handler(request: Request, exc: ApiError):
    return _envelope(exc.status_code, str(exc.detail), headers=exc.headers)


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    errors = [
        {"loc": list(error.get("loc", ())), "msg": error.get("msg", "")}
        for error in exc.errors()
    ]
    return _envelope(400, "Invalid request", data={"errors": errors})


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    return _envelope(exc.status_code, str(exc.detail), headers=getattr(exc, "headers", None))


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.exception(f"Unhandled error on {request.method} {request.url.path}: {exc}")
    return _envelope(500, "Internal server error")


app.include_router(api_v1_router)


@app.get("/")
async def root():
    """Root endpoint"""
    return {
        "service": settings.app_name,
        "version": "1.0.0",
        "docs": "/docs",
    }
