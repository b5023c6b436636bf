from contextlib import asynccontextmanager

import redis.asyncio as redis
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from taskgraph import dependencies
from taskgraph.config import settings
from taskgraph.errors import TaskGraphError
from taskgraph.logging_config import setup_logging, get_logger

logger = get_logger(__name__)
from taskgraph.database import init_db_engine, close_db_engine
from taskgraph.migration_check import ensure_migrations
from taskgraph.routers import router as api_router


@asynccontextmanager
async def lifespan(app: FastAPI):
    setup_logging()
    logger.info("Starting taskgraph API")

    ensure_migrations()
    await init_db_engine()
    logger.info("Database engine initialized")

    if settings.redis_url:
        try:
            dependencies.redis_client = redis.from_url(
                settings.redis_url, decode_responses=True
            )
            await dependencies.redis_client.ping()
            logger.info("Connected to Redis, events enabled")
        except Exception as e:
            logger.warning(f"Redis unavailable, events disabled: {e}")
            dependencies.redis_client = None

    yield

    try:
        await close_db_engine()
        logger.info("Database engine closed")
    except Exception as e:
        logger.error(f"Error closing database engine: {e}")

    if dependencies.redis_client:
        try:
            await dependencies.redis_client.aclose()
            logger.info("Disconnected from Redis")
        except Exception as e:
            logger.error(f"Error closing Redis connection: {e}")


app = FastAPI(
    title="taskgraph API",
    version="0.1.0",
    description="Task dependency graph, progress and schedule projection",
    lifespan=lifespan,
)

# CORS_ORIGINS: "*" (default) allows any origin without credentials;
# an explicit comma-separated list enables credentials.
_cors_origins = settings.cors_origin_list()
app.add_middleware(
    CORSMiddleware,
    allow_origins=_cors_origins,
    allow_credentials=_cors_origins != ["*"],
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(TaskGraphError)
async def taskgraph_error_handler(request: Request, exc: TaskGraphError):
    """Typed domain failures: distinguishable code, no traceback."""
    logger.info(f"{request.method} {request.url.path} refused: {exc.code}: {exc.message}")
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


# Global exception handler
@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Catch unhandled exceptions and return proper JSON response."""
    error_detail = str(exc)
    error_type = type(exc).__name__

    logger.error(
        f"Unhandled exception in {request.method} {request.url.path}: {error_type}: {error_detail}",
        exc_info=True,
    )

    return JSONResponse(
        status_code=500,
        content={
            "detail": f"{error_type}: {error_detail}",
            "type": error_type,
            "path": str(request.url.path),
        },
    )


app.include_router(api_router, prefix="/api")


@app.get("/health")
async def health():
    return {"status": "ok", "events": dependencies.redis_client is not None}
