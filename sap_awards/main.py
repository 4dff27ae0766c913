import asyncio
import logging
import os
import time
from contextlib import asynccontextmanager, suppress

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles
from starlette.middleware.sessions import SessionMiddleware

# Import all models so every table is registered with Base
from . import config, models, models_certificate, models_outbox  # noqa: F401
from .database import Base, engine
from .domain.awards import router as awards_router
from .domain.certificates import router as certificates_router
from .errors import register_exception_handlers
from .outbox import run_sweeper
from .rate_limiter import get_redis_client, redis_configured
from .routes.auth import router as auth_router
from .security_headers import SecurityHeadersMiddleware

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

logging.getLogger("httpx").setLevel(logging.WARNING)
logging.getLogger("httpcore").setLevel(logging.WARNING)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Application starting up...")
    try:
        Base.metadata.create_all(bind=engine, checkfirst=True)
        logger.info("Database tables created successfully")
    except Exception as e:
        error_msg = str(e)
        if "already exists" in error_msg or "duplicate key" in error_msg:
            logger.info("Database tables already exist (created by another worker)")
        else:
            logger.error(f"Failed to create database tables: {e}")

    if get_redis_client():
        logger.info("Redis connection established")
    else:
        logger.warning("Redis unavailable - cache and rate limiting run in-process")

    sweeper = None
    if config.OUTBOX_DISPATCH == "inline" and config.OUTBOX_SWEEPER_ENABLED:
        sweeper = asyncio.create_task(run_sweeper(config.OUTBOX_SWEEP_INTERVAL))

    yield

    if sweeper:
        sweeper.cancel()
        with suppress(asyncio.CancelledError):
            await sweeper
    logger.info("Application shutting down...")


app = FastAPI(title="SAPHANIOX Awards API", version="1.0.0", lifespan=lifespan)

register_exception_handlers(app)

if config.SECURITY_HEADERS_ENABLED:
    app.add_middleware(
        SecurityHeadersMiddleware,
        exclude_paths=["/health", "/docs", "/openapi.json", "/uploads", "/api/certificates/download"],
    )
    logger.info("Security headers enabled")
else:
    logger.warning("Security headers DISABLED - only use in development!")

app.add_middleware(
    SessionMiddleware,
    secret_key=config.SECRET_KEY,
    session_cookie=config.SESSION_COOKIE_NAME,
    max_age=config.SESSION_MAX_AGE,
    same_site="lax",
    https_only=config.SESSION_HTTPS_ONLY,
)

logger.info(f"CORS allowed origins: {config.ALLOWED_ORIGINS}")

app.add_middleware(
    CORSMiddleware,
    allow_origins=config.ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS", "PATCH"],
    allow_headers=["*"],
)

os.makedirs(config.UPLOAD_DIR, exist_ok=True)
app.mount("/uploads", StaticFiles(directory=config.UPLOAD_DIR), name="uploads")

app.include_router(auth_router)
app.include_router(awards_router)
app.include_router(certificates_router)


@app.get("/")
def root():
    return {"message": "SAPHANIOX Awards API", "version": "1.0.0"}


@app.get("/health")
def health():
    return {"status": "healthy", "environment": config.ENVIRONMENT}


@app.get("/health/redis")
async def redis_health_check():
    """Check Redis connectivity for monitoring"""
    redis_client = get_redis_client()
    if redis_client is None:
        return {"status": "unavailable", "redis": {"connected": False, "configured": redis_configured()}}

    try:
        start_time = time.time()
        redis_client.ping()
        response_time = (time.time() - start_time) * 1000
        info = redis_client.info()
        return {
            "status": "healthy",
            "redis": {
                "connected": True,
                "response_time_ms": round(response_time, 2),
                "version": info.get("redis_version", "unknown"),
                "used_memory_human": info.get("used_memory_human", "unknown"),
            },
        }
    except Exception as e:
        return {"status": "unhealthy", "redis": {"connected": False, "error": str(e)}}
