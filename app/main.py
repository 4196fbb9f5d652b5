# app/main.py
from contextlib import asynccontextmanager
from pathlib import Path
import logging
import time

from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles
from fastapi import FastAPI, Request

from app.core.config import get_settings
from app.core.errors import register_exception_handlers
from app.core.notifications import NotificationDispatcher, build_notification_sink
from app.database import create_db_and_tables

# Import models so SQLModel metadata is populated before create_all()
from app.models import user as _user_models  # noqa: F401
from app.models import upload as _upload_models  # noqa: F401

# Routers
from app.routers.users import router as users_router
from app.routers.uploads import router as uploads_router

settings = get_settings()

logging.basicConfig(level=settings.LOG_LEVEL)
logger = logging.getLogger("uvicorn")
request_logger = logging.getLogger("app.requests")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan handler.

    Startup:
      - Create tables if missing.
      - Start the notification worker (approval emails).

    Shutdown:
      - Drain queued notifications and stop the worker.
    """
    logger.info("🔄 Startup: connecting to database...")
    try:
        create_db_and_tables()
        logger.info("✅ Startup: DB connection OK, tables verified.")
    except Exception as e:
        logger.error(f"❌ Startup: DB connection FAILED: {e}")
        raise

    notifier = NotificationDispatcher(
        build_notification_sink(settings),
        maxsize=settings.NOTIFY_QUEUE_SIZE,
    )
    notifier.start()
    app.state.notifier = notifier
    logger.info("✅ Startup: notification worker running.")

    yield

    notifier.stop()
    logger.info("👋 Shutdown: notification worker stopped.")


app = FastAPI(
    title=settings.PROJECT_NAME,
    version="0.1.0",
    lifespan=lifespan,
)

register_exception_handlers(app)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
    allow_headers=["*"],
)


@app.middleware("http")
async def log_requests(request: Request, call_next):
    started = time.perf_counter()
    response = await call_next(request)
    elapsed_ms = (time.perf_counter() - started) * 1000
    request_logger.info(
        f"{request.method} {request.url.path} -> {response.status_code} ({elapsed_ms:.1f}ms)"
    )
    return response


app.include_router(users_router, prefix=settings.API_PREFIX)
app.include_router(uploads_router, prefix=settings.API_PREFIX)

# Local blob sink: serve stored files back at STORAGE_PUBLIC_PREFIX.
if settings.STORAGE_BACKEND == "local":
    Path(settings.STORAGE_DIR).mkdir(parents=True, exist_ok=True)
    app.mount(
        settings.STORAGE_PUBLIC_PREFIX,
        StaticFiles(directory=settings.STORAGE_DIR),
        name="files",
    )


@app.get("/")
def root():
    """Health check endpoint."""
    return {"status": "ok", "service": "pinsync-backend"}
