import asyncio
import logging
from contextlib import asynccontextmanager
from datetime import datetime
from functools import partial

from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.middleware.gzip import GZipMiddleware

from .config import settings
from .database import create_db_and_tables
from .exceptions import (
    APIException,
    api_exception_handler,
    http_exception_handler,
    validation_exception_handler,
)
from .infrastructure.realtime.gateway import RealtimeGateway
from .infrastructure.scheduler.reminder_scheduler import ReminderScheduler
from .middleware import ErrorHandlingMiddleware, LoggingMiddleware, RateLimitMiddleware, SecurityMiddleware
from .routers import admin_router, appointments_router, chats_router, realtime_router
from .routers.deps import chat_service_scope, run_reminder_sweep, token_verifier

# Configure logging
logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
    format=settings.LOG_FORMAT
)
logger = logging.getLogger(__name__)

gateway = RealtimeGateway(verifier=token_verifier, chat_scope=chat_service_scope)
# Reminder pushes already delivered, kept across hourly sweeps
reminder_pushes: set = set()
reminder_scheduler = ReminderScheduler(sweep=partial(run_reminder_sweep, gateway, reminder_pushes), enabled=settings.REMINDERS_ENABLED)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup
    logger.info(f"Starting {settings.APP_NAME}...")
    app.state.db_init_ok = True
    app.state.db_init_error = None
    try:
        create_db_and_tables()
        logger.info("Database initialized successfully")
    except Exception as e:
        # Do not crash the app; report via health endpoint
        app.state.db_init_ok = False
        app.state.db_init_error = str(e)
        logger.exception("Database initialization failed")

    gateway.bind_loop(asyncio.get_running_loop())
    reminder_scheduler.start()
    yield
    # Shutdown
    reminder_scheduler.stop()
    logger.info(f"Shutting down {settings.APP_NAME}...")


app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    debug=settings.DEBUG,
    lifespan=lifespan,
    docs_url=("/docs" if settings.DOCS_ENABLED else None),
    redoc_url=("/redoc" if settings.DOCS_ENABLED else None),
    openapi_url=("/openapi.json" if settings.DOCS_ENABLED else None)
)
app.state.gateway = gateway

# Add custom exception handlers
app.add_exception_handler(APIException, api_exception_handler)
app.add_exception_handler(StarletteHTTPException, http_exception_handler)
app.add_exception_handler(RequestValidationError, validation_exception_handler)

# Add middleware
app.add_middleware(ErrorHandlingMiddleware)
app.add_middleware(LoggingMiddleware)
app.add_middleware(SecurityMiddleware)
app.add_middleware(RateLimitMiddleware)

# GZip compression
app.add_middleware(GZipMiddleware, minimum_size=settings.GZIP_MIN_SIZE)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.allowed_origins_list,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE", "PATCH", "OPTIONS"],
    allow_headers=["Content-Type", "Authorization"],
)

app.include_router(appointments_router.router)
app.include_router(chats_router.router)
app.include_router(admin_router.router)
app.include_router(realtime_router.router)


# Health check endpoint
@app.get("/health")
def health_check():
    return {
        "status": "healthy" if getattr(app.state, "db_init_ok", True) else "degraded",
        "service": settings.APP_NAME,
        "version": settings.APP_VERSION,
        "timestamp": datetime.utcnow().isoformat(),
        "database": {
            "ok": getattr(app.state, "db_init_ok", True),
            "error": getattr(app.state, "db_init_error", None)
        },
        "realtime": {
            "connections": len(gateway.rooms),
        },
        "reminders": {
            "running": reminder_scheduler.is_running,
        },
    }


if __name__ == "__main__":
    import uvicorn
    uvicorn.run("medicare.main:app", host=settings.HOST, port=settings.PORT)
