"""FastAPI trigger for Reminder Dispatcher.

GET /api/cron runs one dispatch cycle and is meant to be hit by an
external scheduler (cron, Vercel/Cloud scheduler, uptime pinger).
GET /api/config hands browser clients their public store settings.
Every other method on these routes answers 405.
"""

from contextlib import asynccontextmanager

import httpx
from fastapi import Depends, FastAPI, Request
from fastapi.exception_handlers import http_exception_handler
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

import database
from config import ConfigurationError, settings
from crud import ReminderStore
from dispatcher import StoreFetchError, run_dispatch_cycle
from logger_config import setup_logger
from notifier import Notifier
from schemas import DispatchReport, ErrorResponse, PublicConfig

logger = setup_logger(__name__, 'api.log')


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Share one HTTP client for push deliveries across requests."""
    if not settings.DATABASE_URL:
        logger.warning("DATABASE_URL is not set; /api/cron will answer with a configuration error")
    async with httpx.AsyncClient(timeout=settings.HTTP_TIMEOUT) as client:
        app.state.http_client = client
        yield


app = FastAPI(
    title="Reminder Dispatcher API",
    description="Periodic reminder dispatcher: push notifications for due reminders",
    version="1.0.0",
    lifespan=lifespan
)


@app.exception_handler(StarletteHTTPException)
async def method_not_allowed_handler(request: Request, exc: StarletteHTTPException):
    if exc.status_code == 405:
        return JSONResponse(status_code=405, content={"error": "Method Not Allowed"})
    return await http_exception_handler(request, exc)


@app.exception_handler(ConfigurationError)
async def configuration_error_handler(request: Request, exc: ConfigurationError):
    logger.error(f"Configuration error: {str(exc)}")
    return JSONResponse(status_code=500, content={"error": str(exc)})


@app.exception_handler(StoreFetchError)
async def fetch_error_handler(request: Request, exc: StoreFetchError):
    return JSONResponse(status_code=500, content={"error": "Cron failed", "detail": str(exc)})


def get_store() -> ReminderStore:
    """Store dependency.

    Raises:
        ConfigurationError: DATABASE_URL is not set (no fetch is attempted)
    """
    return ReminderStore(database.get_session_factory())


def get_notifier(request: Request) -> Notifier:
    """Notifier bound to the shared HTTP client"""
    return Notifier(request.app.state.http_client, settings)


@app.get("/health")
def health_check():
    """Health check endpoint for monitoring"""
    return {
        "status": "healthy",
        "service": "reminder_dispatcher",
        "store": settings.DATABASE_URL.split("://")[0] if settings.DATABASE_URL else None
    }


@app.get(
    "/api/cron",
    response_model=DispatchReport,
    responses={500: {"model": ErrorResponse}, 405: {"model": ErrorResponse}}
)
async def cron(
    store: ReminderStore = Depends(get_store),
    notifier: Notifier = Depends(get_notifier)
):
    """Run one dispatch cycle.

    Response example:
    ```json
    {"sent": 1, "details": [{"id": "42", "sentTo": ["iPhone"], "next_date": "2025-10-27T08:00"}]}
    ```
    """
    return await run_dispatch_cycle(store, notifier)


@app.get("/api/config", response_model=PublicConfig, responses={500: {"model": ErrorResponse}})
def public_config():
    """Public store settings for browser clients."""
    if not settings.PUBLIC_STORE_URL or not settings.PUBLIC_STORE_KEY:
        return JSONResponse(
            status_code=500,
            content={"error": "Missing PUBLIC_STORE_URL or PUBLIC_STORE_KEY environment variable."}
        )
    return PublicConfig(url=settings.PUBLIC_STORE_URL, key=settings.PUBLIC_STORE_KEY)


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        app,
        host=settings.API_HOST,
        port=settings.API_PORT,
        log_level="info"
    )
