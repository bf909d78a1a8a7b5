"""FastAPI application entry point.

Run with: uvicorn src.main:app --reload --port 8000
"""

# ruff: noqa: E402  -- uvloop.install() must run before other imports

import uvloop

uvloop.install()

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from sqlalchemy import text

from config.settings import settings
from src.container import build_container
from src.eg_bots.api.router import router as bots_router
from src.eg_common.database import engine
from src.eg_common.errors import AppError
from src.eg_common.logging_config import configure_logging
from src.eg_common.response import error_response
from src.eg_gateway.middleware.request_log import RequestLogMiddleware
from src.eg_market.api.router import router as game_router
from src.eg_session.api.router import router as lifecycle_router

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Startup: verify DB, build services, start bots. Shutdown: reverse order."""
    configure_logging()
    async with engine.connect() as conn:
        await conn.execute(text("SELECT 1"))
    container = build_container()
    app.state.container = container
    await container.start()
    yield
    await container.shutdown()
    await engine.dispose()


app = FastAPI(
    title=settings.APP_NAME,
    version="0.1.0",
    lifespan=lifespan,
)


app.add_middleware(RequestLogMiddleware)


@app.exception_handler(AppError)
async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    resp = error_response(exc.code, exc.message)
    resp.request_id = getattr(request.state, "request_id", resp.request_id)
    if exc.http_status >= 500:
        logger.error("%s %s failed: %d %s", request.method, request.url.path, exc.code, exc.message)
    return JSONResponse(
        status_code=exc.http_status,
        content=resp.model_dump(),
    )


app.include_router(game_router, prefix="/api/v1")
app.include_router(lifecycle_router, prefix="/api/v1")
app.include_router(bots_router, prefix="/api/v1")


@app.get("/health")
async def health() -> dict[str, str]:
    return {"status": "ok", "version": "0.1.0"}
