"""Bot diagnostics.

GET /bots/logs    — the most recent bot log lines (newest last)
GET /bots/status  — dispatcher state and rounds with scheduled bot work
"""

from typing import Annotated

from fastapi import APIRouter, Depends, Query, Request

from src.container import AppContainer, get_container
from src.eg_common.logging_config import get_recent_bot_logs
from src.eg_common.response import ApiResponse, success_response

router = APIRouter(prefix="/bots", tags=["bots"])


@router.get("/logs")
async def get_bot_logs(
    request: Request,
    limit: int = Query(50, ge=1, le=500),
) -> ApiResponse:
    lines = get_recent_bot_logs().lines()[-limit:]
    resp = success_response({"logs": lines, "count": len(lines)})
    resp.request_id = getattr(request.state, "request_id", resp.request_id)
    return resp


@router.get("/status")
async def get_bot_status(
    request: Request,
    container: Annotated[AppContainer, Depends(get_container)],
) -> ApiResponse:
    dispatcher = container.dispatcher
    resp = success_response(
        {"running": dispatcher.running, "scheduled_rounds": len(dispatcher.scopes)}
    )
    resp.request_id = getattr(request.state, "request_id", resp.request_id)
    return resp
