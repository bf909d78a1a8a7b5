"""Game REST endpoints.

POST /game/bids                        — submit a bid   {round_id, player_id, price}
POST /game/asks                        — submit an ask  {round_id, player_id, price}
POST /game/actions                     — submit any game action {round_id, player_id, action}
GET  /game/rounds/{round_id}/orderbook — active bids/asks (no private values)
GET  /game/rounds/{round_id}/trades    — executed trades with round stats
GET  /game/rounds/{round_id}/state     — reconnect snapshot for a player
"""

from typing import Annotated

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from src.container import AppContainer, get_container
from src.eg_common.database import get_db_session
from src.eg_common.enums import OrderSide
from src.eg_common.response import ApiResponse, success_response
from src.eg_market.application.schemas import ActionRequest, OrderRequest

router = APIRouter(prefix="/game", tags=["game"])


def _respond(request: Request, data: object) -> ApiResponse:
    resp = success_response(data)
    resp.request_id = getattr(request.state, "request_id", resp.request_id)
    return resp


@router.post("/bids", status_code=201)
async def submit_bid(
    req: OrderRequest,
    request: Request,
    container: Annotated[AppContainer, Depends(get_container)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> ApiResponse:
    result = await container.game.submit_order(OrderSide.BID, req, db)
    return _respond(request, result)


@router.post("/asks", status_code=201)
async def submit_ask(
    req: OrderRequest,
    request: Request,
    container: Annotated[AppContainer, Depends(get_container)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> ApiResponse:
    result = await container.game.submit_order(OrderSide.ASK, req, db)
    return _respond(request, result)


@router.post("/actions", status_code=201)
async def submit_action(
    req: ActionRequest,
    request: Request,
    container: Annotated[AppContainer, Depends(get_container)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> ApiResponse:
    result = await container.game.submit_action(req.round_id, req.player_id, req.action, db)
    return _respond(request, result)


@router.get("/rounds/{round_id}/orderbook")
async def get_orderbook(
    round_id: str,
    request: Request,
    container: Annotated[AppContainer, Depends(get_container)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> ApiResponse:
    result = await container.game.get_order_book(round_id, db)
    return _respond(request, result.model_dump())


@router.get("/rounds/{round_id}/trades")
async def get_trades(
    round_id: str,
    request: Request,
    container: Annotated[AppContainer, Depends(get_container)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> ApiResponse:
    result = await container.game.list_trades(round_id, db)
    return _respond(request, result.model_dump())


@router.get("/rounds/{round_id}/state")
async def get_state(
    round_id: str,
    request: Request,
    container: Annotated[AppContainer, Depends(get_container)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    player_id: str | None = Query(None),
) -> ApiResponse:
    result = await container.lifecycle.get_game_state(round_id, player_id, db)
    return _respond(request, result)
