"""Session and round lifecycle endpoints.

GET  /sessions/{code}                       — session with its rounds
GET  /sessions/{code}/players               — seated players (public view)
POST /sessions/{code}/join                  — seat a human player
POST /sessions/{code}/start                 — start the session (round 1 goes active)
POST /sessions/{code}/end                   — close the active round, complete the session
POST /sessions/{code}/cancel                — abort a waiting/active session
POST /sessions/{code}/rounds/{n}/start      — activate round n
POST /rounds/{round_id}/end                 — end a round and publish its results
"""

from typing import Annotated

from fastapi import APIRouter, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from src.container import AppContainer, get_container
from src.eg_common.database import get_db_session
from src.eg_common.response import ApiResponse, success_response
from src.eg_session.application.schemas import (
    JoinedPlayerOut,
    JoinSessionRequest,
    PlayerOut,
    RoundOut,
    RoundResultOut,
    SessionDetail,
    SessionOut,
)

router = APIRouter(tags=["lifecycle"])


def _respond(request: Request, data: object) -> ApiResponse:
    resp = success_response(data)
    resp.request_id = getattr(request.state, "request_id", resp.request_id)
    return resp


@router.get("/sessions/{code}")
async def get_session(
    code: str,
    request: Request,
    container: Annotated[AppContainer, Depends(get_container)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> ApiResponse:
    session, rounds = await container.lifecycle.list_rounds(code, db)
    return _respond(request, SessionDetail.build(session, rounds).model_dump())


@router.get("/sessions/{code}/players")
async def list_players(
    code: str,
    request: Request,
    container: Annotated[AppContainer, Depends(get_container)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> ApiResponse:
    players = await container.lifecycle.list_players(code, db)
    return _respond(request, [PlayerOut.from_domain(p).model_dump() for p in players])


@router.post("/sessions/{code}/join", status_code=201)
async def join_session(
    code: str,
    req: JoinSessionRequest,
    request: Request,
    container: Annotated[AppContainer, Depends(get_container)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> ApiResponse:
    player = await container.lifecycle.join_session(code, req.name, db)
    return _respond(request, JoinedPlayerOut.from_domain(player).model_dump())


@router.post("/sessions/{code}/start")
async def start_session(
    code: str,
    request: Request,
    container: Annotated[AppContainer, Depends(get_container)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> ApiResponse:
    session = await container.lifecycle.start_session(code, db)
    return _respond(request, SessionOut.from_domain(session).model_dump())


@router.post("/sessions/{code}/end")
async def end_session(
    code: str,
    request: Request,
    container: Annotated[AppContainer, Depends(get_container)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> ApiResponse:
    session = await container.lifecycle.end_session(code, db)
    return _respond(request, SessionOut.from_domain(session).model_dump())


@router.post("/sessions/{code}/cancel")
async def cancel_session(
    code: str,
    request: Request,
    container: Annotated[AppContainer, Depends(get_container)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> ApiResponse:
    session = await container.lifecycle.cancel_session(code, db)
    return _respond(request, SessionOut.from_domain(session).model_dump())


@router.post("/sessions/{code}/rounds/{round_number}/start")
async def start_round(
    code: str,
    round_number: int,
    request: Request,
    container: Annotated[AppContainer, Depends(get_container)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> ApiResponse:
    rnd = await container.lifecycle.start_round(code, round_number, db)
    return _respond(request, RoundOut.from_domain(rnd).model_dump())


@router.post("/rounds/{round_id}/end")
async def end_round(
    round_id: str,
    request: Request,
    container: Annotated[AppContainer, Depends(get_container)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> ApiResponse:
    rnd = await container.lifecycle.get_round(round_id, db)
    result = await container.lifecycle.end_round(round_id, db)
    return _respond(request, RoundResultOut.build(rnd, result).model_dump())
