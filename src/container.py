"""AppContainer: the long-lived service objects, built once per process.

Built in the FastAPI lifespan and kept on `app.state.container`; routers get
it through the `get_container` dependency.
"""

import random
from dataclasses import dataclass

from fastapi import Request
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from src.eg_bots.dispatcher import BotDispatcher
from src.eg_common.database import async_session_factory
from src.eg_common.locks import RoundLocks
from src.eg_game.registry import GameRegistry, build_registry
from src.eg_game.submission import ActionSubmitter
from src.eg_gateway.broadcaster import BroadcastGateway, build_broadcaster
from src.eg_market.application.service import GameApplicationService
from src.eg_session.application.service import RoundLifecycleService


@dataclass
class AppContainer:
    broadcaster: BroadcastGateway
    locks: RoundLocks
    registry: GameRegistry
    submitter: ActionSubmitter
    dispatcher: BotDispatcher
    lifecycle: RoundLifecycleService
    game: GameApplicationService

    async def start(self) -> None:
        await self.dispatcher.start()

    async def shutdown(self) -> None:
        await self.dispatcher.shutdown()
        close = getattr(self.broadcaster, "close", None)
        if close is not None:
            await close()


def build_container(
    broadcaster: BroadcastGateway | None = None,
    session_factory: async_sessionmaker[AsyncSession] | None = None,
    rng: random.Random | None = None,
) -> AppContainer:
    broadcaster = broadcaster or build_broadcaster()
    locks = RoundLocks()
    registry = build_registry(broadcaster, locks)
    submitter = ActionSubmitter(registry)
    dispatcher = BotDispatcher(submitter, session_factory or async_session_factory, rng=rng)
    submitter.set_first_move_listener(dispatcher)
    lifecycle = RoundLifecycleService(broadcaster, locks, registry, dispatcher, rng=rng)
    return AppContainer(
        broadcaster=broadcaster,
        locks=locks,
        registry=registry,
        submitter=submitter,
        dispatcher=dispatcher,
        lifecycle=lifecycle,
        game=GameApplicationService(submitter, registry),
    )


def get_container(request: Request) -> AppContainer:
    return request.app.state.container
