"""Shared test fixtures."""

from collections.abc import AsyncIterator

import pytest
from httpx import ASGITransport, AsyncClient

from src.container import AppContainer
from src.eg_common.database import get_db_session
from src.eg_market.application.service import GameApplicationService
from src.main import app
from tests.fakes import (
    FakeDb,
    FakeRoundRepository,
    FakeSessionRepository,
    FakeStack,
    build_fake_stack,
)


@pytest.fixture
def stack() -> FakeStack:
    """Service graph wired to in-memory repositories."""
    return build_fake_stack()


@pytest.fixture
async def client(stack: FakeStack) -> AsyncIterator[AsyncClient]:
    """Async HTTP client against the app, backed by `stack` instead of PostgreSQL/Redis."""
    app.state.container = AppContainer(
        broadcaster=stack.broadcaster,
        locks=stack.locks,
        registry=stack.registry,
        submitter=stack.submitter,
        dispatcher=stack.dispatcher,
        lifecycle=stack.lifecycle,
        game=GameApplicationService(
            stack.submitter,
            stack.registry,
            session_repo=FakeSessionRepository(stack.store),
            round_repo=FakeRoundRepository(stack.store),
        ),
    )

    async def _fake_db() -> AsyncIterator[FakeDb]:
        yield FakeDb()

    app.dependency_overrides[get_db_session] = _fake_db
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()
