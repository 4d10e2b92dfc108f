"""Shared test fixtures."""

import pytest
from httpx import ASGITransport, AsyncClient

from src.main import app
from src.pm_session.application.schemas import AuthParams
from src.pm_session.application.session import ChannelSessionManager
from src.pm_session.infrastructure.local_signer import LocalWalletSigner
from tests.fakes import WALLET_KEY, FakeTransport, authenticate


@pytest.fixture
async def client() -> AsyncClient:
    """Async HTTP client for testing FastAPI endpoints."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


@pytest.fixture
def signer() -> LocalWalletSigner:
    return LocalWalletSigner.from_key(WALLET_KEY)


@pytest.fixture
def transport() -> FakeTransport:
    return FakeTransport()


@pytest.fixture
def session(transport: FakeTransport) -> ChannelSessionManager:
    return ChannelSessionManager(lambda: transport, connect_timeout=1.0, auth_step_timeout=1.0)


@pytest.fixture
async def authenticated_session(
    session: ChannelSessionManager, transport: FakeTransport, signer: LocalWalletSigner
) -> ChannelSessionManager:
    await session.connect()
    await authenticate(session, transport, signer, AuthParams())
    return session
