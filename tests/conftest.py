import os
import tempfile
from typing import Any, AsyncGenerator, Awaitable, Callable, Generator, List
from unittest.mock import AsyncMock, MagicMock

# Point the app at a throwaway SQLite database before anything imports it
_TEST_DB_DIR = tempfile.mkdtemp(prefix="cotillion-tests-")
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///" + os.path.join(
    _TEST_DB_DIR, "test.db"
)
os.environ["ACCESS_PASSWORD"] = "open-sesame"
os.environ["BCRYPT_ROUNDS"] = "4"
os.environ["ACCEPT_RETRY_DELAY_SECONDS"] = "0.01"
os.environ.pop("ENV", None)

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy.ext.asyncio import AsyncSession  # noqa: E402

import cotillion.models.db  # noqa: E402,F401
from cotillion.database import AsyncSessionLocal, Base, engine  # noqa: E402
from cotillion.main import app  # noqa: E402
from cotillion.models.api.participants import ParticipantResponse  # noqa: E402
from cotillion.services.session_service import SessionService  # noqa: E402

ACCESS_PASSWORD = "open-sesame"


@pytest.fixture(autouse=True)
async def reset_database() -> AsyncGenerator[None, None]:
    """Give every test an empty schema."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)
    yield


@pytest.fixture
async def db() -> AsyncGenerator[AsyncSession, None]:
    """A real database session for integration tests."""
    async with AsyncSessionLocal() as session:
        yield session


@pytest.fixture
async def mock_db() -> AsyncGenerator[AsyncMock, None]:
    """Create a mock database session for unit tests."""
    mock_session = AsyncMock()
    mock_session.commit = AsyncMock()
    mock_session.rollback = AsyncMock()
    mock_session.close = AsyncMock()
    mock_session.refresh = AsyncMock()
    mock_session.flush = AsyncMock()
    mock_session.execute = AsyncMock()
    mock_session.add = MagicMock()  # add is sync, not async

    yield mock_session


@pytest.fixture
def make_participant(
    db: AsyncSession,
) -> Callable[..., Awaitable[ParticipantResponse]]:
    """Register participants through the real sign-up path."""

    async def _make(
        name: str, category: str = "girl", code: str = "1234"
    ) -> ParticipantResponse:
        service = SessionService(db)
        session = await service.load(None)
        return await service.sign_up(session, name, code, category)

    return _make


def enter_site(client: TestClient) -> TestClient:
    """Pass the site gate and attach the session's CSRF token to the client."""
    response = client.post("/enter", json={"password": ACCESS_PASSWORD})
    assert response.status_code == 200
    token = client.get("/api/csrf").json()["csrf"]
    client.headers["X-CSRF-Token"] = token
    return client


@pytest.fixture
def client() -> Generator[TestClient, Any, None]:
    """Create a test client for the FastAPI app."""
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def gated_client(client: TestClient) -> TestClient:
    """A client that has entered the site passcode."""
    return enter_site(client)


@pytest.fixture
def client_factory(
    client: TestClient,
) -> Generator[Callable[[], TestClient], None, None]:
    """Extra browsers, each with its own session cookie."""
    extra: List[TestClient] = []

    def _factory() -> TestClient:
        browser = TestClient(app)
        extra.append(browser)
        return enter_site(browser)

    yield _factory

    for browser in extra:
        browser.close()
