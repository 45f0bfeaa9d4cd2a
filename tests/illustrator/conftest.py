# tests/illustrator/conftest.py

from unittest.mock import AsyncMock, MagicMock

import pytest

from illustrator.client import GenerationClient
from illustrator.config import GenerationSettings

from fake_api import submitted


@pytest.fixture
def settings() -> GenerationSettings:
    """Settings with a credential and no real waiting between polls."""
    return GenerationSettings(api_key="test-key", poll_interval=0, _env_file=None)


@pytest.fixture
def mock_transport() -> AsyncMock:
    """Provides a mock for the GenerationTransport."""
    transport = AsyncMock()
    transport.submit.return_value = submitted()
    return transport


@pytest.fixture
def mock_sleep() -> AsyncMock:
    """Stands in for asyncio.sleep so the poll loop never waits."""
    return AsyncMock()


@pytest.fixture
def mock_presenter() -> MagicMock:
    """Provides a mock for the ValidationPresenter capability."""
    return MagicMock()


@pytest.fixture
def client(
    settings: GenerationSettings,
    mock_transport: AsyncMock,
    mock_presenter: MagicMock,
    mock_sleep: AsyncMock,
) -> GenerationClient:
    return GenerationClient(
        settings=settings,
        transport=mock_transport,
        presenter=mock_presenter,
        sleep=mock_sleep,
    )
