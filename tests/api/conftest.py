"""Shared fixtures for API tests."""

from typing import Iterator
from unittest.mock import AsyncMock

import pytest
from fastapi.testclient import TestClient

from storefront.application.storefront import Storefront
from storefront.infrastructure.config import Settings
from storefront.infrastructure.storage import MemoryStorage
from storefront.main import create_app


@pytest.fixture
def test_settings() -> Settings:
    """Settings with console logging for readable test output."""
    return Settings(log_json=False, log_level="DEBUG")


@pytest.fixture
def auth_status() -> dict:
    """Response the mocked /user/auth answers with; tests may override it."""
    return {"status_code": 401, "data": None}


@pytest.fixture
def app_storefront(
    catalog_source,
    session_client,
    auth_response,
    auth_status: dict,
    storage: MemoryStorage,
    landings,
) -> Storefront:
    """Storefront wired against mocked backend clients."""
    return Storefront(
        catalog_source=catalog_source,
        session_client_factory=lambda cookies: session_client(
            auth_response(auth_status["status_code"], auth_status["data"])
        ),
        storage=storage,
        landings=landings,
    )


@pytest.fixture
def client(app_storefront: Storefront, test_settings: Settings) -> Iterator[TestClient]:
    """Test client with the catalog loaded."""
    with TestClient(create_app(app_storefront, test_settings)) as client:
        client.portal.call(app_storefront.wait_until_loaded)
        yield client


@pytest.fixture
def loading_client(
    app_storefront: Storefront, test_settings: Settings, monkeypatch: pytest.MonkeyPatch
) -> Iterator[TestClient]:
    """Test client whose catalog has not been fetched yet."""
    monkeypatch.setattr(app_storefront, "start", AsyncMock())
    with TestClient(create_app(app_storefront, test_settings)) as client:
        yield client
