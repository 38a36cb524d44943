"""Pytest configuration and fixtures for Folio tests.

Test isolation strategy:
- Settings cache is cleared around every test
- Storage is replaced with in-memory FakeStorageClient instances through
  FastAPI dependency overrides; no test touches the network except through
  respx mocks
"""

import sys
from collections.abc import Generator
from pathlib import Path

# Add repo root to sys.path for importing top-level packages (e.g., apps)
_repo_root = Path(__file__).parent.parent.parent
if str(_repo_root) not in sys.path:
    sys.path.insert(0, str(_repo_root))

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from folio.api.deps import get_output_storage, get_source_storage
from folio.app import add_request_id_middleware, create_app
from folio.config import clear_settings_cache
from folio.storage.client import FakeStorageClient

_STORAGE_ENV = ("SUPABASE_URL", "SUPABASE_SERVICE_ROLE_KEY")


@pytest.fixture(autouse=True)
def isolated_env(monkeypatch):
    """Start every test from a known environment."""
    for name in _STORAGE_ENV:
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("FOLIO_ENV", "test")
    monkeypatch.setenv("LOG_JSON", "false")


@pytest.fixture(autouse=True)
def reset_settings_cache():
    """Reset the settings cache before each test."""
    clear_settings_cache()
    yield
    clear_settings_cache()


@pytest.fixture
def source_storage() -> FakeStorageClient:
    """In-memory stand-in for the EPUB bucket."""
    return FakeStorageClient(bucket="epubs")


@pytest.fixture
def output_storage() -> FakeStorageClient:
    """In-memory stand-in for the output bucket."""
    return FakeStorageClient(bucket="readium-manifests")


@pytest.fixture
def app(source_storage: FakeStorageClient, output_storage: FakeStorageClient) -> FastAPI:
    """Application wired to fake storage, with request-id middleware outermost."""
    app = create_app()
    app.dependency_overrides[get_source_storage] = lambda: source_storage
    app.dependency_overrides[get_output_storage] = lambda: output_storage
    add_request_id_middleware(app, log_requests=False)
    return app


@pytest.fixture
def client(app: FastAPI) -> Generator[TestClient, None, None]:
    """Provide a FastAPI test client backed by fake storage."""
    with TestClient(app) as client:
        yield client


@pytest.fixture
def bare_client() -> Generator[TestClient, None, None]:
    """Client with no dependency overrides (storage resolved from settings)."""
    app = create_app()
    add_request_id_middleware(app, log_requests=False)
    with TestClient(app) as client:
        yield client
