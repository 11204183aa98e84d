import pytest
from fastapi.testclient import TestClient

from apigen.app_factory import create_app
from apigen.db import Settings
from sample_entities import DECLARATIONS


@pytest.fixture
def settings(tmp_path, monkeypatch):
    monkeypatch.setenv("DATABASE_URL", f"sqlite+aiosqlite:///{tmp_path / 'test.db'}")
    monkeypatch.setenv("APIGEN_CREATE_TABLES", "1")
    monkeypatch.setenv("APIGEN_STRICT_KEYS", "0")
    monkeypatch.setenv("APIGEN_SEARCH_IGNORE_CASE", "0")
    monkeypatch.setenv("APIGEN_DEFAULT_PAGE_SIZE", "20")
    monkeypatch.setenv("APIGEN_MAX_PAGE_SIZE", "100")
    return Settings()


@pytest.fixture
def app(settings):
    return create_app(DECLARATIONS, settings)


@pytest.fixture
def client(app):
    # `with` runs the lifespan, which creates the tables
    with TestClient(app) as c:
        yield c
