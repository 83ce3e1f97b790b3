"""Functional test bootstrap.

Each test that needs the rubric service gets its own file-backed SQLite
database under ``tmp_path`` and an app built with ``create_app``. The editor
talks to it through ``httpx.ASGITransport`` so no network or server process
is involved. Async tests run on the anyio pytest plugin with asyncio.
"""

from __future__ import annotations

from typing import List, Optional

import httpx
import pytest

from rubric_builder.config import (
    DEFAULT_API_PREFIX,
    AppConfig,
    DatabaseConfig,
    OrganizationConfig,
    PersistenceConfig,
)
from rubric_builder.logic.edit_session import EditSession
from rubric_builder.logic.persistence_client import RubricPersistenceClient
from rubric_builder.logic.rubric_document import RubricDocument
from rubric_builder.main import create_app

BASE_URL = f"http://testserver{DEFAULT_API_PREFIX}"


@pytest.fixture
def anyio_backend() -> str:
    return "asyncio"


@pytest.fixture
def app_config(tmp_path) -> AppConfig:
    return AppConfig(
        database=DatabaseConfig(dsn=f"sqlite+pysqlite:///{tmp_path / 'rubrics.db'}"),
        organization=OrganizationConfig(org_id="testorg", name="Test Organization", short_name="TestOrg"),
        persistence=PersistenceConfig(base_url=BASE_URL),
    )


@pytest.fixture
def rubric_app(app_config):
    return create_app(app_config)


@pytest.fixture
def http_client(rubric_app) -> httpx.AsyncClient:
    """Raw HTTP client for exercising the service endpoints directly."""
    return httpx.AsyncClient(transport=httpx.ASGITransport(app=rubric_app), base_url=BASE_URL)


@pytest.fixture
def persistence(http_client) -> RubricPersistenceClient:
    return RubricPersistenceClient(client=http_client)


@pytest.fixture
def org(app_config) -> OrganizationConfig:
    return app_config.organization


@pytest.fixture
def new_session(org):
    """Factory for edit sessions bound to the test organization."""

    def _new(client: RubricPersistenceClient, errors: Optional[List[str]] = None) -> EditSession:
        on_error = errors.append if errors is not None else None
        return EditSession(RubricDocument(org.display_name), client, on_error=on_error)

    return _new


@pytest.fixture
def mock_persistence(app_config):
    """Factory for clients whose requests are answered by ``handler``."""

    def _client(handler) -> RubricPersistenceClient:
        transport = httpx.MockTransport(handler)
        return RubricPersistenceClient(
            client=httpx.AsyncClient(transport=transport, base_url=app_config.persistence.base_url)
        )

    return _client
