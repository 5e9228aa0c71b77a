"""Pytest configuration and fixtures for guide search tests."""

import json
from pathlib import Path
from typing import Any, AsyncGenerator
from unittest.mock import AsyncMock, MagicMock

import numpy as np
import pytest
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient

from guide_api.core.config import Settings
from guide_api.knowledge.base import KnowledgeBase, build_knowledge_base
from guide_api.knowledge.models import Match
from guide_api.knowledge.search import GuideSearchService
from guide_api.main import create_app
from guide_api.observability import MetricsCollector
from guide_api.services.state import ServiceState

ROOT_KEY = "bmw_z3_guide"


def make_match(source_tag: str, score: float) -> Match:
    return Match(score=score, source_tag=source_tag)


# -------------------------------------------------------------------------
# Knowledge Base Fixtures
# -------------------------------------------------------------------------


@pytest.fixture
def guide_data() -> dict[str, Any]:
    """A small guide mixing array and keyed categories."""
    return {
        "Engine": [
            {"title": "Checking the oil level", "description": "Park on level ground."},
            {"title": "Coolant", "description": "Top up only when the engine is cold."},
            {"title": "Drive belt", "description": "Inspect for cracks every 30k miles."},
        ],
        "Maintenance": {
            "idle_speed": {"title": "Idle speed", "description": "Roughly 800 rpm when warm."},
            "spark_plugs": {"title": "Spark plugs", "description": "Replace every 60k miles."},
        },
        "Electrical": [
            {"title": "Fuse box", "description": "Located under the hood."},
            None,
        ],
    }


@pytest.fixture
def knowledge_base(guide_data: dict[str, Any]) -> KnowledgeBase:
    return build_knowledge_base(guide_data, ROOT_KEY)


@pytest.fixture
def guide_file(tmp_path: Path, guide_data: dict[str, Any]) -> Path:
    """The guide written to disk the way the service expects it."""
    path = tmp_path / "data.json"
    path.write_text(json.dumps({ROOT_KEY: guide_data}), encoding="utf-8")
    return path


# -------------------------------------------------------------------------
# External Collaborator Fakes
# -------------------------------------------------------------------------


@pytest.fixture
def mock_embedder() -> MagicMock:
    """Embedder returning a fixed unit vector."""
    embedder = MagicMock()
    embedder.provider = "fake-embedder"
    embedder.load = AsyncMock()
    embedder.embed_query = AsyncMock(return_value=np.array([0.6, 0.8], dtype=np.float32))
    return embedder


@pytest.fixture
def mock_index() -> MagicMock:
    """Similarity index returning a mix of resolvable and broken tags."""
    index = MagicMock()
    index.backend = "fake-index"
    index.query = AsyncMock(
        return_value=[
            make_match("Engine > 0", 0.91),
            make_match("Maintenance > idle_speed", 0.87),
            make_match("Engine > 0", 0.85),
            make_match("Engine > 7", 0.80),
            make_match("Transmission > 0", 0.78),
            make_match("no delimiter", 0.75),
            make_match("Electrical > 1", 0.70),
            make_match("Electrical > 0", 0.64),
        ]
    )
    return index


@pytest.fixture
def metrics() -> MetricsCollector:
    return MetricsCollector()


@pytest.fixture
def search_service(
    mock_embedder: MagicMock,
    mock_index: MagicMock,
    metrics: MetricsCollector,
) -> GuideSearchService:
    return GuideSearchService(mock_embedder, mock_index, top_k=15, metrics=metrics)


# -------------------------------------------------------------------------
# Application Fixtures
# -------------------------------------------------------------------------


@pytest.fixture
def settings(guide_file: Path) -> Settings:
    return Settings(
        _env_file=None,
        environment="development",
        data_path=guide_file,
        pinecone_api_key="test-key",
    )


@pytest.fixture
def production_settings(guide_file: Path) -> Settings:
    return Settings(
        _env_file=None,
        environment="production",
        data_path=guide_file,
        pinecone_api_key="test-key",
    )


@pytest.fixture
def app(
    settings: Settings,
    knowledge_base: KnowledgeBase,
    search_service: GuideSearchService,
) -> FastAPI:
    """Application with fully initialized services (lifespan not run)."""
    application = create_app(settings)
    application.state.services = ServiceState(
        knowledge_base=knowledge_base,
        search=search_service,
    )
    return application


@pytest.fixture
async def client(app: FastAPI) -> AsyncGenerator[AsyncClient, None]:
    """Create an async HTTP client for testing."""
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as ac:
        yield ac


def pytest_configure(config):
    """Add custom markers."""
    config.addinivalue_line(
        "markers", "rag: retrieval and ranking behaviour tests"
    )
