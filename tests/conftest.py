"""
Pytest Configuration and Fixtures

Shared fixtures for unit tests (in-memory fakes, no network) and
integration tests (live PostgreSQL with pgvector, skipped when absent).
"""

import os

from dotenv import load_dotenv

# ---------------------------------------------------------------------------
# Test environment defaults - MUST be before any neuralmd imports.
#
# 1. Load .env first so that Docker-matching credentials are available.
# 2. setdefault fills in anything still missing (CI runners, fresh clones
#    without a .env file) so that pydantic Settings validation doesn't crash.
# ---------------------------------------------------------------------------
load_dotenv()  # .env → os.environ (no-op if file is missing)

_test_env = {
    "POSTGRES_USER": "neuralmd",
    "POSTGRES_PASSWORD": "neuralmd_password",
    "POSTGRES_HOST": "localhost",
    "POSTGRES_PORT": "5432",
    "POSTGRES_DB": "neuralmd_test",
    "EMBEDDING_PROVIDER": "none",
}
for _key, _value in _test_env.items():
    os.environ.setdefault(_key, _value)

# ---------------------------------------------------------------------------
# Imports (safe now that env vars are set)
# ---------------------------------------------------------------------------
from collections.abc import Callable  # noqa: E402

import pytest  # noqa: E402

from neuralmd.core.config import Settings, settings  # noqa: E402
from neuralmd.models import Note  # noqa: E402
from neuralmd.services.embeddings import EmbeddingService  # noqa: E402
from tests.fakes import (  # noqa: E402
    VECTOR_QUERY,
    VECTOR_X,
    VECTOR_Y,
    VECTOR_Z,
    FakeNoteRepository,
    FakeProvider,
    make_note,
)


@pytest.fixture
def test_settings() -> Settings:
    """Settings copy with short timeouts for fast failure tests."""
    return settings.model_copy(
        update={
            "EMBEDDING_MAX_CHARS": 8000,
            "EMBEDDING_TIMEOUT": 0.2,
            "GRAPH_MAX_EDGES": 500,
        }
    )


@pytest.fixture
def fake_provider() -> FakeProvider:
    """3-dimensional provider answering the scenario vectors."""
    return FakeProvider(
        vectors={"deep learning": VECTOR_QUERY},
        default=VECTOR_Z,
    )


@pytest.fixture
def make_embedding_service(
    test_settings: Settings,
) -> Callable[..., EmbeddingService]:
    """Factory building an EmbeddingService around a given provider (or None)."""

    def _make(provider: FakeProvider | None, **overrides) -> EmbeddingService:
        service_settings = test_settings.model_copy(update=overrides)
        return EmbeddingService(service_settings, provider_factory=lambda _: provider)

    return _make


@pytest.fixture
def scenario_notes() -> list[Note]:
    """X (ML basics), Y (deep learning), Z (groceries); Z updated most recently."""
    return [
        make_note(
            "x" * 8,
            "machine learning basics",
            "Supervised and unsupervised learning.",
            VECTOR_X,
            minutes_ago=30,
            tags=["ml"],
        ),
        make_note(
            "y" * 8,
            "deep learning intro",
            "Neural networks with many layers.",
            VECTOR_Y,
            minutes_ago=20,
            tags=["ml", "dl"],
        ),
        make_note(
            "z" * 8,
            "grocery list",
            "Milk, eggs, bread, coffee.",
            VECTOR_Z,
            minutes_ago=10,
            tags=["home"],
        ),
    ]


@pytest.fixture
def scenario_repository(scenario_notes: list[Note]) -> FakeNoteRepository:
    return FakeNoteRepository(scenario_notes)
