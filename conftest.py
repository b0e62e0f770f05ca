"""Root pytest configuration and fixtures.

This module provides:
- Environment setup (loads .env)
- Isolation of tests from a developer's local configuration
- Shared artifact and store fixtures
"""

from __future__ import annotations

import pytest
from dotenv import load_dotenv

from landscape_vision.artifact import InlineArtifact
from landscape_vision.config import EnvVar
from landscape_vision.history.storage import (
    InMemoryArtifactStore,
    InMemoryMetadataStore,
    InMemorySnapshotStore,
)

# Load environment variables from .env file
load_dotenv()


# =============================================================================
# Environment Isolation
# =============================================================================


@pytest.fixture(autouse=True)
def _isolated_environment(monkeypatch: pytest.MonkeyPatch, tmp_path) -> None:
    """Point storage at a temp dir and drop remote store settings.

    The Gemini key is left alone; tests that need it absent remove it.
    """
    monkeypatch.setenv(EnvVar.VISION_DATA_DIR.value.name, str(tmp_path / "data"))
    monkeypatch.delenv(EnvVar.VISION_ARTIFACT_URL.value.name, raising=False)
    monkeypatch.delenv(EnvVar.VISION_ARTIFACT_TOKEN.value.name, raising=False)


# =============================================================================
# Shared Fixtures
# =============================================================================


@pytest.fixture
def root_image() -> InlineArtifact:
    """A small inline JPEG standing in for an uploaded photo."""
    return InlineArtifact(data=b"\xff\xd8\xff\xe0root-photo", mime_type="image/jpeg")


@pytest.fixture
def memory_artifacts() -> InMemoryArtifactStore:
    return InMemoryArtifactStore()


@pytest.fixture
def memory_metadata() -> InMemoryMetadataStore:
    return InMemoryMetadataStore()


@pytest.fixture
def memory_snapshots() -> InMemorySnapshotStore:
    return InMemorySnapshotStore()
