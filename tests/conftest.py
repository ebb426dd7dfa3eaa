"""
Shared test fixtures and configuration.
"""

from pathlib import Path

import pytest

from toolsmith.adapters.base import ExecutionContext
from toolsmith.adapters.mock import MockSpawner
from toolsmith.adapters.sinks import BufferSink
from toolsmith.core.models.platform import Platform


@pytest.fixture
def sink() -> BufferSink:
    return BufferSink()


@pytest.fixture
def spawner() -> MockSpawner:
    return MockSpawner()


@pytest.fixture
def root_dir(tmp_path: Path) -> Path:
    """Return a temporary install root."""
    root = tmp_path / "root"
    root.mkdir()
    return root


@pytest.fixture
def make_context(root_dir: Path, sink: BufferSink, spawner: MockSpawner):
    """Build an ExecutionContext on the shared sink/spawner."""

    def _make(
        platform: Platform = Platform.LINUX,
        requested_version: str | None = None,
        **overrides,
    ) -> ExecutionContext:
        fields = {
            "root_dir": str(root_dir),
            "sink": sink,
            "spawner": spawner,
            "platform": platform,
            "requested_version": requested_version,
        }
        fields.update(overrides)
        return ExecutionContext(**fields)

    return _make


@pytest.fixture
def context(make_context) -> ExecutionContext:
    """A linux context backed by the mock spawner."""
    return make_context()
