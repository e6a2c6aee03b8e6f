"""Pytest configuration and fixtures."""

from __future__ import annotations

import sys
from collections.abc import Callable
from pathlib import Path
from typing import Any

import pytest

# Project root
PROJECT_ROOT = Path(__file__).parent.parent

# Add src to the Python path (development checkout)
SRC_DIR = PROJECT_ROOT / "src"
if str(SRC_DIR) not in sys.path:
    sys.path.insert(0, str(SRC_DIR))

from program_runner.runtime import ExecutionRequest, ProcessRunner  # noqa: E402

FAKE_PROGRAM = Path(__file__).parent / "fixtures" / "fake_program.py"


@pytest.fixture
def workspace(tmp_path: Path) -> Path:
    """Temporary working directory for the child."""
    path = tmp_path / "workspace"
    path.mkdir()
    return path


@pytest.fixture
def runner() -> ProcessRunner:
    """Runner with a deterministic encoding and a short drain join bound."""
    return ProcessRunner(reader_join_timeout=5.0, encoding="utf-8")


@pytest.fixture
def fake_request(workspace: Path) -> Callable[..., ExecutionRequest]:
    """Build a request that runs tests/fixtures/fake_program.py.

    Example:
        request = fake_request("--stdout", "hi", timeout_ms=5000)
    """

    def _build(*flags: str, **kwargs: Any) -> ExecutionRequest:
        kwargs.setdefault("timeout_ms", 10_000)
        return ExecutionRequest(
            command=sys.executable,
            working_directory=workspace,
            args=[str(FAKE_PROGRAM), *flags],
            **kwargs,
        )

    return _build
