"""The main entry point for pytest fixtures.

This will run before any tests are executed when `import pytest` is called.
"""

from __future__ import annotations

import textwrap
from datetime import datetime
from pathlib import Path
from typing import Callable, Iterator, Mapping

import pytest
from loguru import logger

from envbind.helpers.logging_helpers import LOG_FORMAT
from envbind.helpers.readers import MappingEnvReader


def _setup_logging() -> None:
    """Keep envbind's debug trail of every test run in logs/pytest_YYYYMMDD.log."""
    logs_dir = Path(__file__).resolve().parent.parent / "logs"
    logs_dir.mkdir(exist_ok=True)

    # the package silences itself on import
    logger.enable("envbind")
    logger.add(
        logs_dir / f"pytest_{datetime.now():%Y%m%d}.log",
        level="DEBUG",
        format=LOG_FORMAT,
        retention="7 days",
    )


def pytest_configure(config: pytest.Config) -> None:
    """Pytest configuration hook to add a file sink for envbind's logs."""
    _setup_logging()


@pytest.fixture
def caplog(caplog: pytest.LogCaptureFixture) -> Iterator[pytest.LogCaptureFixture]:
    """Pytest's caplog, fed with Loguru records instead of stdlib ones."""
    handler_id = logger.add(
        caplog.handler,
        format="{message}",
        level=0,
        filter=lambda record: record["level"].no >= caplog.handler.level,
        enqueue=False,
    )
    yield caplog
    logger.remove(handler_id)


@pytest.fixture
def make_reader() -> Callable[[Mapping[str, str]], MappingEnvReader]:
    """Build an in-memory reader from a dict of env values."""

    def _make(values: Mapping[str, str]) -> MappingEnvReader:
        return MappingEnvReader(values)

    return _make


@pytest.fixture
def write_dotenv(tmp_path: Path) -> Callable[[str], Path]:
    """Create a .env file inside tmp_path and gives you a path to it.

    Returns:
      a function you can call with the file body
    """

    def _write(body: str) -> Path:
        file_path = tmp_path / ".env"
        file_path.write_text(textwrap.dedent(body).strip() + "\n", encoding="utf-8")
        return file_path

    return _write
