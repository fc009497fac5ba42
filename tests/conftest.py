"""Shared pytest fixtures and configuration for all tests."""

from pathlib import Path

import pytest

TEMPLATE_DATA_DIR = Path(__file__).parent / "templates" / "data"


@pytest.fixture(scope="session")
def template_data_dir() -> Path:
    """Directory holding the example contract sources."""
    return TEMPLATE_DATA_DIR


@pytest.fixture
def read_contract(template_data_dir):
    """Return the source text of an example contract by file name."""

    def _read(filename: str) -> str:
        return (template_data_dir / filename).read_text(encoding="utf-8")

    return _read


@pytest.fixture(autouse=True)
def isolated_environment(monkeypatch):
    """Keep user environment variables from changing CLI behaviour."""
    for name in ("ERGOSCRIPT_VERBOSE", "ERGOSCRIPT_RERAISE", "ERGOSCRIPT_LOG_LEVEL"):
        monkeypatch.delenv(name, raising=False)
