import json
from pathlib import Path

import pytest


@pytest.fixture
def workdir(tmp_path, monkeypatch) -> Path:
    """Run the CLI from an empty project directory."""
    monkeypatch.chdir(tmp_path)
    return tmp_path


@pytest.fixture
def write_project(workdir):
    """Write an ergo.json into the working directory."""

    def _write(data: dict, filename: str = "ergo.json") -> Path:
        path = workdir / filename
        path.write_text(json.dumps(data), encoding="utf-8")
        return path

    return _write


@pytest.fixture
def height_lock_file(workdir, read_contract) -> Path:
    path = workdir / "height_lock.es"
    path.write_text(read_contract("height_lock.es"), encoding="utf-8")
    return path
