# tests/conftest.py

from __future__ import annotations

import io
from pathlib import Path
from types import SimpleNamespace

import pytest

from tasklog.core.state import AppState
from tasklog.tasks.model import Model

from .fakes import FakeEffectRepo


@pytest.fixture()
def settings(tmp_path: Path) -> SimpleNamespace:
    """
    Minimal settings object compatible with AppState and the CLI.

    We intentionally use a SimpleNamespace rather than the real config,
    to keep unit tests isolated from the environment and from ~/.tasklog.
    """
    return SimpleNamespace(
        app_name="tasklog-test",
        log_level="WARNING",
        data_dir=tmp_path,
        db_path=tmp_path / "store.sqlite3",
        lock_path=tmp_path / "tasks.pid",
        scope="default",
        list_limit=50,
    )


@pytest.fixture()
def model() -> Model:
    return Model()


@pytest.fixture()
def out() -> io.StringIO:
    return io.StringIO()


@pytest.fixture()
def state(settings: SimpleNamespace, out: io.StringIO) -> AppState:
    """AppState over an empty in-memory effect log; output goes to `out`."""
    return AppState(
        settings=settings,
        model=Model(),
        repo=FakeEffectRepo(),
        scope="default",
        out=out,
        list_limit=50,
    )
