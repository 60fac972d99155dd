# src/tasklog/cli/bootstrap.py

"""
CLI bootstrap helpers.

This module is the "composition root":
- takes settings once,
- ensures the local data directory exists,
- opens the effect log and replays it into a Model,
- persists newly applied effects on shutdown.
"""

from __future__ import annotations

import logging
from typing import TextIO

from ..config import get_settings
from ..core.ports import EffectRepo
from ..core.state import AppState
from ..tasks.task_store import TaskStore

logger = logging.getLogger(__name__)


def _ensure_local_dirs(settings) -> None:
    settings.data_dir.mkdir(parents=True, exist_ok=True)
    settings.db_path.parent.mkdir(parents=True, exist_ok=True)
    settings.lock_path.parent.mkdir(parents=True, exist_ok=True)


def create_initial_state(
    *,
    settings=None,
    repo: EffectRepo | None = None,
    out: TextIO | None = None,
) -> AppState:
    """
    Create AppState from the provided settings.

    Keeping settings and the repo injectable makes the app easier to test and
    avoids hidden global config reads. If settings is None, falls back to
    get_settings(). Raises StorageError when the store cannot be opened.
    """
    if settings is None:
        settings = get_settings()

    _ensure_local_dirs(settings)

    if repo is None:
        repo = TaskStore(settings.db_path)

    model = repo.load_model()
    logger.info("Scope %s: %d tasks, %d effects", settings.scope, len(model.tasks), len(model.applied_effects))

    return AppState(
        settings=settings,
        model=model,
        repo=repo,
        scope=settings.scope,
        out=out,
        list_limit=getattr(settings, "list_limit", 0),
    )


def save_state(state: AppState) -> int:
    """Persist effects applied during this run. Returns the number of new rows."""
    if state.repo is None:
        return 0
    if not state.model.is_dirty():
        logger.debug("Nothing to persist.")
        return 0
    written = state.repo.commit(state.model)
    logger.info("Persisted %d new effects", written)
    return written
