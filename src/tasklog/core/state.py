# src/tasklog/core/state.py

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, TextIO

from ..tasks.model import Model
from .ports import EffectRepo

DEFAULT_SCOPE = "default"


@dataclass
class AppState:
    # Settings are kept on the state for easy access from command handlers.
    settings: Any

    model: Model
    repo: EffectRepo | None
    scope: str = DEFAULT_SCOPE

    out: TextIO | None = None
    list_limit: int = 0

    # Filled by command handlers; main uses it for the exit code.
    failures: list[str] = field(default_factory=list)

    @property
    def scope_tag(self) -> str | None:
        """Non-default scopes double as a tag on added and listed tasks."""
        return None if self.scope == DEFAULT_SCOPE else self.scope
