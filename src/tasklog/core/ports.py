# src/tasklog/core/ports.py

"""
Ports (interfaces) used by the CLI layer.

The CLI depends on Protocols instead of concrete implementations.
This keeps the storage backend swappable and makes testing easier.
"""

from __future__ import annotations

from typing import Protocol

from ..tasks.effects import Effect
from ..tasks.model import Model


class EffectRepo(Protocol):
    """Persistent, append-only effect log."""

    def load_effects(self) -> list[Effect]: ...
    def load_model(self) -> Model: ...
    def count_effects(self) -> int: ...

    # Appends only the effects not yet stored; no-op for a clean model.
    def commit(self, model: Model) -> int: ...
