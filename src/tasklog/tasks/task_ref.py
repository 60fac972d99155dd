# src/tasklog/tasks/task_ref.py

from __future__ import annotations

import re
import uuid
from dataclasses import dataclass

from .task_models import SHORT_ID_LEN

_FULL_RE = re.compile(r"[0-9a-fA-F]{8}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{12}")
_SHORT_RE = re.compile(r"[0-9a-fA-F]{%d}" % SHORT_ID_LEN)
_NUMERIC_RE = re.compile(r"[0-9]+")


class TaskRefError(ValueError):
    """Input is not a full id, a short id or a number."""

    def __init__(self, text: str) -> None:
        super().__init__(f"Failed to parse task-id {text!r}")
        self.text = text


@dataclass(frozen=True, slots=True)
class FullId:
    id: uuid.UUID

    def __str__(self) -> str:
        return str(self.id)


@dataclass(frozen=True, slots=True)
class ShortId:
    prefix: str

    def __str__(self) -> str:
        return self.prefix


@dataclass(frozen=True, slots=True)
class Numeric:
    number: int

    def __str__(self) -> str:
        return str(self.number)


TaskRef = FullId | ShortId | Numeric


def parse_task_ref(text: str) -> TaskRef:
    """
    Classify user input as a task reference.

    Forms overlap, so the order matters:
    1. canonical hyphenated UUID
    2. exactly six hex characters (so "123456" is a short id, not a number)
    3. a non-negative decimal number (leading zeros allowed)
    """
    if _FULL_RE.fullmatch(text):
        return FullId(uuid.UUID(text))
    if _SHORT_RE.fullmatch(text):
        return ShortId(text.lower())
    if _NUMERIC_RE.fullmatch(text):
        return Numeric(int(text))
    raise TaskRefError(text)


def is_task_ref(text: str) -> bool:
    try:
        parse_task_ref(text)
    except TaskRefError:
        return False
    return True
