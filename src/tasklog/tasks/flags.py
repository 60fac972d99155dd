# src/tasklog/tasks/flags.py

"""
Command-line flags used to filter and modify tasks.

- priority:h / p:h   priority (by first letter: l, m/d, h)
- +tag               tag present / add tag
- -tag               tag absent / remove tag
"""

from __future__ import annotations

import re
from dataclasses import dataclass

from .task_models import Priority, Task

_PRIORITY_RE = re.compile(r"p(?:riority)?:(.+)", re.DOTALL)
_TAG_POS_RE = re.compile(r"\+(.+)", re.DOTALL)
_TAG_NEG_RE = re.compile(r"-(.+)", re.DOTALL)


@dataclass(frozen=True, slots=True)
class PriorityFlag:
    priority: Priority

    def matches(self, task: Task) -> bool:
        return task.priority is self.priority

    def apply_to(self, task: Task) -> None:
        task.priority = self.priority

    def __str__(self) -> str:
        return f"priority:{self.priority.letter}"


@dataclass(frozen=True, slots=True)
class TagFlag:
    tag: str
    positive: bool = True

    def matches(self, task: Task) -> bool:
        return (self.tag in task.tags) is self.positive

    def apply_to(self, task: Task) -> None:
        if self.positive:
            task.tags.add(self.tag)
        else:
            task.tags.discard(self.tag)

    def __str__(self) -> str:
        return f"{'+' if self.positive else '-'}{self.tag}"


Flag = PriorityFlag | TagFlag


def parse_flag(text: str) -> Flag | None:
    m = _PRIORITY_RE.fullmatch(text)
    if m:
        try:
            return PriorityFlag(Priority.parse(m.group(1)))
        except ValueError:
            pass

    m = _TAG_POS_RE.fullmatch(text)
    if m:
        return TagFlag(m.group(1), positive=True)

    m = _TAG_NEG_RE.fullmatch(text)
    if m:
        return TagFlag(m.group(1), positive=False)

    return None
