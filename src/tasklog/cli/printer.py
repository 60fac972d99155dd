# src/tasklog/cli/printer.py

"""Plain-text output: task tables, task details and one-line effect notes."""

from __future__ import annotations

import shutil
from collections.abc import Sequence
from datetime import datetime
from typing import TextIO

from ..tasks.effects import (
    AddTask,
    ChangeTaskPriority,
    ChangeTaskState,
    ChangeTaskTags,
    DeleteTask,
    Effect,
)
from ..tasks.model import Model
from ..tasks.task_models import SHORT_ID_LEN, StateKind, Task, format_age

ELLIPSIS = "..."
TITLES = ("id", "pri", "age", "desc", "urg")
LEFT_ALIGNED = {"desc"}


def ellipsize(text: str, max_width: int) -> str:
    if max_width <= 0:
        raise ValueError("max_width must be positive")
    if len(text) <= max_width:
        return text
    if max_width > len(ELLIPSIS):
        return text[: max_width - len(ELLIPSIS)] + ELLIPSIS
    return text[:max_width]


def terminal_size() -> tuple[int, int]:
    """(columns, rows), with a sane fallback when not attached to a terminal."""
    size = shutil.get_terminal_size(fallback=(100, 40))
    return size.columns, size.lines


def print_table(
    out: TextIO,
    rows: Sequence[Sequence[str]],
    titles: Sequence[str] = TITLES,
    *,
    width_limit: int | None = None,
) -> None:
    """
    Right-aligned columns sized to their widest cell.

    When width_limit is given the widest left-aligned column (desc) is
    shrunk and ellipsized to fit.
    """
    widths = [len(t) for t in titles]
    for row in rows:
        for n, cell in enumerate(row):
            widths[n] = max(widths[n], len(cell))

    if width_limit is not None:
        overflow = sum(widths) + len(widths) - width_limit
        for n, title in enumerate(titles):
            if overflow > 0 and title in LEFT_ALIGNED:
                shrink = min(overflow, widths[n] - len(title))
                widths[n] -= shrink
                overflow -= shrink

    def fmt(cells: Sequence[str]) -> str:
        parts = []
        for n, cell in enumerate(cells):
            cell = ellipsize(cell, widths[n]) if cell else cell
            if titles[n] in LEFT_ALIGNED:
                parts.append(cell.ljust(widths[n]))
            else:
                parts.append(cell.rjust(widths[n]))
        return " " + " ".join(parts).rstrip()

    out.write(fmt(titles) + "\n")
    for row in rows:
        out.write(fmt(row) + "\n")


def task_row(task: Task, display_id: str, now: datetime) -> list[str]:
    return [
        display_id,
        task.priority.letter,
        format_age(task.age(now)),
        task.description,
        f"{task.urgency(now):.2f}",
    ]


def format_task_details(task: Task, title: str) -> str:
    tag_list = ", ".join(sorted(task.tags))
    extras = ", ".join(f"{k}={v}" for k, v in sorted(task.extras.items()))
    fields = (
        ("uuid", str(task.id)),
        ("description", task.description),
        ("status", str(task.status)),
        ("priority", task.priority.letter),
        ("created", task.created.isoformat(timespec="seconds")),
        ("modified", task.modified.isoformat(timespec="seconds")),
        ("tags", tag_list),
        ("extras", extras),
        ("urgency", f"{task.urgency():.2f}"),
    )
    lines = [f"==== task {title} ===="]
    lines.extend(f"{k:<15} {v}" for k, v in fields)
    return "\n".join(lines)


def describe_effect(effect: Effect, model: Model) -> str:
    """One line describing an applied effect (the task may already be gone)."""
    task = model.get(effect.task_id())
    label = task.short_id() if task is not None else effect.task_id().hex[:SHORT_ID_LEN]

    match effect:
        case AddTask(task=added):
            return f"Added task {added.short_id()}: {added.description}"
        case DeleteTask():
            return f"Deleted task {label}"
        case ChangeTaskState(state=state) if state.kind is StateKind.DONE:
            return f"Marked task {label} as done"
        case ChangeTaskState(state=state) if state.kind is StateKind.CANCELED:
            return f"Marked task {label} as canceled"
        case ChangeTaskState(state=state):
            return f"Changed state of task {label} to {state.kind.value}"
        case ChangeTaskPriority(priority=priority):
            return f"Changed priority of task {label} to {priority.letter}"
        case ChangeTaskTags(added=added, removed=removed):
            changes = [f"+{t}" for t in sorted(added)] + [f"-{t}" for t in sorted(removed)]
            return f"Changed tags of task {label}: {' '.join(changes)}"
    return f"Applied {type(effect).__name__} to task {label}"
