# src/tasklog/tasks/effects.py

"""
Effects: immutable records of single state changes.

The ordered list of applied effects is the source of truth for the task set.
Replaying it from empty reconstructs the current state (see model.Model).

Wire format is one JSON object per effect with a "type" discriminator.
"""

from __future__ import annotations

import json
import uuid
from collections.abc import Iterable
from dataclasses import dataclass
from typing import Any

from .task_models import Priority, Task, TaskState


class EffectDecodeError(ValueError):
    """Raised when a stored effect cannot be decoded."""


@dataclass(frozen=True, slots=True)
class AddTask:
    task: Task

    # Task is mutable; hash on its id, which equal AddTasks always share.
    def __hash__(self) -> int:
        return hash(("add_task", self.task.id))

    def task_id(self) -> uuid.UUID:
        return self.task.id

    def to_dict(self) -> dict[str, Any]:
        return {"type": "add_task", "task": self.task.to_dict()}


@dataclass(frozen=True, slots=True)
class ChangeTaskTags:
    id: uuid.UUID
    added: frozenset[str] = frozenset()
    removed: frozenset[str] = frozenset()

    @classmethod
    def of(cls, task_id: uuid.UUID, added: Iterable[str] = (), removed: Iterable[str] = ()) -> ChangeTaskTags:
        return cls(task_id, frozenset(added), frozenset(removed))

    def task_id(self) -> uuid.UUID:
        return self.id

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": "change_task_tags",
            "id": str(self.id),
            "added": sorted(self.added),
            "removed": sorted(self.removed),
        }


@dataclass(frozen=True, slots=True)
class ChangeTaskState:
    id: uuid.UUID
    state: TaskState

    def task_id(self) -> uuid.UUID:
        return self.id

    def to_dict(self) -> dict[str, Any]:
        return {"type": "change_task_state", "id": str(self.id), "state": self.state.to_dict()}


@dataclass(frozen=True, slots=True)
class ChangeTaskPriority:
    id: uuid.UUID
    priority: Priority

    def task_id(self) -> uuid.UUID:
        return self.id

    def to_dict(self) -> dict[str, Any]:
        return {"type": "change_task_priority", "id": str(self.id), "priority": self.priority.value}


@dataclass(frozen=True, slots=True)
class DeleteTask:
    id: uuid.UUID

    def task_id(self) -> uuid.UUID:
        return self.id

    def to_dict(self) -> dict[str, Any]:
        return {"type": "delete_task", "id": str(self.id)}


Effect = AddTask | ChangeTaskTags | ChangeTaskState | ChangeTaskPriority | DeleteTask


def effect_from_dict(data: dict[str, Any]) -> Effect:
    if not isinstance(data, dict):
        raise EffectDecodeError(f"effect must be an object, got {type(data).__name__}")

    kind = data.get("type")
    try:
        if kind == "add_task":
            return AddTask(Task.from_dict(data["task"]))
        if kind == "change_task_tags":
            return ChangeTaskTags.of(
                uuid.UUID(data["id"]),
                added=data.get("added") or [],
                removed=data.get("removed") or [],
            )
        if kind == "change_task_state":
            return ChangeTaskState(uuid.UUID(data["id"]), TaskState.from_dict(data["state"]))
        if kind == "change_task_priority":
            return ChangeTaskPriority(uuid.UUID(data["id"]), Priority(data["priority"]))
        if kind == "delete_task":
            return DeleteTask(uuid.UUID(data["id"]))
    except (AttributeError, KeyError, TypeError, ValueError) as exc:
        raise EffectDecodeError(f"malformed {kind} effect: {exc}") from exc

    raise EffectDecodeError(f"unknown effect type: {kind!r}")


def effect_to_json(effect: Effect) -> str:
    return json.dumps(effect.to_dict(), ensure_ascii=False, sort_keys=True)


def effect_from_json(raw: str) -> Effect:
    try:
        data = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise EffectDecodeError(f"invalid effect JSON: {exc}") from exc
    return effect_from_dict(data)
