# src/tasklog/tasks/model.py

from __future__ import annotations

import logging
import uuid
from collections.abc import Iterable, Mapping
from datetime import datetime

from .effects import (
    AddTask,
    ChangeTaskPriority,
    ChangeTaskState,
    ChangeTaskTags,
    DeleteTask,
    Effect,
)
from .task_models import Task, utc_now
from .task_ref import FullId, Numeric, ShortId, TaskRef, parse_task_ref

logger = logging.getLogger(__name__)


class InvariantViolation(RuntimeError):
    """An effect contradicts the current task set. Indicates a bug, never user error."""


class FindTaskError(LookupError):
    def __init__(self, message: str, ref: TaskRef) -> None:
        super().__init__(message)
        self.ref = ref


class TaskNotFound(FindTaskError):
    def __init__(self, ref: TaskRef) -> None:
        super().__init__(f"No matching task found for {ref}", ref)


class AmbiguousTaskRef(FindTaskError):
    def __init__(self, ref: TaskRef, candidates: int) -> None:
        super().__init__(f"Multiple matching tasks found for {ref} ({candidates} candidates)", ref)
        self.candidates = candidates


class Model:
    """
    In-memory projection of the effect log.

    Owns every Task (tasks), the applied effects in order (applied_effects)
    and the per-scope numbering table (numerical_ids). Tasks returned by the
    query methods are the stored objects; callers must not mutate them.

    The numbering table is an auxiliary index: it is rebuilt by listing
    commands and can point at tasks that no longer exist.
    """

    def __init__(self) -> None:
        self.tasks: dict[uuid.UUID, Task] = {}
        self.applied_effects: list[Effect] = []
        self.numerical_ids: dict[str, dict[int, uuid.UUID]] = {}
        self._dirty = False

    @classmethod
    def from_effects(cls, effects: Iterable[Effect]) -> Model:
        model = cls()
        for effect in effects:
            model.apply(effect)
        model._dirty = False
        logger.debug(
            "Replayed %d effects into %d tasks", len(model.applied_effects), len(model.tasks)
        )
        return model

    # ---- mutation ----

    def apply(self, effect: Effect) -> None:
        match effect:
            case AddTask(task=task):
                self._add_task(task)
            case DeleteTask(id=task_id):
                self._require(task_id, effect)
                del self.tasks[task_id]
            case ChangeTaskState(id=task_id, state=state):
                task = self._require(task_id, effect)
                task.status = state
                if state.at is not None:
                    task.modified = state.at
            case ChangeTaskPriority(id=task_id, priority=priority):
                self._require(task_id, effect).priority = priority
            case ChangeTaskTags(id=task_id, added=added, removed=removed):
                tags = self._require(task_id, effect).tags
                # Removals first: a tag in both sets ends up present.
                tags.difference_update(removed)
                tags.update(added)
            case _:
                raise InvariantViolation(f"Unknown effect {effect!r}")

        self.applied_effects.append(effect)
        self._dirty = True

    def _add_task(self, task: Task) -> None:
        if task.id in self.tasks:
            raise InvariantViolation(f"id collision in Model.apply: {task.id}")
        # Store a copy so later effects never mutate the AddTask payload.
        self.tasks[task.id] = task.copy()

    def _require(self, task_id: uuid.UUID, effect: Effect) -> Task:
        task = self.tasks.get(task_id)
        if task is None:
            raise InvariantViolation(f"{type(effect).__name__} references unknown task {task_id}")
        return task

    # ---- queries ----

    def get(self, task_id: uuid.UUID) -> Task | None:
        return self.tasks.get(task_id)

    def all_tasks(self, now: datetime | None = None) -> list[Task]:
        """All live tasks, most urgent first; ties go to the newer task."""
        now = now or utc_now()
        return sorted(self.tasks.values(), key=lambda t: t.sort_key(now))

    def find(self, scope: str, reference: TaskRef | str) -> Task:
        """
        Resolve a reference to exactly one task.

        Raises TaskRefError for unparseable strings, TaskNotFound when nothing
        matches and AmbiguousTaskRef when a short id matches several tasks.
        """
        ref = parse_task_ref(reference) if isinstance(reference, str) else reference

        match ref:
            case FullId(id=task_id):
                candidates = [task_id]
            case ShortId(prefix=prefix):
                candidates = [tid for tid in self.tasks if tid.hex.startswith(prefix)]
            case Numeric(number=number):
                task_id = self.numerical_ids.get(scope, {}).get(number)
                candidates = [task_id] if task_id is not None else []
            case _:
                raise TypeError(f"not a task reference: {reference!r}")

        if len(candidates) > 1:
            raise AmbiguousTaskRef(ref, len(candidates))
        task = self.tasks.get(candidates[0]) if candidates else None
        if task is None:
            raise TaskNotFound(ref)
        return task

    # ---- numbering ----

    def recalculate_numbers(self, scope: str, ordered_ids: Iterable[uuid.UUID]) -> None:
        logger.info("Recalculating numerical ids for scope %s", scope)
        self.numerical_ids[scope] = {n: task_id for n, task_id in enumerate(ordered_ids, start=1)}
        self._dirty = True

    def load_numbers(self, scope: str, mapping: Mapping[int, uuid.UUID]) -> None:
        """Install a persisted numbering table; loading does not make the model dirty."""
        self.numerical_ids[scope] = dict(mapping)

    def numbers(self, scope: str) -> dict[int, uuid.UUID]:
        return dict(self.numerical_ids.get(scope, {}))

    def number_of(self, scope: str, task_id: uuid.UUID) -> int | None:
        for number, tid in self.numerical_ids.get(scope, {}).items():
            if tid == task_id:
                return number
        return None

    # ---- dirty tracking ----

    def is_dirty(self) -> bool:
        return self._dirty

    def mark_clean(self) -> None:
        self._dirty = False
