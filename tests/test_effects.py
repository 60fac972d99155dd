# tests/test_effects.py

from __future__ import annotations

import dataclasses
import json
import uuid

import pytest

from tasklog.tasks.effects import (
    AddTask,
    ChangeTaskPriority,
    ChangeTaskState,
    ChangeTaskTags,
    DeleteTask,
    EffectDecodeError,
    effect_from_dict,
    effect_from_json,
    effect_to_json,
)
from tasklog.tasks.task_models import Priority, Task, TaskState


def test_task_id_for_every_variant() -> None:
    t = Task.new("foo")
    effects = [
        AddTask(t),
        ChangeTaskTags.of(t.id, added={"a"}),
        ChangeTaskState(t.id, TaskState.done()),
        ChangeTaskPriority(t.id, Priority.HIGH),
        DeleteTask(t.id),
    ]
    assert {e.task_id() for e in effects} == {t.id}


def test_effects_are_frozen_and_comparable() -> None:
    u = uuid.uuid4()
    e = ChangeTaskTags.of(u, added=["a", "b"], removed=["c"])
    assert e == ChangeTaskTags(u, frozenset({"b", "a"}), frozenset({"c"}))
    with pytest.raises(dataclasses.FrozenInstanceError):
        e.id = uuid.uuid4()  # type: ignore[misc]


def test_json_codec_preserves_a_log() -> None:
    t = Task.new("write +docs", ["docs"])
    log = [
        AddTask(t),
        ChangeTaskTags.of(t.id, added={"x"}, removed={"docs"}),
        ChangeTaskPriority(t.id, Priority.LOW),
        ChangeTaskState(t.id, TaskState.canceled()),
        DeleteTask(t.id),
    ]
    decoded = [effect_from_json(effect_to_json(e)) for e in log]
    assert decoded == log


def test_wire_format_uses_type_discriminator() -> None:
    u = uuid.UUID("12345678-1234-5678-1234-567812345678")
    data = json.loads(effect_to_json(ChangeTaskTags.of(u, added={"b", "a"})))
    assert data == {
        "type": "change_task_tags",
        "id": "12345678-1234-5678-1234-567812345678",
        "added": ["a", "b"],
        "removed": [],
    }


def test_unknown_or_malformed_effects_raise() -> None:
    with pytest.raises(EffectDecodeError):
        effect_from_dict({"type": "undo"})
    with pytest.raises(EffectDecodeError):
        effect_from_dict({"type": "delete_task", "id": "not-a-uuid"})
    with pytest.raises(EffectDecodeError):
        effect_from_dict({"type": "change_task_priority", "id": str(uuid.uuid4())})
    with pytest.raises(EffectDecodeError):
        effect_from_json("{nope")


@pytest.mark.parametrize(
    "bad_task",
    [
        ["not", "an", "object"],
        {"id": str(uuid.uuid4()), "extras": ["oops"]},
        {"id": str(uuid.uuid4()), "tags": "work"},
    ],
)
def test_wrongly_shaped_task_payload_raises(bad_task) -> None:
    with pytest.raises(EffectDecodeError):
        effect_from_dict({"type": "add_task", "task": bad_task})


def test_wrongly_shaped_state_raises() -> None:
    with pytest.raises(EffectDecodeError):
        effect_from_dict({"type": "change_task_state", "id": str(uuid.uuid4()), "state": "done"})


def test_every_effect_is_hashable() -> None:
    t = Task.new("foo")
    add = AddTask(t)
    same = AddTask(t.copy())
    assert add == same
    assert hash(add) == hash(same)
    assert len({add, same, DeleteTask(t.id), ChangeTaskPriority(t.id, Priority.LOW)}) == 3
