# tests/test_task_models.py

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from tasklog.tasks.task_models import Priority, StateKind, Task, TaskState, format_age

NOW = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)


def test_new_task_defaults() -> None:
    t = Task.new("foo", now=NOW)
    assert t.description == "foo"
    assert t.status == TaskState.open()
    assert t.priority is Priority.DEFAULT
    assert t.tags == set()
    assert t.extras == {}
    assert t.created == t.modified == NOW
    assert t.id.int != 0

    t2 = Task.new("foo", ["some-tag"], now=NOW)
    assert t2.tags == {"some-tag"}
    assert t2.id != t.id


def test_urgency_grows_with_age() -> None:
    t = Task.new("old", now=NOW)
    older = t.copy()
    assert t.urgency(NOW) == older.urgency(NOW)

    older.created = older.created - timedelta(days=2)
    assert older.urgency(NOW) > t.urgency(NOW)
    assert older.urgency(NOW) - t.urgency(NOW) == pytest.approx(0.02)


def test_priority_dominates_age_and_tags() -> None:
    low = Task.new("low", now=NOW - timedelta(days=300))
    low.priority = Priority.LOW
    low.tags = {"a", "b", "c"}
    default = Task.new("default", now=NOW)

    assert default.urgency(NOW) > low.urgency(NOW)

    tagged = Task.new("tagged", ["x"], now=NOW)
    assert tagged.urgency(NOW) - default.urgency(NOW) == pytest.approx(0.001)


def test_short_id_is_lowercase_hex_prefix() -> None:
    t = Task.new("foo")
    s = t.short_id()
    assert len(s) == 6
    assert s == t.id.hex[:6]
    assert s == s.lower()


@pytest.mark.parametrize(
    "raw,expected",
    [
        ("h", Priority.HIGH),
        ("High", Priority.HIGH),
        ("m", Priority.DEFAULT),
        ("default", Priority.DEFAULT),
        ("L", Priority.LOW),
    ],
)
def test_priority_parse(raw: str, expected: Priority) -> None:
    assert Priority.parse(raw) is expected


def test_priority_parse_rejects_unknown() -> None:
    with pytest.raises(ValueError):
        Priority.parse("x")
    with pytest.raises(ValueError):
        Priority.parse("")


def test_priority_letters() -> None:
    assert [p.letter for p in Priority] == ["L", "D", "H"]


@pytest.mark.parametrize(
    "delta,expected",
    [
        (timedelta(seconds=42), "42s"),
        (timedelta(minutes=5, seconds=3), "5m"),
        (timedelta(hours=3, minutes=59), "3h"),
        (timedelta(days=6, hours=23), "6d"),
        (timedelta(days=15), "2w"),
        (timedelta(seconds=-5), "0s"),
    ],
)
def test_format_age(delta: timedelta, expected: str) -> None:
    assert format_age(delta) == expected


def test_task_dict_round_trip_keeps_everything() -> None:
    t = Task.new("write report", ["work", "q2"], now=NOW)
    t.priority = Priority.HIGH
    t.status = TaskState.done(NOW + timedelta(hours=1))
    t.extras["notes"] = "see mail"

    again = Task.from_dict(t.to_dict())
    assert again == t
    assert again.status.kind is StateKind.DONE


def test_closed_state_requires_timestamp() -> None:
    with pytest.raises(ValueError):
        TaskState.from_dict({"kind": "done", "at": None})


def test_copy_is_independent() -> None:
    t = Task.new("foo", ["a"])
    c = t.copy()
    c.tags.add("b")
    c.extras["notes"] = "x"
    assert t.tags == {"a"}
    assert t.extras == {}


def test_is_open() -> None:
    t = Task.new("foo")
    assert t.is_open()
    t.status = TaskState.canceled(NOW)
    assert not t.is_open()
