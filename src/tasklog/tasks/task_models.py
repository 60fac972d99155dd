# src/tasklog/tasks/task_models.py

from __future__ import annotations

import uuid
from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from enum import StrEnum
from typing import Any

SHORT_ID_LEN = 6

# Urgency weights: one hundredth per day of age, one thousandth per tag.
AGE_WEIGHT_PER_DAY = 0.01
TAG_WEIGHT = 0.001


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _parse_dt(raw: str) -> datetime:
    dt = datetime.fromisoformat(raw)
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt


class Priority(StrEnum):
    LOW = "low"
    DEFAULT = "default"
    HIGH = "high"

    @property
    def weight(self) -> float:
        """Urgency offset; large enough to dominate several hundred days of aging."""
        return _PRIORITY_WEIGHTS[self]

    @property
    def letter(self) -> str:
        return self.value[0].upper()

    @classmethod
    def parse(cls, raw: str) -> Priority:
        """
        Parse user input by its first letter.

        l -> LOW, m/d -> DEFAULT, h -> HIGH (case-insensitive).
        Raises ValueError for anything else.
        """
        first = (raw or "").strip().lower()[:1]
        if first == "l":
            return cls.LOW
        if first in ("m", "d"):
            return cls.DEFAULT
        if first == "h":
            return cls.HIGH
        raise ValueError(f"invalid priority: {raw!r}")


_PRIORITY_WEIGHTS = {
    Priority.LOW: -5.0,
    Priority.DEFAULT: 0.0,
    Priority.HIGH: 5.0,
}


class StateKind(StrEnum):
    OPEN = "open"
    DONE = "done"
    CANCELED = "canceled"


@dataclass(frozen=True, slots=True)
class TaskState:
    """
    Task lifecycle status.

    OPEN is initial. DONE and CANCELED are terminal and carry the time
    the task was closed.
    """

    kind: StateKind
    at: datetime | None = None

    @classmethod
    def open(cls) -> TaskState:
        return cls(StateKind.OPEN)

    @classmethod
    def done(cls, at: datetime | None = None) -> TaskState:
        return cls(StateKind.DONE, at or utc_now())

    @classmethod
    def canceled(cls, at: datetime | None = None) -> TaskState:
        return cls(StateKind.CANCELED, at or utc_now())

    @property
    def is_open(self) -> bool:
        return self.kind is StateKind.OPEN

    def to_dict(self) -> dict[str, Any]:
        return {
            "kind": self.kind.value,
            "at": self.at.isoformat() if self.at is not None else None,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> TaskState:
        if not isinstance(data, dict):
            raise ValueError(f"state must be an object, got {type(data).__name__}")
        kind = StateKind(data["kind"])
        raw_at = data.get("at")
        at = _parse_dt(raw_at) if raw_at else None
        if kind is not StateKind.OPEN and at is None:
            raise ValueError(f"state {kind.value!r} requires a timestamp")
        return cls(kind, at)

    def __str__(self) -> str:
        if self.at is None:
            return self.kind.value
        return f"{self.kind.value} ({self.at:%Y-%m-%d %H:%M})"


@dataclass(slots=True)
class Task:
    id: uuid.UUID
    description: str
    status: TaskState
    priority: Priority
    created: datetime
    modified: datetime
    tags: set[str] = field(default_factory=set)
    extras: dict[str, str] = field(default_factory=dict)

    @classmethod
    def new(
        cls,
        description: str,
        tags: Iterable[str] = (),
        *,
        now: datetime | None = None,
    ) -> Task:
        now = now or utc_now()
        return cls(
            id=uuid.uuid4(),
            description=description,
            status=TaskState.open(),
            priority=Priority.DEFAULT,
            created=now,
            modified=now,
            tags=set(tags),
            extras={},
        )

    def age(self, now: datetime | None = None) -> timedelta:
        return (now or utc_now()) - self.created

    def urgency(self, now: datetime | None = None) -> float:
        days = self.age(now).total_seconds() / 86400.0
        return days * AGE_WEIGHT_PER_DAY + self.priority.weight + len(self.tags) * TAG_WEIGHT

    def short_id(self) -> str:
        return self.id.hex[:SHORT_ID_LEN]

    def is_open(self) -> bool:
        return self.status.is_open

    def sort_key(self, now: datetime) -> tuple[float, float]:
        """Ascending sort on this key yields most urgent first, newer first on ties."""
        return (-self.urgency(now), -self.created.timestamp())

    def copy(self) -> Task:
        return Task(
            id=self.id,
            description=self.description,
            status=self.status,
            priority=self.priority,
            created=self.created,
            modified=self.modified,
            tags=set(self.tags),
            extras=dict(self.extras),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": str(self.id),
            "description": self.description,
            "status": self.status.to_dict(),
            "priority": self.priority.value,
            "created": self.created.isoformat(),
            "modified": self.modified.isoformat(),
            "tags": sorted(self.tags),
            "extras": dict(sorted(self.extras.items())),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Task:
        if not isinstance(data, dict):
            raise ValueError(f"task must be an object, got {type(data).__name__}")
        extras = data.get("extras") or {}
        if not isinstance(extras, dict):
            raise ValueError(f"task extras must be an object, got {type(extras).__name__}")
        tags = data.get("tags") or []
        if isinstance(tags, (str, dict)):
            raise ValueError(f"task tags must be a list, got {type(tags).__name__}")
        return cls(
            id=uuid.UUID(str(data["id"])),
            description=str(data["description"]),
            status=TaskState.from_dict(data["status"]),
            priority=Priority(data.get("priority") or Priority.DEFAULT.value),
            created=_parse_dt(data["created"]),
            modified=_parse_dt(data.get("modified") or data["created"]),
            tags={str(t) for t in tags},
            extras={str(k): str(v) for k, v in extras.items()},
        )


def format_age(delta: timedelta) -> str:
    """Compact age: 42s, 5m, 3h, 6d, 2w (largest non-zero unit)."""
    seconds = max(0, int(delta.total_seconds()))
    for unit, size in (("w", 604800), ("d", 86400), ("h", 3600), ("m", 60)):
        if seconds >= size:
            return f"{seconds // size}{unit}"
    return f"{seconds}s"
