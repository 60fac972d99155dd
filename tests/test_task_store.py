# tests/test_task_store.py

from __future__ import annotations

import json
import sqlite3
from pathlib import Path

import pytest

from tasklog.tasks.effects import AddTask, ChangeTaskPriority, ChangeTaskTags, DeleteTask
from tasklog.tasks.model import Model
from tasklog.tasks.task_models import Priority
from tasklog.tasks.task_store import StorageError, TaskStore

from .fakes import make_task


def _store(tmp_path: Path) -> TaskStore:
    return TaskStore(tmp_path / "data" / "store.sqlite3")


def test_empty_store_loads_empty_model(tmp_path: Path) -> None:
    store = _store(tmp_path)
    assert store.db_path.exists()
    assert store.count_effects() == 0

    m = store.load_model()
    assert m.tasks == {}
    assert not m.is_dirty()


def test_commit_and_reload(tmp_path: Path) -> None:
    store = _store(tmp_path)
    m = store.load_model()
    t = make_task("persist me", tags=("a",))
    m.apply(AddTask(t))
    m.apply(ChangeTaskPriority(t.id, Priority.HIGH))

    assert store.commit(m) == 2
    assert not m.is_dirty()

    again = _store(tmp_path).load_model()
    assert again.tasks == m.tasks
    assert again.applied_effects == m.applied_effects


def test_commit_appends_only_new_effects(tmp_path: Path) -> None:
    store = _store(tmp_path)
    m = store.load_model()
    t = make_task("a")
    m.apply(AddTask(t))
    store.commit(m)

    m = store.load_model()
    m.apply(ChangeTaskTags.of(t.id, added={"x"}))
    m.apply(DeleteTask(t.id))
    assert store.commit(m) == 2
    assert store.count_effects() == 3
    assert store.load_model().get(t.id) is None


def test_clean_model_is_not_written(tmp_path: Path) -> None:
    store = _store(tmp_path)
    m = store.load_model()
    assert store.commit(m) == 0
    assert store.count_effects() == 0


def test_numbering_is_persisted(tmp_path: Path) -> None:
    store = _store(tmp_path)
    m = store.load_model()
    a = make_task("a")
    b = make_task("b")
    m.apply(AddTask(a))
    m.apply(AddTask(b))
    m.recalculate_numbers("default", [b.id, a.id])
    m.recalculate_numbers("work", [a.id])
    store.commit(m)

    loaded = store.load_model()
    assert loaded.numbers("default") == {1: b.id, 2: a.id}
    assert loaded.find("work", "1").id == a.id

    # A list that only renumbers still dirties the model and rewrites the table.
    loaded.recalculate_numbers("default", [a.id])
    assert store.commit(loaded) == 0
    assert store.load_model().numbers("default") == {1: a.id}


def test_store_ahead_of_model_is_refused(tmp_path: Path) -> None:
    store = _store(tmp_path)
    m = store.load_model()
    m.apply(AddTask(make_task("a")))
    m.apply(AddTask(make_task("b")))
    store.commit(m)

    stale = Model()
    stale.apply(AddTask(make_task("c")))
    with pytest.raises(StorageError):
        store.commit(stale)
    assert store.count_effects() == 2


def test_corrupt_row_is_a_storage_error(tmp_path: Path) -> None:
    store = _store(tmp_path)
    conn = sqlite3.connect(store.db_path)
    conn.execute("INSERT INTO effects (json) VALUES (?)", ('{"type": "undo"}',))
    conn.commit()
    conn.close()

    with pytest.raises(StorageError):
        store.load_effects()


def test_wrongly_shaped_payload_is_a_storage_error(tmp_path: Path) -> None:
    store = _store(tmp_path)
    payload = make_task("broken").to_dict()
    payload["extras"] = ["oops"]
    conn = sqlite3.connect(store.db_path)
    conn.execute(
        "INSERT INTO effects (json) VALUES (?)",
        (json.dumps({"type": "add_task", "task": payload}),),
    )
    conn.commit()
    conn.close()

    with pytest.raises(StorageError):
        store.load_model()


def test_failed_commit_rolls_back_everything(tmp_path: Path) -> None:
    store = _store(tmp_path)
    conn = sqlite3.connect(store.db_path)
    conn.execute(
        """
        CREATE TRIGGER reject_numbers BEFORE INSERT ON numerical_ids
        BEGIN
            SELECT RAISE(ABORT, 'numbering write rejected');
        END
        """
    )
    conn.commit()
    conn.close()

    m = store.load_model()
    t = make_task("a")
    m.apply(AddTask(t))
    m.recalculate_numbers("default", [t.id])

    with pytest.raises(StorageError):
        store.commit(m)
    assert store.count_effects() == 0
    assert m.is_dirty()


def test_malformed_number_rows_are_skipped(tmp_path: Path) -> None:
    store = _store(tmp_path)
    conn = sqlite3.connect(store.db_path)
    conn.execute("INSERT INTO numerical_ids (scope, id, uuid) VALUES ('default', 1, 'garbage')")
    conn.commit()
    conn.close()

    assert store.load_numbers() == {}


def test_schema_migration_adds_created_at(tmp_path: Path) -> None:
    db = tmp_path / "old.sqlite3"
    conn = sqlite3.connect(db)
    conn.execute("CREATE TABLE effects (id INTEGER PRIMARY KEY AUTOINCREMENT, json TEXT NOT NULL)")
    conn.commit()
    conn.close()

    store = TaskStore(db)
    conn = sqlite3.connect(db)
    cols = {row[1] for row in conn.execute("PRAGMA table_info(effects)")}
    conn.close()
    assert "created_at" in cols
    assert store.count_effects() == 0
