# src/tasklog/tasks/task_store.py

from __future__ import annotations

import contextlib
import logging
import sqlite3
import time
import uuid
from pathlib import Path

from .effects import Effect, EffectDecodeError, effect_from_json, effect_to_json
from .model import Model

logger = logging.getLogger(__name__)


class StorageError(RuntimeError):
    """The effect log could not be read or written."""


class TaskStore:
    """
    SQLite effect log.

    Tables:
    - effects: one JSON row per applied effect, ordered by id
    - numerical_ids: (scope, number) -> task uuid, rewritten on every commit

    The schema is migration-safe in the same way everywhere:
    - create table if missing
    - use PRAGMA table_info to detect missing columns
    - add columns with ALTER TABLE only when needed

    Each method opens its own connection. commit() writes everything in a
    single transaction so a failed write leaves the previous log untouched.
    """

    def __init__(self, db_path: str | Path = "store.sqlite3") -> None:
        self._db_path = Path(db_path)
        try:
            self._db_path.parent.mkdir(parents=True, exist_ok=True)
            self._ensure_schema()
        except (OSError, sqlite3.Error) as exc:
            raise StorageError(f"Failed to open task store {self._db_path}: {exc}") from exc
        logger.info("TaskStore ready db=%s effects=%s", self._db_path, self.count_effects())

    @property
    def db_path(self) -> Path:
        return self._db_path

    # ---- low-level helpers ----

    def _get_conn(self) -> sqlite3.Connection:
        conn = sqlite3.connect(str(self._db_path), timeout=30.0)
        conn.row_factory = sqlite3.Row
        self._configure_conn(conn)
        return conn

    @staticmethod
    def _configure_conn(conn: sqlite3.Connection) -> None:
        with contextlib.suppress(sqlite3.Error):
            conn.execute("PRAGMA journal_mode=WAL")

    def _ensure_schema(self) -> None:
        conn = self._get_conn()
        try:
            cur = conn.cursor()

            cur.execute(
                """
                CREATE TABLE IF NOT EXISTS effects (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    json TEXT NOT NULL,
                    created_at REAL NOT NULL DEFAULT 0
                )
                """
            )
            cur.execute(
                """
                CREATE TABLE IF NOT EXISTS numerical_ids (
                    scope TEXT NOT NULL,
                    id INTEGER NOT NULL,
                    uuid TEXT NOT NULL,
                    PRIMARY KEY (scope, id)
                )
                """
            )

            cur.execute("PRAGMA table_info(effects)")
            cols = {row["name"] for row in cur.fetchall()}
            if "created_at" not in cols:
                cur.execute("ALTER TABLE effects ADD COLUMN created_at REAL NOT NULL DEFAULT 0")
                logger.info("TaskStore migration: added column effects.created_at")

            conn.commit()
        finally:
            conn.close()

    # ---- reading ----

    def count_effects(self) -> int:
        conn = self._get_conn()
        try:
            (n,) = conn.execute("SELECT COUNT(id) FROM effects").fetchone()
            return int(n)
        finally:
            conn.close()

    def load_effects(self) -> list[Effect]:
        conn = self._get_conn()
        try:
            rows = conn.execute("SELECT id, json FROM effects ORDER BY id").fetchall()
        finally:
            conn.close()

        effects: list[Effect] = []
        for row in rows:
            try:
                effects.append(effect_from_json(row["json"]))
            except EffectDecodeError as exc:
                raise StorageError(f"Corrupt effect row id={row['id']}: {exc}") from exc
        logger.debug("Loaded %d effects from %s", len(effects), self._db_path)
        return effects

    def load_numbers(self) -> dict[str, dict[int, uuid.UUID]]:
        conn = self._get_conn()
        try:
            rows = conn.execute("SELECT scope, id, uuid FROM numerical_ids").fetchall()
        finally:
            conn.close()

        out: dict[str, dict[int, uuid.UUID]] = {}
        for row in rows:
            try:
                task_id = uuid.UUID(str(row["uuid"]))
            except ValueError:
                # The table is a rebuildable index; a bad row only costs a stale number.
                logger.warning("Skipping malformed numerical id row %s/%s", row["scope"], row["id"])
                continue
            out.setdefault(str(row["scope"]), {})[int(row["id"])] = task_id
        return out

    def load_model(self) -> Model:
        model = Model.from_effects(self.load_effects())
        for scope, mapping in self.load_numbers().items():
            model.load_numbers(scope, mapping)
        logger.info("Loaded %d tasks from %s", len(model.tasks), self._db_path)
        return model

    # ---- writing ----

    def commit(self, model: Model) -> int:
        """
        Append effects not yet stored and rewrite the numbering table.

        Rows are matched by position: the first COUNT(effects) applied effects
        are assumed to be already stored. Returns the number of appended rows.
        """
        if not model.is_dirty():
            logger.info("Not persisting: model isn't dirty")
            return 0

        now = time.time()
        conn = self._get_conn()
        try:
            cur = conn.cursor()
            (row_count,) = cur.execute("SELECT COUNT(id) FROM effects").fetchone()
            row_count = int(row_count)
            if row_count > len(model.applied_effects):
                raise StorageError(
                    f"Store holds {row_count} effects but the model only knows "
                    f"{len(model.applied_effects)}; refusing to write"
                )

            new_effects = model.applied_effects[row_count:]
            cur.executemany(
                "INSERT INTO effects (json, created_at) VALUES (?, ?)",
                [(effect_to_json(e), now) for e in new_effects],
            )

            cur.execute("DELETE FROM numerical_ids")
            cur.executemany(
                "INSERT INTO numerical_ids (scope, id, uuid) VALUES (?, ?, ?)",
                [
                    (scope, number, str(task_id))
                    for scope, mapping in model.numerical_ids.items()
                    for number, task_id in mapping.items()
                ],
            )

            conn.commit()
        except sqlite3.Error as exc:
            conn.rollback()
            raise StorageError(f"Failed to commit effects to {self._db_path}: {exc}") from exc
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()

        model.mark_clean()
        logger.debug("Committed %d new effects (skipped %d stored)", len(new_effects), row_count)
        return len(new_effects)
