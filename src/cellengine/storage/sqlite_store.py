"""SQLite storage backend for persistent kernel state."""

from __future__ import annotations

import json
import logging
import sqlite3
from collections.abc import Mapping
from pathlib import Path
from typing import Any

import aiosqlite

from cellengine.core.action import Action
from cellengine.core.event import CaptureSource, Event
from cellengine.core.workflow import Workflow
from cellengine.storage.base import KernelStorage, PatternKey, StorageError
from cellengine.storage.sqlite_schema import SCHEMA, SCHEMA_VERSION

logger = logging.getLogger(__name__)

# Failures a read may hit on a damaged or foreign database
_READ_ERRORS = (sqlite3.Error, json.JSONDecodeError, ValueError, KeyError, TypeError)


class SQLiteStorage(KernelStorage):
    """SQLite-based storage for persistent kernel state.

    Good for a single local instance. Data persists to disk and
    survives restarts. Several namespaces can share one database file.
    """

    def __init__(self, db_path: str | Path, namespace: str = "cell") -> None:
        super().__init__(namespace)
        self._db_path = Path(db_path).resolve()
        self._conn: aiosqlite.Connection | None = None

    @property
    def db_path(self) -> Path:
        return self._db_path

    async def initialize(self) -> None:
        """Open the connection and create the schema if needed."""
        self._db_path.parent.mkdir(parents=True, exist_ok=True)

        self._conn = await aiosqlite.connect(self._db_path)
        self._conn.row_factory = aiosqlite.Row

        await self._conn.execute("PRAGMA journal_mode=WAL")
        await self._conn.execute("PRAGMA synchronous=NORMAL")

        await self._conn.executescript(SCHEMA)

        async with self._conn.execute("SELECT version FROM schema_version") as cursor:
            row = await cursor.fetchone()
            if row is None:
                await self._conn.execute(
                    "INSERT INTO schema_version (version) VALUES (?)", (SCHEMA_VERSION,)
                )
                await self._conn.commit()

    async def close(self) -> None:
        """Close the database connection."""
        if self._conn:
            await self._conn.close()
            self._conn = None

    async def __aenter__(self) -> SQLiteStorage:
        await self.initialize()
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.close()

    def _ensure_conn(self) -> aiosqlite.Connection:
        if self._conn is None:
            raise RuntimeError("Database not initialized. Call initialize() first.")
        return self._conn

    async def _write(self, sql: str, params: tuple[Any, ...]) -> None:
        conn = self._ensure_conn()
        try:
            await conn.execute(sql, params)
            await conn.commit()
        except sqlite3.Error as e:
            raise StorageError(f"Write failed: {e}") from e

    # ========== Event Log ==========

    async def append_event(self, event: Event, max_events: int = 1000) -> None:
        conn = self._ensure_conn()
        ns = self._namespace
        try:
            await conn.execute(
                """INSERT INTO events (namespace, id, signature, timestamp, headers, body, source)
                   VALUES (?, ?, ?, ?, ?, ?, ?)""",
                (
                    ns,
                    event.id,
                    event.signature,
                    event.timestamp,
                    json.dumps(event.headers),
                    json.dumps(event.body, default=str),
                    event.source.value,
                ),
            )
            await conn.execute(
                """DELETE FROM events
                   WHERE namespace = ? AND seq NOT IN (
                       SELECT seq FROM events WHERE namespace = ?
                       ORDER BY seq DESC LIMIT ?
                   )""",
                (ns, ns, max_events),
            )
            await conn.commit()
        except sqlite3.Error as e:
            raise StorageError(f"Failed to append event {event.id}: {e}") from e

    async def read_event_log(self) -> list[Event]:
        conn = self._ensure_conn()
        results: list[Event] = []
        try:
            async with conn.execute(
                """SELECT id, signature, timestamp, headers, body, source
                   FROM events WHERE namespace = ? ORDER BY seq ASC""",
                (self._namespace,),
            ) as cursor:
                async for row in cursor:
                    results.append(
                        Event(
                            id=row["id"],
                            signature=row["signature"],
                            timestamp=int(row["timestamp"]),
                            headers=json.loads(row["headers"] or "{}"),
                            body=json.loads(row["body"]) if row["body"] is not None else None,
                            source=CaptureSource(row["source"] or CaptureSource.FETCH.value),
                        )
                    )
        except _READ_ERRORS:
            logger.warning("Error reading event log", exc_info=True)
            return []
        return results

    # ========== Patterns ==========

    async def get_patterns(self) -> dict[PatternKey, int]:
        conn = self._ensure_conn()
        patterns: dict[PatternKey, int] = {}
        try:
            async with conn.execute(
                "SELECT pattern, count FROM patterns WHERE namespace = ?",
                (self._namespace,),
            ) as cursor:
                async for row in cursor:
                    patterns[tuple(json.loads(row["pattern"]))] = int(row["count"])
        except _READ_ERRORS:
            logger.warning("Error reading patterns", exc_info=True)
            return {}
        return patterns

    async def add_pattern_counts(self, counts: Mapping[PatternKey, int]) -> None:
        if not counts:
            return
        conn = self._ensure_conn()
        ns = self._namespace
        try:
            await conn.executemany(
                """INSERT INTO patterns (namespace, pattern, count) VALUES (?, ?, ?)
                   ON CONFLICT(namespace, pattern) DO UPDATE SET count = count + excluded.count""",
                [(ns, json.dumps(list(key)), count) for key, count in counts.items()],
            )
            await conn.commit()
        except sqlite3.Error as e:
            raise StorageError(f"Failed to store patterns: {e}") from e

    # ========== Actions ==========

    async def get_actions(self) -> dict[str, Action]:
        conn = self._ensure_conn()
        actions: dict[str, Action] = {}
        try:
            async with conn.execute(
                "SELECT id, data FROM actions WHERE namespace = ?",
                (self._namespace,),
            ) as cursor:
                async for row in cursor:
                    actions[row["id"]] = Action.from_dict(json.loads(row["data"]))
        except _READ_ERRORS:
            logger.warning("Error reading actions", exc_info=True)
            return {}
        return actions

    async def save_action(self, action: Action) -> None:
        await self._write(
            """INSERT INTO actions (namespace, id, data) VALUES (?, ?, ?)
               ON CONFLICT(namespace, id) DO UPDATE SET data = excluded.data""",
            (self._namespace, action.id, json.dumps(action.to_dict(), default=str)),
        )

    # ========== Workflows ==========

    @staticmethod
    def _row_to_workflow(row: aiosqlite.Row) -> Workflow:
        return Workflow(
            id=row["id"],
            name=row["name"],
            description=row["description"] or "",
            actions=tuple(Action.from_dict(a) for a in json.loads(row["actions"])),
            frequency=int(row["frequency"]),
            last_executed=row["last_executed"],
        )

    async def get_workflows(self) -> dict[str, Workflow]:
        conn = self._ensure_conn()
        workflows: dict[str, Workflow] = {}
        try:
            async with conn.execute(
                """SELECT id, name, description, actions, frequency, last_executed
                   FROM workflows WHERE namespace = ? ORDER BY rowid ASC""",
                (self._namespace,),
            ) as cursor:
                async for row in cursor:
                    workflow = self._row_to_workflow(row)
                    workflows[workflow.id] = workflow
        except _READ_ERRORS:
            logger.warning("Error reading workflows", exc_info=True)
            return {}
        return workflows

    async def get_workflow(self, workflow_id: str) -> Workflow | None:
        conn = self._ensure_conn()
        try:
            async with conn.execute(
                """SELECT id, name, description, actions, frequency, last_executed
                   FROM workflows WHERE namespace = ? AND id = ?""",
                (self._namespace, workflow_id),
            ) as cursor:
                row = await cursor.fetchone()
                return self._row_to_workflow(row) if row else None
        except _READ_ERRORS:
            logger.warning("Error reading workflow %s", workflow_id, exc_info=True)
            return None

    async def save_workflow(self, workflow: Workflow) -> None:
        await self._write(
            """INSERT INTO workflows
               (namespace, id, name, description, actions, frequency, last_executed)
               VALUES (?, ?, ?, ?, ?, ?, ?)
               ON CONFLICT(namespace, id) DO UPDATE SET
                   frequency = excluded.frequency,
                   last_executed = excluded.last_executed""",
            (
                self._namespace,
                workflow.id,
                workflow.name,
                workflow.description,
                json.dumps([a.to_dict() for a in workflow.actions], default=str),
                workflow.frequency,
                workflow.last_executed,
            ),
        )

    # ========== Maintenance ==========

    async def clear(self) -> None:
        conn = self._ensure_conn()
        for table in ("events", "patterns", "actions", "workflows"):
            await conn.execute(f"DELETE FROM {table} WHERE namespace = ?", (self._namespace,))  # noqa: S608
        await conn.commit()
