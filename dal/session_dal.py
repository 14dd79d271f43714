"""Async Data Access Layer for the ANALYSIS_SESSION table.

Each row holds the latest JSON snapshot of one session, enough to redisplay
it or resume its analysis after the service restarts.
"""

from __future__ import annotations

import json
import time
from typing import Any, Dict, List, Optional

from utils.database_init import AsyncDatabaseInitializer


class SessionDAL:
    """Data access layer for session snapshots.

    The constructor accepts an `AsyncDatabaseInitializer` (or any object
    exposing an async `connection()` context manager that yields an
    `aiosqlite.Connection`).
    """

    def __init__(self, db_initializer: AsyncDatabaseInitializer) -> None:
        self._db = db_initializer

    async def save_snapshot(self, snapshot: Dict[str, Any]) -> None:
        """Insert or replace the snapshot for `snapshot["session_id"]`."""
        now = int(time.time())
        session_id = snapshot["session_id"]
        status = (snapshot.get("analysis_state") or {}).get("status", "idle")
        async with self._db.connection() as conn:
            await conn.execute(
                """
                INSERT INTO ANALYSIS_SESSION (session_id, status, snapshot_json, created_at, updated_at)
                VALUES (?, ?, ?, ?, ?)
                ON CONFLICT(session_id) DO UPDATE SET
                    status = excluded.status,
                    snapshot_json = excluded.snapshot_json,
                    updated_at = excluded.updated_at
                """,
                (session_id, status, json.dumps(snapshot, ensure_ascii=False), now, now),
            )
            await conn.commit()

    async def get_snapshot(self, session_id: str) -> Optional[Dict[str, Any]]:
        """Return the stored snapshot, or None if the session is unknown."""
        async with self._db.connection() as conn:
            cur = await conn.execute(
                "SELECT snapshot_json FROM ANALYSIS_SESSION WHERE session_id = ?",
                (session_id,),
            )
            row = await cur.fetchone()
            return json.loads(row[0]) if row else None

    async def list_sessions(self, limit: int = 100, offset: int = 0) -> List[Dict[str, Any]]:
        """List session ids with status and timestamps, most recently updated first."""
        async with self._db.connection() as conn:
            cur = await conn.execute(
                "SELECT session_id, status, created_at, updated_at FROM ANALYSIS_SESSION "
                "ORDER BY updated_at DESC LIMIT ? OFFSET ?",
                (limit, offset),
            )
            rows = await cur.fetchall()
            return [
                {"session_id": r[0], "status": r[1], "created_at": r[2], "updated_at": r[3]}
                for r in rows
            ]

    async def delete_session(self, session_id: str) -> bool:
        """Delete a session row. Returns True if a row was deleted."""
        async with self._db.connection() as conn:
            await conn.execute("DELETE FROM ANALYSIS_SESSION WHERE session_id = ?", (session_id,))
            await conn.commit()
            cur = await conn.execute("SELECT changes()")
            changed = await cur.fetchone()
            return bool(changed and changed[0] > 0)
