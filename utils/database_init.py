import asyncio
from contextlib import asynccontextmanager
from pathlib import Path
from typing import AsyncIterator, Optional

import aiosqlite


class AsyncDatabaseInitializer:
    """
    Manage the async SQLite database holding analysis session snapshots.

    - The database file is located at: <db_dir>/app.db, where db_dir defaults
      to the DATABASE_DIR setting.
    - A RuntimeError is raised if the directory is invalid (not a directory
      and cannot be created).
    - Unlike a scratch database, existing content is kept across restarts so
      sessions can be redisplayed and resumed; pass `reset=True` to start clean.
    - Subsequent calls to `ensure_database()` on the same instance are no-ops,
      so it is safe for `connection()` to call it.
    """

    def __init__(self, db_dir: Path | str, *, reset: bool = False) -> None:
        if db_dir is None or not str(db_dir).strip():
            raise RuntimeError(
                "DATABASE_DIR must be set to a writable directory path where the "
                "SQLite database file will be stored."
            )

        db_dir = Path(db_dir).expanduser()

        # If the path exists but is not a directory, that's a configuration error.
        if db_dir.exists() and not db_dir.is_dir():
            raise RuntimeError(
                f"DATABASE_DIR={str(db_dir)!r} points to a file, not a directory. "
                f"Please set DATABASE_DIR to a directory path."
            )

        try:
            db_dir.mkdir(parents=True, exist_ok=True)
        except Exception as exc:
            raise RuntimeError(
                f"Failed to create or access database directory at {db_dir}"
            ) from exc

        self.db_dir = db_dir
        self.db_path = self.db_dir / "app.db"
        self._reset = reset
        self._initialized = False

    async def ensure_database(self) -> None:
        """
        Ensure the SQLite database and the ANALYSIS_SESSION table exist.

        With `reset=True` the first call deletes any existing database file.
        Subsequent calls on the same instance are no-ops.
        """
        if self._initialized:
            return

        if self._reset and self.db_path.exists():
            try:
                self.db_path.unlink()
            except Exception as exc:
                raise RuntimeError(
                    f"Failed to delete existing database at {self.db_path}"
                ) from exc

        max_attempts = 3
        for attempt in range(1, max_attempts + 1):
            try:
                async with aiosqlite.connect(self.db_path) as db:
                    await db.execute(
                        """
                        CREATE TABLE IF NOT EXISTS ANALYSIS_SESSION (
                            session_id TEXT PRIMARY KEY,
                            status TEXT NOT NULL,
                            snapshot_json TEXT NOT NULL,
                            created_at INTEGER NOT NULL,
                            updated_at INTEGER NOT NULL
                        )
                        """
                    )
                    await db.execute(
                        "CREATE INDEX IF NOT EXISTS idx_analysis_session_updated_at "
                        "ON ANALYSIS_SESSION(updated_at)"
                    )
                    await db.commit()
                break
            except FileNotFoundError:
                # On some platforms a transient missing file error may occur; retry a few times.
                if attempt >= max_attempts:
                    raise
                await asyncio.sleep(0.1 * attempt)

        self._initialized = True

    @asynccontextmanager
    async def connection(self) -> AsyncIterator[aiosqlite.Connection]:
        """
        Async context manager yielding an `aiosqlite.Connection`.

        The database is created on first use via `ensure_database()`.
        """
        await self.ensure_database()
        conn = await aiosqlite.connect(self.db_path)
        try:
            yield conn
        finally:
            await conn.close()
