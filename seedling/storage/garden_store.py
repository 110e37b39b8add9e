"""SQLite storage for the shared tree row and the message board."""

import logging
import sqlite3
import time
from dataclasses import dataclass
from datetime import date
from pathlib import Path
from typing import Any

from ..errors import StorageError
from ..tree.state import TreeState

logger = logging.getLogger(__name__)

SCHEMA = """
-- Message board: append-only apart from admin deletes
CREATE TABLE IF NOT EXISTS messages (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    name TEXT,
    text TEXT NOT NULL,
    time INTEGER NOT NULL
);

CREATE INDEX IF NOT EXISTS idx_messages_time ON messages(time);

-- Tree state: exactly one row with fixed identity
CREATE TABLE IF NOT EXISTS tree_state (
    id INTEGER PRIMARY KEY CHECK (id = 1),
    wateredCount INTEGER DEFAULT 0,
    lastWatered TEXT,
    harvestCount INTEGER DEFAULT 0,
    readyForHarvest INTEGER DEFAULT 0
);

INSERT OR IGNORE INTO tree_state (id, wateredCount, lastWatered, harvestCount, readyForHarvest)
VALUES (1, 0, NULL, 0, 0);
"""

TREE_ROW_ID = 1


@dataclass
class Message:
    """A single guestbook note."""

    id: int
    name: str
    text: str
    time: int  # epoch milliseconds

    def to_dict(self) -> dict[str, Any]:
        return {"id": self.id, "name": self.name, "text": self.text, "time": self.time}


class GardenStore:
    """SQLite-backed store holding the tree row and messages.

    One connection is shared by every request handler. SQLite's busy timeout
    bounds how long a statement waits on a locked database; any
    ``sqlite3.Error`` is re-raised as ``StorageError``.
    """

    def __init__(self, db_path: str | Path, timeout: float = 5.0):
        """Initialize the store.

        Args:
            db_path: Path to SQLite database file, or ":memory:".
            timeout: Seconds a statement may wait on a locked database.
        """
        self.db_path = db_path if db_path == ":memory:" else Path(db_path).expanduser()
        self.timeout = timeout
        self._conn: sqlite3.Connection | None = None

    def connect(self) -> None:
        """Initialize database connection and schema."""
        if self._conn is not None:
            return

        try:
            if isinstance(self.db_path, Path):
                self.db_path.parent.mkdir(parents=True, exist_ok=True)
            self._conn = sqlite3.connect(
                str(self.db_path), timeout=self.timeout, check_same_thread=False
            )
            self._conn.row_factory = sqlite3.Row
            self._conn.executescript(SCHEMA)
            self._conn.commit()
        except (sqlite3.Error, OSError) as e:
            self._conn = None
            raise StorageError(f"Failed to open {self.db_path}: {e}") from e

        logger.info(f"GardenStore connected to {self.db_path}")

    def close(self) -> None:
        """Close database connection."""
        if self._conn:
            self._conn.close()
            self._conn = None
            logger.info("GardenStore connection closed")

    def _ensure_connected(self) -> sqlite3.Connection:
        if self._conn is None:
            self.connect()
        return self._conn

    def _execute(self, sql: str, params: tuple = ()) -> sqlite3.Cursor:
        """Run one statement and commit, mapping failures to StorageError."""
        conn = self._ensure_connected()
        try:
            cursor = conn.execute(sql, params)
            conn.commit()
            return cursor
        except sqlite3.Error as e:
            logger.error(f"Query failed: {e}")
            raise StorageError(str(e)) from e

    # ==================== Tree State ====================

    def load_tree(self) -> TreeState:
        """Read the singleton tree row."""
        row = self._execute(
            "SELECT wateredCount, lastWatered, harvestCount, readyForHarvest "
            "FROM tree_state WHERE id = ?",
            (TREE_ROW_ID,),
        ).fetchone()

        if row is None:
            # Row removed out from under us; behave as the zero state.
            logger.warning("tree_state row missing, treating as zero state")
            return TreeState()

        last = row["lastWatered"]
        try:
            last_watered = date.fromisoformat(last) if last else None
        except ValueError as e:
            raise StorageError(f"Corrupt lastWatered value {last!r}") from e

        return TreeState(
            watered_count=row["wateredCount"] or 0,
            last_watered=last_watered,
            harvest_count=row["harvestCount"] or 0,
            ready_for_harvest=bool(row["readyForHarvest"]),
        )

    def save_tree(self, state: TreeState) -> None:
        """Overwrite the singleton tree row with ``state``."""
        self._execute(
            """
            INSERT INTO tree_state (id, wateredCount, lastWatered, harvestCount, readyForHarvest)
            VALUES (?, ?, ?, ?, ?)
            ON CONFLICT(id) DO UPDATE SET
                wateredCount = excluded.wateredCount,
                lastWatered = excluded.lastWatered,
                harvestCount = excluded.harvestCount,
                readyForHarvest = excluded.readyForHarvest
            """,
            (
                TREE_ROW_ID,
                state.watered_count,
                state.last_watered.isoformat() if state.last_watered else None,
                state.harvest_count,
                int(state.ready_for_harvest),
            ),
        )

    # ==================== Messages ====================

    def list_messages(self) -> list[Message]:
        """Return all messages, oldest first."""
        rows = self._execute(
            "SELECT id, name, text, time FROM messages ORDER BY time ASC, id ASC"
        ).fetchall()
        return [
            Message(id=r["id"], name=r["name"] or "", text=r["text"], time=r["time"])
            for r in rows
        ]

    def add_message(self, name: str, text: str, timestamp_ms: int | None = None) -> Message:
        """Insert a message and return it with its assigned id."""
        if timestamp_ms is None:
            timestamp_ms = int(time.time() * 1000)

        cursor = self._execute(
            "INSERT INTO messages (name, text, time) VALUES (?, ?, ?)",
            (name, text, timestamp_ms),
        )
        return Message(id=cursor.lastrowid, name=name, text=text, time=timestamp_ms)

    def delete_message(self, message_id: int) -> bool:
        """Delete one message. Returns True if a row was removed."""
        cursor = self._execute("DELETE FROM messages WHERE id = ?", (message_id,))
        return cursor.rowcount > 0

    def clear_messages(self) -> int:
        """Delete every message. Returns the number removed."""
        cursor = self._execute("DELETE FROM messages")
        return cursor.rowcount

    def get_stats(self) -> dict[str, Any]:
        """Row counts, for the CLI status output."""
        count = self._execute("SELECT COUNT(*) FROM messages").fetchone()[0]
        return {"db_path": str(self.db_path), "messages_count": count}
