"""SQLite-backed alias store.

A single table, ``alias``, maps an alias name to a dictionary term.
All access goes through explicit transactions so that check-then-act
sequences (add if absent, delete if present) are atomic.

Usage::

    store = AliasStore(Path("data/alias.db"))
    store.open()
    with store.transaction(write=True) as tx:
        if tx.get("cthulhu") is None:
            tx.put("cthulhu", "great old one")
"""

import sqlite3
import threading
from contextlib import contextmanager
from pathlib import Path
from typing import Callable, Iterator, Optional, TypeVar

import structlog

from .exceptions import AliasStoreError, ErrorCategory

logger = structlog.get_logger("cocbot.store")

COLLECTION = "alias"

T = TypeVar("T")


def _rollback(conn: sqlite3.Connection) -> None:
    if conn.in_transaction:
        conn.execute("ROLLBACK")


class AliasTransaction:
    """Handle to one open transaction on the alias collection."""

    def __init__(self, conn: sqlite3.Connection, writable: bool):
        self._conn = conn
        self.writable = writable

    def get(self, key: str) -> Optional[str]:
        """Return the target stored under key, or None."""
        row = self._conn.execute(
            f"SELECT value FROM {COLLECTION} WHERE key = ?", (key,)
        ).fetchone()
        return row[0] if row else None

    def put(self, key: str, value: str) -> None:
        """Insert or replace the mapping for key."""
        self._require_writable("put")
        self._conn.execute(
            f"INSERT OR REPLACE INTO {COLLECTION} (key, value) VALUES (?, ?)",
            (key, value),
        )

    def delete(self, key: str) -> bool:
        """Delete key. Returns True if a row was removed."""
        self._require_writable("delete")
        cursor = self._conn.execute(
            f"DELETE FROM {COLLECTION} WHERE key = ?", (key,)
        )
        return cursor.rowcount > 0

    def _require_writable(self, op: str) -> None:
        if not self.writable:
            raise AliasStoreError(
                f"{op} not allowed in a read-only transaction",
                category=ErrorCategory.PERMANENT,
                operation=op,
            )


class AliasStore:
    """Persistent alias name -> term mapping.

    One SQLite connection is shared by all callers; a lock makes sure
    only one transaction uses it at a time. Handlers call into the store
    from worker threads (``asyncio.to_thread``), hence
    ``check_same_thread=False``.

    Args:
        db_path: SQLite database file. Parent directories are created.
    """

    def __init__(self, db_path: Path):
        self.db_path = Path(db_path)
        self._conn: Optional[sqlite3.Connection] = None
        self._lock = threading.Lock()

    def open(self) -> None:
        """Open the database and create the alias table if needed."""
        if self._conn is not None:
            return
        try:
            self.db_path.parent.mkdir(parents=True, exist_ok=True)
            # isolation_level=None: BEGIN/COMMIT are issued explicitly below
            self._conn = sqlite3.connect(
                str(self.db_path), check_same_thread=False, isolation_level=None
            )
            self._conn.execute("PRAGMA journal_mode=WAL")
            self._conn.execute("PRAGMA busy_timeout=5000")
            self._conn.execute(
                f"CREATE TABLE IF NOT EXISTS {COLLECTION} ("
                "key TEXT PRIMARY KEY, value TEXT NOT NULL)"
            )
        except (sqlite3.Error, OSError) as e:
            raise AliasStoreError(
                "cannot open alias store",
                category=ErrorCategory.INFRASTRUCTURE,
                path=str(self.db_path),
                error=str(e),
            ) from e
        logger.info("alias_store_opened", path=str(self.db_path))

    def close(self) -> None:
        """Close the underlying connection."""
        with self._lock:
            if self._conn is not None:
                self._conn.close()
                self._conn = None
                logger.info("alias_store_closed")

    @contextmanager
    def transaction(self, write: bool = False) -> Iterator[AliasTransaction]:
        """Run a block inside one transaction.

        Commits when the block exits normally, rolls back when it raises.
        SQLite errors are re-raised as AliasStoreError.

        Args:
            write: Take the write lock up front (``BEGIN IMMEDIATE``) so
                that a read followed by a write cannot be interleaved
                with another writer.
        """
        with self._lock:
            if self._conn is None:
                raise AliasStoreError(
                    "alias store is not open", category=ErrorCategory.PERMANENT
                )
            conn = self._conn
            try:
                conn.execute("BEGIN IMMEDIATE" if write else "BEGIN")
            except sqlite3.Error as e:
                raise AliasStoreError("cannot begin transaction", error=str(e)) from e

            try:
                yield AliasTransaction(conn, writable=write)
            except sqlite3.Error as e:
                _rollback(conn)
                logger.error("alias_transaction_failed", write=write, error=str(e))
                raise AliasStoreError("alias transaction failed", error=str(e)) from e
            except BaseException:
                _rollback(conn)
                raise

            try:
                conn.execute("COMMIT")
            except sqlite3.Error as e:
                _rollback(conn)
                logger.error("alias_commit_failed", write=write, error=str(e))
                raise AliasStoreError("cannot commit transaction", error=str(e)) from e

    def view(self, fn: Callable[[AliasTransaction], T]) -> T:
        """Run fn inside a read-only transaction and return its result."""
        with self.transaction(write=False) as tx:
            return fn(tx)

    def update(self, fn: Callable[[AliasTransaction], T]) -> T:
        """Run fn inside a write transaction and return its result."""
        with self.transaction(write=True) as tx:
            return fn(tx)
