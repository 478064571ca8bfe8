"""Database connection, migrations and transaction management."""
import logging
import sqlite3
import threading
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Iterator, Optional, TypeVar

from trana.errors import (
    StorageError,
    StorageIntegrityError,
    TranaError,
    TransactionCancelled,
    TransactionError,
)
from trana.hardening import HardeningConfig, harden

logger = logging.getLogger(__name__)

T = TypeVar("T")

# VM instructions between cancellation checks while a statement runs
PROGRESS_STEPS = 1000


@dataclass(frozen=True)
class Migration:
    version: int
    up: tuple
    down: tuple


MIGRATIONS = (
    Migration(
        version=1,
        up=(
            """CREATE TABLE decks (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                name TEXT NOT NULL
            )""",
            """CREATE TABLE cards (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                deck INTEGER NOT NULL REFERENCES decks(id) ON DELETE CASCADE,
                front TEXT NOT NULL,
                back TEXT NOT NULL,
                last_practiced INTEGER,
                comfort REAL NOT NULL DEFAULT -1
            )""",
            "CREATE INDEX cards_deck_front ON cards (deck, front)",
            "CREATE INDEX cards_deck_comfort ON cards (deck, comfort)",
        ),
        down=(
            "DROP INDEX cards_deck_comfort",
            "DROP INDEX cards_deck_front",
            "DROP TABLE cards",
            "DROP TABLE decks",
        ),
    ),
)


def schema_version(conn: sqlite3.Connection) -> int:
    return conn.execute("PRAGMA user_version").fetchone()[0]


def migrate(conn: sqlite3.Connection, migrations=MIGRATIONS) -> int:
    """Apply pending migrations in version order. Returns the resulting version."""
    current = schema_version(conn)
    for migration in sorted(migrations, key=lambda m: m.version):
        if migration.version <= current:
            continue
        logger.info("applying migration %d", migration.version)
        _run_migration_step(conn, migration.up, migration.version)
        current = migration.version
    return current


def rollback_migrations(conn: sqlite3.Connection, target: int = 0, migrations=MIGRATIONS) -> int:
    """Undo applied migrations down to ``target``. Returns the resulting version."""
    current = schema_version(conn)
    for migration in sorted(migrations, key=lambda m: m.version, reverse=True):
        if migration.version > current or migration.version <= target:
            continue
        logger.info("reverting migration %d", migration.version)
        _run_migration_step(conn, migration.down, migration.version - 1)
        current = migration.version - 1
    return current


def _run_migration_step(conn: sqlite3.Connection, statements, version: int) -> None:
    conn.execute("BEGIN")
    try:
        for statement in statements:
            conn.execute(statement)
        conn.execute(f"PRAGMA user_version = {int(version)}")
        conn.execute("COMMIT")
    except BaseException:
        conn.rollback()
        raise


class Store:
    """A single hardened SQLite connection.

    Every read and write goes through ``transaction()`` (or
    ``run_in_transaction()``), which commits on success and always rolls back
    otherwise. Transactions do not nest.
    """

    def __init__(self, path: str, config: Optional[HardeningConfig] = None):
        self.path = str(path)
        self.config = config or HardeningConfig()
        if self.path != ":memory:":
            Path(self.path).parent.mkdir(parents=True, exist_ok=True)
        try:
            # isolation_level=None: BEGIN/COMMIT are issued explicitly below
            self._conn = sqlite3.connect(self.path, isolation_level=None, check_same_thread=False)
        except sqlite3.Error as exc:
            raise StorageError(f"cannot open {self.path}: {exc}") from exc
        self._conn.row_factory = sqlite3.Row
        try:
            migrate(self._conn)
            harden(self._conn, self.config)
        except StorageError:
            self._conn.close()
            raise
        except sqlite3.OperationalError as exc:
            self._conn.close()
            raise StorageError(f"cannot open {self.path}: {exc}") from exc
        except sqlite3.DatabaseError as exc:
            self._conn.close()
            raise StorageIntegrityError(f"cannot open {self.path}: {exc}") from exc
        except BaseException:
            self._conn.close()
            raise
        logger.debug("opened %s", self.path)

    @classmethod
    def open(cls, path: str, config: Optional[HardeningConfig] = None) -> "Store":
        return cls(path, config)

    @property
    def connection(self) -> sqlite3.Connection:
        return self._conn

    def close(self) -> None:
        if self._conn is None:
            return
        try:
            self._conn.execute("PRAGMA optimize")
        finally:
            self._conn.close()
            self._conn = None
            logger.debug("closed %s", self.path)

    def __enter__(self) -> "Store":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    @contextmanager
    def transaction(self, cancel: Optional[threading.Event] = None) -> Iterator[sqlite3.Connection]:
        """Atomic unit of work: commits on success, rolls back on any failure.

        trana errors raised by the body propagate unchanged; any other
        exception is reported as TransactionError. Setting ``cancel`` aborts
        the running statement and rolls back with TransactionCancelled.
        """
        conn = self._conn
        if conn is None:
            raise TransactionError("store is closed")
        if conn.in_transaction:
            raise TransactionError("transactions cannot be nested")
        if cancel is not None and cancel.is_set():
            raise TransactionCancelled("transaction cancelled before it started")

        committed = False
        if cancel is not None:
            conn.set_progress_handler(cancel.is_set, PROGRESS_STEPS)
        try:
            conn.execute("BEGIN")
            yield conn
            if cancel is not None and cancel.is_set():
                raise TransactionCancelled("transaction cancelled before commit")
            conn.execute("COMMIT")
            committed = True
        except TranaError:
            raise
        except Exception as exc:
            if cancel is not None and cancel.is_set():
                raise TransactionCancelled("transaction cancelled") from exc
            raise TransactionError(f"transaction rolled back: {exc}") from exc
        finally:
            if cancel is not None:
                conn.set_progress_handler(None, 0)
            if not committed and conn.in_transaction:
                conn.rollback()
                logger.warning("rolled back transaction on %s", self.path)

    def run_in_transaction(
        self,
        operation: Callable[[sqlite3.Connection], T],
        cancel: Optional[threading.Event] = None,
    ) -> T:
        with self.transaction(cancel) as conn:
            return operation(conn)
