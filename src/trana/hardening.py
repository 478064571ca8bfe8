"""Defensive SQLite configuration applied once when a store is opened.

See https://sqlite.org/security.html for the rationale behind each setting.
"""
import logging
import sqlite3
from dataclasses import dataclass, field

from trana.errors import StorageError, StorageIntegrityError

logger = logging.getLogger(__name__)

DEFAULT_LIMITS = {
    sqlite3.SQLITE_LIMIT_LENGTH: 1_000_000,
    sqlite3.SQLITE_LIMIT_SQL_LENGTH: 10_000,
    sqlite3.SQLITE_LIMIT_COLUMN: 100,
    sqlite3.SQLITE_LIMIT_EXPR_DEPTH: 10,
    sqlite3.SQLITE_LIMIT_COMPOUND_SELECT: 3,
    sqlite3.SQLITE_LIMIT_VDBE_OP: 25_000,
    sqlite3.SQLITE_LIMIT_FUNCTION_ARG: 8,
    # 0 is recommended, but VACUUM attaches a temporary database
    sqlite3.SQLITE_LIMIT_ATTACHED: 1,
    sqlite3.SQLITE_LIMIT_LIKE_PATTERN_LENGTH: 50,
    sqlite3.SQLITE_LIMIT_VARIABLE_NUMBER: 10,
    sqlite3.SQLITE_LIMIT_TRIGGER_DEPTH: 10,
}


_JOURNAL_MODES = {"DELETE", "TRUNCATE", "PERSIST", "MEMORY", "WAL", "OFF"}
_SYNCHRONOUS_MODES = {"OFF", "NORMAL", "FULL", "EXTRA"}
_AUTO_VACUUM_MODES = {"NONE": 0, "FULL": 1, "INCREMENTAL": 2}


@dataclass(frozen=True)
class HardeningConfig:
    limits: dict = field(default_factory=lambda: dict(DEFAULT_LIMITS))
    busy_timeout_ms: int = 5000
    journal_mode: str = "WAL"
    synchronous: str = "EXTRA"
    secure_delete: bool = True
    mmap_size: int = 0
    auto_vacuum: str = "FULL"

    def __post_init__(self):
        # These are interpolated into PRAGMA statements
        for name, allowed in (
            ("journal_mode", _JOURNAL_MODES),
            ("synchronous", _SYNCHRONOUS_MODES),
            ("auto_vacuum", _AUTO_VACUUM_MODES),
        ):
            value = getattr(self, name)
            if not isinstance(value, str) or value.upper() not in allowed:
                raise StorageError(
                    f"unsupported {name} {value!r}; use one of {', '.join(sorted(allowed))}"
                )


def apply_limits(conn: sqlite3.Connection, limits: dict) -> None:
    for category, value in limits.items():
        previous = conn.setlimit(category, value)
        logger.debug("limit %d: %d -> %d", category, previous, value)


def check_integrity(conn: sqlite3.Connection) -> None:
    """Raise StorageIntegrityError unless ``PRAGMA integrity_check`` reports ok."""
    rows = conn.execute("PRAGMA integrity_check").fetchall()
    results = [row[0] for row in rows]
    if results != ["ok"]:
        raise StorageIntegrityError(f"database integrity check failed: {'; '.join(results)}")


def check_foreign_keys(conn: sqlite3.Connection) -> None:
    violations = conn.execute("PRAGMA foreign_key_check").fetchall()
    if violations:
        tables = sorted({row[0] for row in violations})
        raise StorageIntegrityError(
            f"database contains {len(violations)} foreign key violation(s) in {', '.join(tables)}"
        )


def harden(conn: sqlite3.Connection, config: HardeningConfig) -> None:
    """Apply resource limits, verify the file, and switch on durable settings.

    Must run outside any transaction: VACUUM and journal_mode changes refuse
    to run inside one.
    """
    conn.execute("PRAGMA trusted_schema = OFF")
    apply_limits(conn, config.limits)

    check_integrity(conn)
    conn.execute("PRAGMA cell_size_check = ON")
    conn.execute(f"PRAGMA mmap_size = {int(config.mmap_size)}")

    conn.execute("PRAGMA foreign_keys = ON")
    check_foreign_keys(conn)

    conn.execute(f"PRAGMA secure_delete = {'ON' if config.secure_delete else 'OFF'}")
    mode = conn.execute(f"PRAGMA journal_mode = {config.journal_mode}").fetchone()[0]
    logger.debug("journal mode is %s", mode)
    conn.execute(f"PRAGMA busy_timeout = {int(config.busy_timeout_ms)}")
    conn.execute(f"PRAGMA synchronous = {config.synchronous}")

    _set_auto_vacuum(conn, config.auto_vacuum)


def _set_auto_vacuum(conn: sqlite3.Connection, mode: str) -> None:
    wanted = _AUTO_VACUUM_MODES[mode.upper()]
    current = conn.execute("PRAGMA auto_vacuum").fetchone()[0]
    if current == wanted:
        return
    # Switching away from NONE only takes effect after a full rebuild
    conn.execute(f"PRAGMA auto_vacuum = {mode}")
    logger.info("rebuilding database file for auto_vacuum=%s", mode)
    conn.execute("VACUUM")
