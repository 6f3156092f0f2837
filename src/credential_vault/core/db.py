# Credential Vault - SQLite Connection Helper
#
# Vault databases are opened through `connect()` so every connection gets:
#
#   - WAL journal mode (readers never block the single writer)
#   - busy_timeout to ride out SQLITE_BUSY under contention
#   - secure_delete, so removed records are zeroed on disk instead of
#     lingering in free pages

import os
import platform
import sqlite3
import stat
from pathlib import Path
from typing import Union


def connect(
    db_path: Union[str, Path],
    *,
    row_factory: bool = False,
) -> sqlite3.Connection:
    """Open a vault SQLite connection.

    Connections are opened with ``check_same_thread=False`` because the
    vault runs its storage calls on worker threads.

    Args:
        db_path: Path to the database file.
        row_factory: If True, set conn.row_factory = sqlite3.Row.
    """
    conn = sqlite3.connect(str(db_path), check_same_thread=False)
    conn.execute("PRAGMA journal_mode=WAL")
    conn.execute("PRAGMA busy_timeout=5000")
    conn.execute("PRAGMA secure_delete=ON")
    if row_factory:
        conn.row_factory = sqlite3.Row
    return conn


def restrict_permissions(path: Union[str, Path]) -> bool:
    """Make a database file readable/writable by its owner only (600).

    Returns False when the platform does not support POSIX modes.
    """
    if platform.system() == "Windows":
        return False
    os.chmod(path, stat.S_IRUSR | stat.S_IWUSR)
    return True
