"""Durable keyed storage for encrypted secret records.

SQLite + WAL via core.db.connect(). One row per provider id. Each write is
a single INSERT OR REPLACE, so a record is crash-consistent on its own;
nothing is transactional across providers.
"""

import logging
from abc import ABC, abstractmethod
from pathlib import Path
from typing import List, Optional, Tuple, Union

from ..core import config
from ..core.db import connect as db_connect, restrict_permissions
from .records import ProviderId, SecretRecord, StorageMode

logger = logging.getLogger(__name__)


class VaultStore(ABC):
    """
    Durable keyed store of SecretRecords.

    Only encrypted records are ever handed to a store; session-mode
    plaintext never leaves the Vault's memory.
    """

    @abstractmethod
    def put(self, record: SecretRecord) -> None:
        """Insert or atomically replace the record for ``record.id``."""

    @abstractmethod
    def get(self, provider_id: ProviderId) -> Optional[SecretRecord]:
        """Return the stored record, or None."""

    @abstractmethod
    def delete(self, provider_id: ProviderId) -> bool:
        """Remove a record. Returns True if one existed."""

    @abstractmethod
    def list_entries(self) -> List[Tuple[str, str]]:
        """Return raw ``(provider_id, serialized_record)`` pairs."""

    @abstractmethod
    def clear_all(self) -> int:
        """Remove every record. Returns the number removed."""

    def list_all(self) -> List[SecretRecord]:
        """
        Return every stored record.

        Raises:
            CorruptRecord: a stored entry cannot be parsed
        """
        return [SecretRecord.from_json(text) for _, text in self.list_entries()]

    @staticmethod
    def _check_storable(record: SecretRecord) -> None:
        if record.mode is not StorageMode.ENCRYPTED or record.payload is None:
            raise ValueError("Only encrypted records may be written to durable storage")


class SQLiteVaultStore(VaultStore):
    """SQLite persistence for encrypted credential records.

    Args:
        db_path: Path to SQLite database file. Defaults to CREDENTIAL_VAULT_DB.
    """

    def __init__(self, db_path: Optional[Union[str, Path]] = None):
        self.db_path = Path(db_path) if db_path else config.VAULT_DB_PATH
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self._init_database()

    def _connect(self, row_factory: bool = False):
        return db_connect(self.db_path, row_factory=row_factory)

    def _init_database(self):
        """Create the secrets table if it does not exist."""
        with self._connect() as conn:
            conn.execute("""
                CREATE TABLE IF NOT EXISTS secrets (
                    id          TEXT PRIMARY KEY,
                    record      TEXT NOT NULL,
                    updated_at  TEXT NOT NULL
                )
            """)
            conn.commit()
        if not restrict_permissions(self.db_path):
            logger.warning(
                "Could not restrict permissions on vault database %s", self.db_path
            )

    # ── CRUD ────────────────────────────────────────────────────────

    def put(self, record: SecretRecord) -> None:
        self._check_storable(record)
        with self._connect() as conn:
            conn.execute(
                "INSERT OR REPLACE INTO secrets (id, record, updated_at) VALUES (?, ?, ?)",
                (record.id.value, record.to_json(), record.updated_at),
            )
            conn.commit()

    def get(self, provider_id: ProviderId) -> Optional[SecretRecord]:
        provider_id = ProviderId.parse(provider_id)
        with self._connect(row_factory=True) as conn:
            row = conn.execute(
                "SELECT record FROM secrets WHERE id = ?", (provider_id.value,)
            ).fetchone()
        return SecretRecord.from_json(row["record"]) if row else None

    def delete(self, provider_id: ProviderId) -> bool:
        provider_id = ProviderId.parse(provider_id)
        with self._connect() as conn:
            cursor = conn.execute(
                "DELETE FROM secrets WHERE id = ?", (provider_id.value,)
            )
            conn.commit()
        return cursor.rowcount > 0

    def list_entries(self) -> List[Tuple[str, str]]:
        with self._connect(row_factory=True) as conn:
            rows = conn.execute(
                "SELECT id, record FROM secrets ORDER BY id"
            ).fetchall()
        return [(r["id"], r["record"]) for r in rows]

    def clear_all(self) -> int:
        with self._connect() as conn:
            cursor = conn.execute("DELETE FROM secrets")
            conn.commit()
        return cursor.rowcount
