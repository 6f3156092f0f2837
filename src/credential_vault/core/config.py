"""
Runtime configuration for the credential vault.

Values come from the process environment. The CLI entry point loads an
optional ``.env`` file first, so every setting can also live there.
"""

import os
from pathlib import Path

# Use: Directory holding the vault database. Type: path.
DATA_DIR = Path(os.environ.get("CREDENTIAL_VAULT_DATA_DIR", "data"))

# Use: SQLite file holding encrypted credential records. Type: path.
VAULT_DB_PATH = Path(os.environ.get("CREDENTIAL_VAULT_DB", str(DATA_DIR / "vault.db")))

# Use: Directory for the daily audit log files. Type: path.
AUDIT_DIR = Path(os.environ.get("CREDENTIAL_VAULT_AUDIT_DIR", "./audit_logs"))

# Use: Host switch for durable storage. "0"/"false"/"no" refuses every
# encrypted write with PersistenceDenied. Type: bool.
ALLOW_PERSISTENCE = os.environ.get(
    "CREDENTIAL_VAULT_ALLOW_PERSISTENCE", "1"
).strip().lower() not in ("0", "false", "no", "off")

# Use: Timeout in seconds for a single credential probe request. Type: float.
PROBE_TIMEOUT_SECONDS = float(os.environ.get("CREDENTIAL_VAULT_PROBE_TIMEOUT", "10"))

# Use: Default API bind address. Loopback keeps requests in a secure context.
API_HOST = os.environ.get("CREDENTIAL_VAULT_HOST", "127.0.0.1")
API_PORT = int(os.environ.get("CREDENTIAL_VAULT_PORT", "8000"))
