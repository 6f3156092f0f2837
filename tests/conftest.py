"""
Shared pytest fixtures for the Credential Vault test suite.

Autouse fixtures below isolate tests from the live application data:
  - Audit logger -> temp directory  (prevents test events in ./audit_logs)
  - API vault    -> reset per test  (prevents keys leaking between tests)
"""

import pytest

from credential_vault.vault import SQLiteVaultStore, StaticPersistenceGrant, Vault

# Low work factor keeps the suite fast; the default is pinned in test_kdf_cipher.py
TEST_ITERATIONS = 1_000


@pytest.fixture(autouse=True)
def _isolate_audit_logs(tmp_path, monkeypatch):
    """Redirect the global AuditLogger to a temp directory for every test.

    Without this, any test that (directly or indirectly) calls
    ``get_audit_logger().log_event(...)`` writes into the real
    ``./audit_logs/`` directory.
    """
    import credential_vault.core.audit_log as audit_mod

    # Reset the singleton so the next call to get_audit_logger() creates
    # a fresh instance pointing at the temp directory.
    old_logger = audit_mod._audit_logger
    audit_mod._audit_logger = None

    orig_init = audit_mod.AuditLogger.__init__

    def patched_init(self, log_dir=None):
        orig_init(self, log_dir=log_dir or tmp_path / "audit_logs")

    monkeypatch.setattr(audit_mod.AuditLogger, "__init__", patched_init)

    yield

    if audit_mod._audit_logger is not None:
        audit_mod._audit_logger.close()
    audit_mod._audit_logger = old_logger


@pytest.fixture(autouse=True)
def _isolate_api_vault():
    """Drop the API's vault singleton so every test builds its own."""
    import credential_vault.api.vault_routes as routes_mod

    old_vault, old_probe = routes_mod._vault, routes_mod._probe
    routes_mod._vault = None
    routes_mod._probe = None
    yield
    routes_mod._vault = old_vault
    routes_mod._probe = old_probe


@pytest.fixture
def db_path(tmp_path):
    return tmp_path / "vault.db"


@pytest.fixture
def store(db_path):
    """SQLiteVaultStore backed by a temp file."""
    return SQLiteVaultStore(db_path)


@pytest.fixture
def grant():
    return StaticPersistenceGrant(granted=True)


@pytest.fixture
def vault(store, grant):
    """Vault over a temp store with a cheap work factor."""
    return Vault(store=store, persistence=grant, iterations=TEST_ITERATIONS)


@pytest.fixture
def restart(db_path, grant):
    """Build a fresh Vault over the same database: a simulated process restart."""

    def _restart():
        return Vault(
            store=SQLiteVaultStore(db_path),
            persistence=grant,
            iterations=TEST_ITERATIONS,
        )

    return _restart
