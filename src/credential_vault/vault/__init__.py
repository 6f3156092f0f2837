# Vault Module - Provider Credential Vault
#
# Third-party API keys protected at rest:
# PIN -> PBKDF2-HMAC-SHA256 -> AES-256-GCM, one record per provider

from .cipher import AEADCipher, ExecutionContext
from .errors import (
    AuthenticationFailure,
    CorruptRecord,
    InsecureContext,
    KeyDerivationError,
    PersistenceDenied,
    PinMismatchOnConfirm,
    PinTooShort,
    UnlockFailed,
    VaultError,
)
from .kdf import KeyDerivation
from .persistence import FilesystemPersistenceGrant, PersistenceGrant, StaticPersistenceGrant
from .records import EncryptedPayload, ProviderId, SecretRecord, StorageMode
from .store import SQLiteVaultStore, VaultStore
from .validation import validate_new_pin
from .vault_manager import LockState, ProviderState, StoreResult, UnlockResult, Vault

__all__ = [
    "Vault",
    "VaultStore",
    "SQLiteVaultStore",
    "PersistenceGrant",
    "FilesystemPersistenceGrant",
    "StaticPersistenceGrant",
    "KeyDerivation",
    "AEADCipher",
    "ExecutionContext",
    "SecretRecord",
    "EncryptedPayload",
    "ProviderId",
    "StorageMode",
    "ProviderState",
    "LockState",
    "StoreResult",
    "UnlockResult",
    "validate_new_pin",
    # Errors
    "VaultError",
    "PinTooShort",
    "PinMismatchOnConfirm",
    "InsecureContext",
    "PersistenceDenied",
    "AuthenticationFailure",
    "UnlockFailed",
    "CorruptRecord",
    "KeyDerivationError",
]
