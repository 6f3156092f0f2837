# Vault - Error Types
#
# Every failure a vault caller can see. AuthenticationFailure and
# CorruptRecord share one user-facing message so a caller cannot tell a
# wrong PIN from a damaged record.

from typing import Optional

INCORRECT_PIN_MESSAGE = "Incorrect PIN"


class VaultError(Exception):
    """Base class for vault failures."""

    code = "vault_error"
    default_message = "Vault operation failed"

    def __init__(self, message: Optional[str] = None):
        super().__init__(message or self.default_message)


class PinTooShort(VaultError):
    """PIN shorter than the minimum length. Raised before any key derivation."""

    code = "pin_too_short"
    default_message = "PIN must be at least 4 characters"


class PinMismatchOnConfirm(VaultError):
    """PIN and its confirmation differ (setup flow only)."""

    code = "pin_mismatch"
    default_message = "PINs do not match"


class InsecureContext(VaultError):
    """The execution context cannot guarantee a secure channel."""

    code = "insecure_context"
    default_message = "Encryption requires a secure context (HTTPS or localhost)"


class PersistenceDenied(VaultError):
    """The host refused durable storage."""

    code = "persistence_denied"
    default_message = "Durable storage was refused by the host"


class AuthenticationFailure(VaultError):
    """AEAD tag check failed: wrong key or tampered ciphertext."""

    code = "authentication_failure"
    default_message = INCORRECT_PIN_MESSAGE


class CorruptRecord(VaultError):
    """A stored record is missing or has malformed fields."""

    code = "corrupt_record"
    default_message = INCORRECT_PIN_MESSAGE


class UnlockFailed(VaultError):
    """Not a single record could be decrypted with the submitted PIN."""

    code = "unlock_failed"
    default_message = INCORRECT_PIN_MESSAGE


class KeyDerivationError(VaultError, ValueError):
    """Invalid key derivation input (empty PIN, wrong salt length, bad work factor)."""

    code = "key_derivation_error"
    default_message = "Invalid key derivation input"
