# Vault - Secret Records
#
# One SecretRecord per provider. Binary fields travel as hex text so a
# stored record can be inspected without binary tooling.

import json
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Optional

from .cipher import AEADCipher
from .errors import CorruptRecord
from .kdf import KeyDerivation


class ProviderId(str, Enum):
    """Model providers whose API keys the vault protects."""
    GEMINI = "gemini"
    GROK = "grok"
    OPENAI = "openai"

    @classmethod
    def parse(cls, value) -> "ProviderId":
        """Accept a ProviderId or its string value."""
        try:
            return cls(value)
        except ValueError:
            raise ValueError(f"Unknown provider: {value!r}") from None


class StorageMode(str, Enum):
    """Storage discipline for one provider's credential."""
    SESSION = "session"      # process memory only
    ENCRYPTED = "encrypted"  # durable, AES-256-GCM under a PIN-derived key

    @classmethod
    def parse(cls, value) -> "StorageMode":
        try:
            return cls(value)
        except ValueError:
            raise ValueError(f"Unknown storage mode: {value!r}") from None


def utc_now() -> str:
    return datetime.now(timezone.utc).isoformat()


@dataclass(frozen=True)
class EncryptedPayload:
    """Ciphertext plus every parameter needed to decrypt it later."""

    salt: bytes
    nonce: bytes
    ciphertext: bytes
    kdf_algorithm: str = KeyDerivation.ALGORITHM
    iterations: int = KeyDerivation.DEFAULT_ITERATIONS
    cipher_algorithm: str = AEADCipher.ALGORITHM

    def to_dict(self) -> Dict[str, Any]:
        return {
            "salt": self.salt.hex(),
            "nonce": self.nonce.hex(),
            "ciphertext": self.ciphertext.hex(),
            "kdf_algorithm": self.kdf_algorithm,
            "iterations": self.iterations,
            "cipher_algorithm": self.cipher_algorithm,
        }

    @classmethod
    def from_dict(cls, data: Any) -> "EncryptedPayload":
        """
        Rebuild a payload from its stored form.

        Raises:
            CorruptRecord: missing/malformed salt, nonce or ciphertext, an
                unsupported algorithm, or a work factor outside
                1..MAX_ITERATIONS
        """
        if not isinstance(data, dict):
            raise CorruptRecord()

        salt = _decode_hex(data.get("salt"))
        nonce = _decode_hex(data.get("nonce"))
        ciphertext = _decode_hex(data.get("ciphertext"))
        if len(salt) != KeyDerivation.SALT_LENGTH or len(nonce) != AEADCipher.NONCE_LENGTH:
            raise CorruptRecord()
        if len(ciphertext) < AEADCipher.TAG_LENGTH:
            raise CorruptRecord()

        kdf_algorithm = data.get("kdf_algorithm", KeyDerivation.ALGORITHM)
        cipher_algorithm = data.get("cipher_algorithm", AEADCipher.ALGORITHM)
        if kdf_algorithm != KeyDerivation.ALGORITHM or cipher_algorithm != AEADCipher.ALGORITHM:
            raise CorruptRecord()

        iterations = data.get("iterations")
        if isinstance(iterations, bool) or not isinstance(iterations, int):
            raise CorruptRecord()
        if not 1 <= iterations <= KeyDerivation.MAX_ITERATIONS:
            raise CorruptRecord()

        return cls(
            salt=salt,
            nonce=nonce,
            ciphertext=ciphertext,
            kdf_algorithm=kdf_algorithm,
            iterations=iterations,
            cipher_algorithm=cipher_algorithm,
        )


def _decode_hex(value: Any) -> bytes:
    if not isinstance(value, str) or not value:
        raise CorruptRecord()
    try:
        return bytes.fromhex(value)
    except ValueError:
        raise CorruptRecord() from None


@dataclass
class SecretRecord:
    """Persisted representation of one provider's credential."""

    id: ProviderId
    mode: StorageMode
    payload: Optional[EncryptedPayload] = None
    created_at: str = field(default_factory=utc_now)
    updated_at: str = field(default_factory=utc_now)

    def __post_init__(self):
        self.id = ProviderId.parse(self.id)
        self.mode = StorageMode.parse(self.mode)
        if self.mode is StorageMode.SESSION and self.payload is not None:
            raise ValueError("Session records must not carry an encrypted payload")
        if self.mode is StorageMode.ENCRYPTED and self.payload is None:
            raise ValueError("Encrypted records require a payload")

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "id": self.id.value,
            "mode": self.mode.value,
            "payload": self.payload.to_dict() if self.payload else None,
            "created_at": self.created_at,
            "updated_at": self.updated_at,
        }

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), sort_keys=True)

    @classmethod
    def from_dict(cls, data: Any) -> "SecretRecord":
        """
        Create from dictionary.

        Raises:
            CorruptRecord: the stored form cannot be turned into a record
        """
        if not isinstance(data, dict):
            raise CorruptRecord()
        try:
            provider = ProviderId.parse(data.get("id"))
            mode = StorageMode.parse(data.get("mode"))
        except ValueError:
            raise CorruptRecord() from None

        payload = None
        if mode is StorageMode.ENCRYPTED:
            payload = EncryptedPayload.from_dict(data.get("payload"))
        elif data.get("payload"):
            raise CorruptRecord()

        created_at = data.get("created_at") or utc_now()
        updated_at = data.get("updated_at") or created_at
        return cls(
            id=provider,
            mode=mode,
            payload=payload,
            created_at=str(created_at),
            updated_at=str(updated_at),
        )

    @classmethod
    def from_json(cls, text: str) -> "SecretRecord":
        try:
            data = json.loads(text)
        except (TypeError, ValueError):
            raise CorruptRecord() from None
        return cls.from_dict(data)
