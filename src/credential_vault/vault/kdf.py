# Vault - Key Derivation
#
# PIN + random salt -> 256-bit AES key (PBKDF2-HMAC-SHA256)

import asyncio
import os
from typing import Union

from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.kdf.pbkdf2 import PBKDF2HMAC

from .errors import KeyDerivationError


class KeyDerivation:
    """
    Derives single-use symmetric keys from a user PIN.

    Flow:
    1. Caller generates a fresh 16-byte salt per encryption
    2. PBKDF2-HMAC-SHA256 stretches PIN + salt into a 256-bit key
    3. The key feeds exactly one AEADCipher operation and is dropped

    The iteration count is a parameter rather than a global so records
    written under an older default stay decryptable: callers pass the
    value stored alongside the ciphertext.
    """

    ALGORITHM = "PBKDF2-HMAC-SHA256"
    DEFAULT_ITERATIONS = 100_000
    MAX_ITERATIONS = 10_000_000  # above this a record is treated as damaged
    KEY_LENGTH = 32  # 256 bits for AES-256
    SALT_LENGTH = 16

    @staticmethod
    def generate_salt() -> bytes:
        """Generate cryptographically random salt."""
        return os.urandom(KeyDerivation.SALT_LENGTH)

    @staticmethod
    def derive(
        pin: Union[str, bytes],
        salt: bytes,
        iterations: int = DEFAULT_ITERATIONS,
    ) -> bytes:
        """
        Derive an encryption key from a PIN.

        PIN length policy is not enforced here; the vault checks the
        minimum length before calling.

        Args:
            pin: User PIN (str is UTF-8 encoded)
            salt: Exactly 16 random bytes
            iterations: PBKDF2 work factor

        Returns:
            256-bit key

        Raises:
            KeyDerivationError: empty PIN, wrong salt length, or iterations
                outside 1..MAX_ITERATIONS
        """
        if isinstance(pin, str):
            pin = pin.encode("utf-8")
        if not pin:
            raise KeyDerivationError("PIN must not be empty")
        if not isinstance(salt, (bytes, bytearray)) or len(salt) != KeyDerivation.SALT_LENGTH:
            raise KeyDerivationError(
                f"Salt must be exactly {KeyDerivation.SALT_LENGTH} bytes"
            )
        if (
            isinstance(iterations, bool)
            or not isinstance(iterations, int)
            or not 1 <= iterations <= KeyDerivation.MAX_ITERATIONS
        ):
            raise KeyDerivationError(
                f"Iterations must be between 1 and {KeyDerivation.MAX_ITERATIONS}"
            )

        kdf = PBKDF2HMAC(
            algorithm=hashes.SHA256(),
            length=KeyDerivation.KEY_LENGTH,
            salt=bytes(salt),
            iterations=iterations,
        )
        return kdf.derive(pin)

    @staticmethod
    async def derive_async(
        pin: Union[str, bytes],
        salt: bytes,
        iterations: int = DEFAULT_ITERATIONS,
    ) -> bytes:
        """Run derive() on a worker thread so the event loop stays responsive."""
        return await asyncio.to_thread(KeyDerivation.derive, pin, salt, iterations)
