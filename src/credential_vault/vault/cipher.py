# Vault - Authenticated Encryption
#
# AES-256-GCM over a single credential, gated on a secure execution context.

import ipaddress
import os
from dataclasses import dataclass
from typing import Optional

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM

from .errors import AuthenticationFailure, InsecureContext

LOOPBACK_HOSTS = ("localhost", "127.0.0.1", "::1")


@dataclass(frozen=True)
class ExecutionContext:
    """
    Where a vault operation was requested from.

    Secure when:
    - the operation runs in-process (scheme "local"), or
    - the request arrived over HTTPS, or
    - the request came from a loopback host
    """

    scheme: str = "local"
    host: Optional[str] = None

    @classmethod
    def local(cls) -> "ExecutionContext":
        """In-process caller."""
        return cls(scheme="local")

    def is_secure(self) -> bool:
        if self.scheme in ("local", "https", "wss"):
            return True
        return _is_loopback(self.host)


def _is_loopback(host: Optional[str]) -> bool:
    if not host:
        return False
    host = host.strip("[]").lower()
    if host in LOOPBACK_HOSTS or host.endswith(".localhost"):
        return True
    try:
        return ipaddress.ip_address(host).is_loopback
    except ValueError:
        return False


class AEADCipher:
    """
    Encrypts/decrypts one credential with AES-256-GCM.

    Each encryption needs a fresh 12-byte nonce from new_nonce(). The
    ciphertext carries the 16-byte GCM tag, so decrypt() verifies
    integrity and the key in one step. Every failure mode of decrypt()
    collapses into AuthenticationFailure.
    """

    ALGORITHM = "AES-256-GCM"
    KEY_LENGTH = 32
    NONCE_LENGTH = 12  # 96-bit nonce for GCM (recommended)
    TAG_LENGTH = 16

    def __init__(self, context: Optional[ExecutionContext] = None):
        self.context = context or ExecutionContext.local()

    @staticmethod
    def new_nonce() -> bytes:
        """Generate a random nonce (must be unique per encryption)."""
        return os.urandom(AEADCipher.NONCE_LENGTH)

    def ensure_secure_context(self) -> None:
        """Raise InsecureContext unless the context is confirmed secure."""
        if not self.context.is_secure():
            raise InsecureContext()

    def encrypt(self, key: bytes, nonce: bytes, plaintext: bytes) -> bytes:
        """
        Encrypt plaintext.

        Returns:
            ciphertext with the authentication tag appended

        Raises:
            InsecureContext: context cannot be confirmed secure
            ValueError: key or nonce of the wrong length
        """
        self.ensure_secure_context()
        if len(key) != self.KEY_LENGTH:
            raise ValueError(f"Key must be {self.KEY_LENGTH} bytes")
        if len(nonce) != self.NONCE_LENGTH:
            raise ValueError(f"Nonce must be {self.NONCE_LENGTH} bytes")
        return AESGCM(key).encrypt(nonce, plaintext, None)

    def decrypt(self, key: bytes, nonce: bytes, ciphertext: bytes) -> bytes:
        """
        Decrypt and verify ciphertext.

        Raises:
            InsecureContext: context cannot be confirmed secure
            AuthenticationFailure: wrong key, tampered data, or malformed input
        """
        self.ensure_secure_context()
        if (
            len(key) != self.KEY_LENGTH
            or len(nonce) != self.NONCE_LENGTH
            or len(ciphertext) < self.TAG_LENGTH
        ):
            raise AuthenticationFailure()
        try:
            return AESGCM(key).decrypt(nonce, ciphertext, None)
        except InvalidTag:
            raise AuthenticationFailure() from None
