# Vault - Credential Vault Manager
#
# Orchestrates KeyDerivation + AEADCipher + VaultStore.
# Callers only ever see plaintext credentials or typed VaultErrors.
#
# Per provider:   absent -> session -> encrypted
# Whole vault:    locked <-> unlocked

import asyncio
import logging
import sqlite3
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional, Tuple

from ..core import EventSeverity, EventType, get_audit_logger
from .cipher import AEADCipher, ExecutionContext
from .errors import (
    AuthenticationFailure,
    CorruptRecord,
    InsecureContext,
    KeyDerivationError,
    PersistenceDenied,
    PinTooShort,
    UnlockFailed,
)
from .kdf import KeyDerivation
from .persistence import FilesystemPersistenceGrant, PersistenceGrant
from .records import EncryptedPayload, ProviderId, SecretRecord, StorageMode, utc_now
from .store import SQLiteVaultStore, VaultStore
from .validation import MIN_PIN_LENGTH

logger = logging.getLogger(__name__)


class ProviderState(str, Enum):
    """What the vault holds for one provider."""
    ABSENT = "absent"
    SESSION = "session"
    ENCRYPTED = "encrypted"


class LockState(str, Enum):
    LOCKED = "locked"
    UNLOCKED = "unlocked"


@dataclass
class StoreResult:
    provider_id: ProviderId
    mode: StorageMode
    updated_at: str


@dataclass
class UnlockResult:
    """Outcome of unlock_all: decrypted keys plus the providers that were skipped."""
    keys: Dict[ProviderId, str] = field(default_factory=dict)
    failed: List[str] = field(default_factory=list)


class Vault:
    """
    Process-scoped credential vault.

    Security:
    - Each encrypted credential has its own random salt and nonce
    - PINs and derived keys are never stored or logged
    - Session-mode credentials exist only in this object's memory and
      vanish with it
    - Wrong PIN and corrupted records fail identically

    Concurrency:
    - KDF, cipher and storage work runs on worker threads
    - store/forget for the same provider are serialized by a per-provider
      lock; different providers proceed in parallel
    - unlock_all takes no lock; a provider stored, forgotten or wiped
      while it runs is skipped rather than resurrected
    """

    MIN_PIN_LENGTH = MIN_PIN_LENGTH

    def __init__(
        self,
        store: Optional[VaultStore] = None,
        persistence: Optional[PersistenceGrant] = None,
        iterations: int = KeyDerivation.DEFAULT_ITERATIONS,
    ):
        """
        Initialize the vault.

        Args:
            store: Durable record store (default: SQLiteVaultStore at
                   CREDENTIAL_VAULT_DB)
            persistence: Host permission for durable writes (default:
                         FilesystemPersistenceGrant)
            iterations: PBKDF2 work factor for newly encrypted records
        """
        self.records = store or SQLiteVaultStore()
        self.persistence = persistence or FilesystemPersistenceGrant()
        self.iterations = iterations

        self._session_keys: Dict[ProviderId, str] = {}
        self._unlocked_keys: Dict[ProviderId, str] = {}
        self._lock_state = LockState.LOCKED
        self._persistence_granted = False
        self._provider_locks = {provider: asyncio.Lock() for provider in ProviderId}
        # Bumped whenever a provider's held key or record changes
        self._generations = {provider: 0 for provider in ProviderId}

        self.logger = get_audit_logger()

    # ── State ───────────────────────────────────────────────────────

    @property
    def lock_state(self) -> LockState:
        return self._lock_state

    @property
    def is_unlocked(self) -> bool:
        return self._lock_state is LockState.UNLOCKED

    async def status(self) -> Dict[ProviderId, ProviderState]:
        """
        Storage state of every provider, for display.

        Never includes ciphertext or plaintext.
        """
        entries = await self._storage(self.records.list_entries)
        at_rest = set()
        for provider, _ in entries:
            try:
                at_rest.add(ProviderId.parse(provider))
            except ValueError:
                logger.warning("Ignoring stored record with unknown provider id")

        states = {}
        for provider in ProviderId:
            if provider in at_rest:
                states[provider] = ProviderState.ENCRYPTED
            elif provider in self._session_keys:
                states[provider] = ProviderState.SESSION
            else:
                states[provider] = ProviderState.ABSENT
        return states

    def get_keys(self) -> Dict[ProviderId, str]:
        """Plaintext credentials currently available to the application."""
        keys = dict(self._unlocked_keys)
        keys.update(self._session_keys)
        return keys

    # ── Operations ──────────────────────────────────────────────────

    async def store(
        self,
        provider_id,
        plaintext: str,
        mode,
        pin: Optional[str] = None,
        *,
        context: Optional[ExecutionContext] = None,
    ) -> StoreResult:
        """
        Store a provider credential under the chosen storage mode.

        session:   drop any durable record, keep plaintext in memory only
        encrypted: derive a key from the PIN, encrypt, then publish the
                   record with a single write (replacing any previous one)

        Raises:
            PinTooShort: encrypted mode with a PIN under 4 characters
            InsecureContext: encrypted mode outside a secure context
            PersistenceDenied: the host refused durable storage
            ValueError: unknown provider/mode or empty credential
        """
        provider_id = ProviderId.parse(provider_id)
        mode = StorageMode.parse(mode)
        if not plaintext:
            raise ValueError("Credential must not be empty")

        if mode is StorageMode.SESSION:
            async with self._provider_locks[provider_id]:
                await self._storage(self.records.delete, provider_id)
                self._generations[provider_id] += 1
                self._unlocked_keys.pop(provider_id, None)
                self._session_keys[provider_id] = plaintext
            return self._stored(provider_id, mode, utc_now())

        if pin is None or len(pin) < self.MIN_PIN_LENGTH:
            raise PinTooShort()

        cipher = AEADCipher(context)
        self._check_context(cipher, "store")

        async with self._provider_locks[provider_id]:
            await self._ensure_persistence()

            created_at = await self._storage(self._existing_created_at, provider_id)
            record = await self._seal(cipher, provider_id, plaintext, pin, created_at)
            # Publish only after KDF and AEAD both succeeded
            await self._storage(self.records.put, record)
            self._generations[provider_id] += 1

            self._session_keys.pop(provider_id, None)
            self._unlocked_keys[provider_id] = plaintext

        return self._stored(provider_id, mode, record.updated_at)

    async def unlock_all(
        self,
        pin: str,
        *,
        context: Optional[ExecutionContext] = None,
    ) -> UnlockResult:
        """
        Decrypt every encrypted record with the PIN.

        Records are attempted independently: one that fails (wrong PIN
        for that record, or corruption) is skipped and the rest still
        unlock. A provider whose record changed while decrypting is
        skipped as well.

        Returns:
            UnlockResult with the decrypted keys and the skipped providers

        Raises:
            InsecureContext: not running in a secure context
            UnlockFailed: no record could be decrypted
        """
        cipher = AEADCipher(context)
        self._check_context(cipher, "unlock")

        generations = dict(self._generations)
        entries = await self._storage(self.records.list_entries)
        if pin:
            outcomes = await asyncio.gather(
                *(self._try_open(cipher, provider, text, pin) for provider, text in entries)
            )
        else:
            outcomes = [(provider, None) for provider, _ in entries]

        result = UnlockResult()
        for provider, plaintext in outcomes:
            # Stored, forgotten or wiped while decrypting: the result is stale
            if plaintext is None or self._changed_since(provider, generations):
                result.failed.append(provider)
            else:
                result.keys[ProviderId(provider)] = plaintext

        if not result.keys:
            self.logger.log_vault_event(
                EventType.VAULT_UNLOCK_FAILED,
                "Unlock failed: no record could be decrypted",
                details={"records": len(entries)},
                severity=EventSeverity.ALERT,
            )
            raise UnlockFailed()

        self._unlocked_keys.update(result.keys)
        self._lock_state = LockState.UNLOCKED

        self.logger.log_vault_event(
            EventType.VAULT_UNLOCKED,
            "Vault unlocked",
            details={
                "unlocked": sorted(p.value for p in result.keys),
                "skipped": len(result.failed),
            },
        )
        return result

    async def forget(self, provider_id) -> bool:
        """
        Remove everything held for a provider (session or encrypted).

        Idempotent. Returns True if anything was removed.
        """
        provider_id = ProviderId.parse(provider_id)
        async with self._provider_locks[provider_id]:
            removed = await self._storage(self.records.delete, provider_id)
            self._generations[provider_id] += 1
            removed = self._session_keys.pop(provider_id, None) is not None or removed
            self._unlocked_keys.pop(provider_id, None)

        if removed:
            self.logger.log_vault_event(
                EventType.SECRET_FORGOTTEN,
                f"Credential forgotten: {provider_id.value}",
                details={"provider_id": provider_id.value},
            )
        return removed

    async def wipe(self) -> int:
        """
        Destroy every encrypted record and every in-memory credential.

        Irreversible. Every provider returns to absent and the vault to
        locked. Returns the number of durable records removed.
        """
        locks = [self._provider_locks[provider] for provider in ProviderId]
        for lock in locks:
            await lock.acquire()
        try:
            removed = await self._storage(self.records.clear_all)
            self._drop_memory()
        finally:
            for lock in reversed(locks):
                lock.release()

        self.logger.log_vault_event(
            EventType.VAULT_WIPED,
            "All stored credentials wiped",
            details={"removed": removed},
            severity=EventSeverity.CRITICAL,
        )
        return removed

    def close(self) -> None:
        """Drop every in-memory credential and lock. Durable records stay."""
        self._drop_memory()

        self.logger.log_vault_event(EventType.VAULT_LOCKED, "Vault locked")

    # ── Internals ───────────────────────────────────────────────────

    def _check_context(self, cipher: AEADCipher, operation: str) -> None:
        try:
            cipher.ensure_secure_context()
        except InsecureContext:
            self.logger.log_vault_event(
                EventType.INSECURE_CONTEXT,
                f"Refused {operation} outside a secure context",
                details={"scheme": cipher.context.scheme, "host": cipher.context.host},
                severity=EventSeverity.ALERT,
            )
            raise

    async def _ensure_persistence(self) -> None:
        if self._persistence_granted:
            return
        granted = await asyncio.to_thread(self.persistence.request_durable_persistence)
        if not granted:
            self.logger.log_vault_event(
                EventType.PERSISTENCE_DENIED,
                "Host refused durable storage",
                severity=EventSeverity.ALERT,
            )
            raise PersistenceDenied()
        self._persistence_granted = True

    async def _storage(self, operation, *args):
        """Run a store call on a worker thread; audit storage failures."""
        try:
            return await asyncio.to_thread(operation, *args)
        except (sqlite3.Error, OSError) as e:
            self.logger.log_vault_event(
                EventType.VAULT_ERROR,
                f"Storage failure during {operation.__name__}",
                details={"error": type(e).__name__},
                severity=EventSeverity.CRITICAL,
            )
            raise

    def _drop_memory(self) -> None:
        self._session_keys.clear()
        self._unlocked_keys.clear()
        self._lock_state = LockState.LOCKED
        for provider in ProviderId:
            self._generations[provider] += 1

    def _changed_since(self, provider: str, generations: Dict[ProviderId, int]) -> bool:
        provider_id = ProviderId(provider)
        return self._generations[provider_id] != generations[provider_id]

    def _existing_created_at(self, provider_id: ProviderId) -> str:
        try:
            existing = self.records.get(provider_id)
        except CorruptRecord:
            existing = None
        return existing.created_at if existing else utc_now()

    async def _seal(
        self,
        cipher: AEADCipher,
        provider_id: ProviderId,
        plaintext: str,
        pin: str,
        created_at: str,
    ) -> SecretRecord:
        salt = KeyDerivation.generate_salt()
        nonce = cipher.new_nonce()
        key = await KeyDerivation.derive_async(pin, salt, self.iterations)
        ciphertext = cipher.encrypt(key, nonce, plaintext.encode("utf-8"))
        del key

        payload = EncryptedPayload(
            salt=salt,
            nonce=nonce,
            ciphertext=ciphertext,
            iterations=self.iterations,
        )
        return SecretRecord(
            id=provider_id,
            mode=StorageMode.ENCRYPTED,
            payload=payload,
            created_at=created_at,
            updated_at=utc_now(),
        )

    @staticmethod
    async def _open(cipher: AEADCipher, record: SecretRecord, pin: str) -> str:
        payload = record.payload
        key = await KeyDerivation.derive_async(pin, payload.salt, payload.iterations)
        plaintext = cipher.decrypt(key, payload.nonce, payload.ciphertext)
        del key
        try:
            return plaintext.decode("utf-8")
        except UnicodeDecodeError:
            raise CorruptRecord() from None

    async def _try_open(
        self,
        cipher: AEADCipher,
        provider: str,
        text: str,
        pin: str,
    ) -> Tuple[str, Optional[str]]:
        try:
            record = SecretRecord.from_json(text)
            if record.id.value != provider:
                raise CorruptRecord()
            return provider, await self._open(cipher, record, pin)
        except (AuthenticationFailure, CorruptRecord, KeyDerivationError):
            # Same message for both: the cause must not be distinguishable
            logger.info("Record for %s could not be decrypted", provider)
            self.logger.log_vault_event(
                EventType.RECORD_SKIPPED,
                "Record could not be decrypted",
                details={"provider_id": provider},
                severity=EventSeverity.INVESTIGATE,
            )
            return provider, None

    def _stored(self, provider_id: ProviderId, mode: StorageMode, updated_at: str) -> StoreResult:
        self.logger.log_vault_event(
            EventType.SECRET_STORED,
            f"Credential stored: {provider_id.value} ({mode.value})",
            details={"provider_id": provider_id.value, "mode": mode.value},
        )
        return StoreResult(provider_id=provider_id, mode=mode, updated_at=updated_at)
