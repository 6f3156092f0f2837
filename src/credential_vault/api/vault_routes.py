# Vault API - endpoints for the local settings UI
#
# - Store / forget a provider credential
# - Unlock every encrypted credential with the PIN
# - Wipe the vault
# - Status for display (never ciphertext or plaintext)
# - Probe a key against its provider before storing it

import logging
from typing import Dict, Optional

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel, Field

from ..core import EventSeverity, EventType, get_audit_logger
from ..probes import CredentialProbe
from ..vault import (
    ExecutionContext,
    InsecureContext,
    PersistenceDenied,
    PinMismatchOnConfirm,
    PinTooShort,
    ProviderId,
    StorageMode,
    UnlockFailed,
    Vault,
    VaultError,
    validate_new_pin,
)
from .security import request_context, verify_session_token

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/vault", tags=["vault"])

# ── Singletons ───────────────────────────────────────────────────────

_vault: Optional[Vault] = None
_probe: Optional[CredentialProbe] = None


def get_vault() -> Vault:
    """Lazy singleton, created on first use."""
    global _vault
    if _vault is None:
        _vault = Vault()
    return _vault


def get_probe() -> CredentialProbe:
    global _probe
    if _probe is None:
        _probe = CredentialProbe()
    return _probe


_ERROR_STATUS = {
    PinTooShort: status.HTTP_400_BAD_REQUEST,
    PinMismatchOnConfirm: status.HTTP_400_BAD_REQUEST,
    InsecureContext: status.HTTP_403_FORBIDDEN,
    PersistenceDenied: status.HTTP_409_CONFLICT,
    UnlockFailed: status.HTTP_401_UNAUTHORIZED,
}


def _http_error(exc: VaultError) -> HTTPException:
    code = _ERROR_STATUS.get(type(exc), status.HTTP_500_INTERNAL_SERVER_ERROR)
    logger.info("Vault request refused: %s", exc.code)
    return HTTPException(status_code=code, detail=str(exc))


# ── Request/Response Models ──────────────────────────────────────────


class StoreSecretRequest(BaseModel):
    plaintext: str = Field(..., min_length=1)
    mode: StorageMode = StorageMode.SESSION
    pin: Optional[str] = None
    pin_confirm: Optional[str] = None


class UnlockRequest(BaseModel):
    pin: str


class TestCredentialRequest(BaseModel):
    plaintext: str = Field(..., min_length=1)


class VaultStatusResponse(BaseModel):
    lock_state: str
    providers: Dict[str, str]


# ── Endpoints ────────────────────────────────────────────────────────


@router.get("/status", response_model=VaultStatusResponse)
async def get_vault_status(token: str = Depends(verify_session_token)):
    """Storage mode of every provider plus the lock state."""
    vault = get_vault()
    states = await vault.status()
    return VaultStatusResponse(
        lock_state=vault.lock_state.value,
        providers={provider.value: state.value for provider, state in states.items()},
    )


@router.post("/secrets/{provider_id}")
async def store_secret(
    provider_id: ProviderId,
    request: StoreSecretRequest,
    token: str = Depends(verify_session_token),
    context: ExecutionContext = Depends(request_context),
):
    """
    Store a provider credential.

    Encrypted mode requires a PIN of at least 4 characters. When
    pin_confirm is sent it must match the PIN.
    """
    try:
        if request.mode is StorageMode.ENCRYPTED and request.pin_confirm is not None:
            validate_new_pin(request.pin, request.pin_confirm)
        result = await get_vault().store(
            provider_id,
            request.plaintext,
            request.mode,
            request.pin,
            context=context,
        )
    except VaultError as e:
        raise _http_error(e)

    return {
        "success": True,
        "provider_id": result.provider_id.value,
        "mode": result.mode.value,
        "updated_at": result.updated_at,
    }


@router.post("/unlock")
async def unlock_vault(
    request: UnlockRequest,
    token: str = Depends(verify_session_token),
    context: ExecutionContext = Depends(request_context),
):
    """
    Decrypt every encrypted credential with the PIN.

    Returns the credentials that decrypted; records that did not are
    listed in ``failed``. If none decrypt the response is 401.
    """
    try:
        result = await get_vault().unlock_all(request.pin, context=context)
    except VaultError as e:
        raise _http_error(e)

    return {
        "success": True,
        "keys": {provider.value: key for provider, key in result.keys.items()},
        "failed": result.failed,
    }


@router.get("/keys")
async def get_keys(token: str = Depends(verify_session_token)):
    """Credentials currently available in this session."""
    keys = get_vault().get_keys()
    return {"keys": {provider.value: key for provider, key in keys.items()}}


@router.delete("/secrets/{provider_id}")
async def forget_secret(
    provider_id: ProviderId,
    token: str = Depends(verify_session_token),
):
    """Remove a provider credential. Idempotent."""
    removed = await get_vault().forget(provider_id)
    return {"success": True, "removed": removed}


@router.post("/wipe")
async def wipe_vault(token: str = Depends(verify_session_token)):
    """Destroy every stored credential. Irreversible."""
    removed = await get_vault().wipe()
    return {"success": True, "removed": removed}


@router.post("/lock")
async def lock_vault(token: str = Depends(verify_session_token)):
    """Forget every in-memory credential; encrypted records stay on disk."""
    get_vault().close()
    return {"success": True, "message": "Vault locked"}


@router.post("/secrets/{provider_id}/test")
async def test_secret(
    provider_id: ProviderId,
    request: TestCredentialRequest,
    token: str = Depends(verify_session_token),
):
    """Check a credential against its provider before storing it."""
    valid = await get_probe().test_credential(provider_id, request.plaintext)
    get_audit_logger().log_event(
        event_type=EventType.CREDENTIAL_TESTED,
        severity=EventSeverity.INFO,
        message=f"Credential probe: {provider_id.value}",
        details={"provider_id": provider_id.value, "valid": valid},
    )
    return {"provider_id": provider_id.value, "valid": valid}
