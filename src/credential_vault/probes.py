"""
Credential probes: does this API key work against its provider?

One request per probe, no retries. The vault never calls a probe; the
caller checks a key before committing it.
"""

import logging
from typing import Dict, Optional

import httpx

from .core import config
from .vault.records import ProviderId

logger = logging.getLogger(__name__)

USER_AGENT = "CredentialVault/0.1"

# Cheapest authenticated endpoint per provider: list available models.
PROBE_ENDPOINTS: Dict[ProviderId, str] = {
    ProviderId.GEMINI: "https://generativelanguage.googleapis.com/v1beta/models",
    ProviderId.GROK: "https://api.x.ai/v1/models",
    ProviderId.OPENAI: "https://api.openai.com/v1/models",
}


def _auth_headers(provider_id: ProviderId, api_key: str) -> Dict[str, str]:
    if provider_id is ProviderId.GEMINI:
        return {"x-goog-api-key": api_key}
    return {"Authorization": f"Bearer {api_key}"}


class CredentialProbe:
    """
    Checks provider API keys with a single authenticated request.

    Args:
        timeout: Seconds per request (default: CREDENTIAL_VAULT_PROBE_TIMEOUT)
        transport: Optional httpx transport (tests use httpx.MockTransport)
    """

    def __init__(
        self,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.timeout = timeout if timeout is not None else config.PROBE_TIMEOUT_SECONDS
        self._transport = transport

    async def test_credential(self, provider_id, api_key: str) -> bool:
        """
        Return True if the provider accepts the key.

        Any transport error, timeout or non-2xx response is False.
        """
        provider_id = ProviderId.parse(provider_id)
        if not api_key:
            return False

        headers = {"Accept": "application/json", "User-Agent": USER_AGENT}
        headers.update(_auth_headers(provider_id, api_key))

        try:
            async with httpx.AsyncClient(
                timeout=self.timeout,
                transport=self._transport,
                follow_redirects=True,
            ) as client:
                resp = await client.get(PROBE_ENDPOINTS[provider_id], headers=headers)
        except httpx.HTTPError as exc:
            logger.info("Credential probe for %s failed: %s", provider_id.value, type(exc).__name__)
            return False

        if not resp.is_success:
            logger.info(
                "Credential probe for %s rejected (HTTP %d)", provider_id.value, resp.status_code
            )
        return resp.is_success
