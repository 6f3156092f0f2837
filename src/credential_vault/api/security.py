# Vault API - Request Security
#
# Two FastAPI dependencies guard the vault routes:
#   verify_session_token  per-process secret in X-Session-Token
#   request_context       where the request came from (secure or not)
#
# The token keeps other local processes and web pages from reading
# credentials through the API. It is regenerated on every start.

import secrets
from typing import Optional

from fastapi import Header, HTTPException, Request, status

from ..vault import ExecutionContext

_SESSION_TOKEN: Optional[str] = None


def initialize_session_token() -> str:
    """Create this process's 256-bit session token and return it."""
    global _SESSION_TOKEN
    _SESSION_TOKEN = secrets.token_urlsafe(32)
    return _SESSION_TOKEN


def get_session_token() -> str:
    """
    Current session token, for the local UI bootstrap endpoint.

    Raises:
        RuntimeError: the server has not started yet
    """
    if _SESSION_TOKEN is None:
        raise RuntimeError("Session token has not been created yet")
    return _SESSION_TOKEN


async def verify_session_token(x_session_token: Optional[str] = Header(None)) -> str:
    """
    Reject requests without the session token.

    503 until startup has created a token, 401 for a missing or wrong one.
    """
    if _SESSION_TOKEN is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Vault API is starting"
        )
    if not x_session_token:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing X-Session-Token header"
        )
    # compare_digest keeps the comparison time independent of the input
    if not secrets.compare_digest(x_session_token.encode(), _SESSION_TOKEN.encode()):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid session token"
        )
    return x_session_token


async def request_context(request: Request) -> ExecutionContext:
    """
    Describe where a request came from.

    HTTPS requests and requests from a loopback peer count as a secure
    context; anything else is refused for cryptographic operations. The
    peer address is used, not the Host header, which the client controls.
    """
    peer = request.client.host if request.client else None
    return ExecutionContext(scheme=request.url.scheme, host=peer)
