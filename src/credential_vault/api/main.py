# Vault API - FastAPI application
#
# Local REST API consumed by the settings UI. Binds to loopback by default
# so every request arrives in a secure context.

import logging

import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .. import __version__
from ..core import EventSeverity, EventType, get_audit_logger
from .security import get_session_token, initialize_session_token
from .vault_routes import router as vault_router

logger = logging.getLogger(__name__)

app = FastAPI(
    title="Credential Vault API",
    description="Local vault for third-party provider API keys",
    version=__version__,
)

# Local origins only; remote pages must never reach the vault.
_allowed_origins = [
    "http://localhost:3000", "http://127.0.0.1:3000",
    "http://localhost:5173", "http://127.0.0.1:5173",
    "http://localhost:8000", "http://127.0.0.1:8000",
]
app.add_middleware(
    CORSMiddleware,
    allow_origins=_allowed_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(vault_router)


@app.on_event("startup")
async def startup_event():
    """Generate the session token for this backend instance."""
    initialize_session_token()
    get_audit_logger().log_event(
        event_type=EventType.SYSTEM_START,
        severity=EventSeverity.INFO,
        message="Credential Vault API started",
        details={"version": __version__},
    )


@app.get("/api/session")
async def get_session():
    """
    Get session token for API authentication.

    Unprotected because the frontend needs the token to authenticate.
    The token is random, changes on every restart, and the API only
    listens on localhost.
    """
    return {"session_token": get_session_token()}


@app.get("/api")
async def api_info():
    """API information endpoint."""
    return {
        "name": "Credential Vault API",
        "version": __version__,
        "status": "operational",
    }


def start_api_server(host: str = "127.0.0.1", port: int = 8000):
    """
    Start FastAPI server.

    Args:
        host: Host to bind to (default: localhost only for security)
        port: Port to listen on
    """
    if host not in ("127.0.0.1", "localhost", "::1"):
        logger.warning(
            "Binding to %s: plain-HTTP requests from other hosts will be refused "
            "encryption (insecure context)", host
        )
    uvicorn.run(app, host=host, port=port, log_level="info")
