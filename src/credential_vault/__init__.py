# Credential Vault - Main Package
#
# Protects third-party provider API keys at rest on an untrusted device and
# hands the right subset of them to the application after a PIN unlock.

__version__ = "0.1.0"
__author__ = "Credential Vault Team"
__description__ = "PIN-protected local vault for provider API keys"

from .core import EventSeverity, EventType, get_audit_logger
from .vault import ProviderId, StorageMode, Vault

__all__ = [
    "__version__",
    "Vault",
    "ProviderId",
    "StorageMode",
    "EventType",
    "EventSeverity",
    "get_audit_logger",
]
