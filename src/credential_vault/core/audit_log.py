# Credential Vault - Audit Logging
#
# Append-only structured log of every security-relevant vault event.
# Events carry provider ids, modes and counts only. PINs, derived keys,
# plaintext credentials, salts, nonces and ciphertext are never logged.

import logging
import os
import socket
import sys
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Optional
from uuid import uuid4

import structlog

from . import config


class EventType(str, Enum):
    """Types of security events that can be logged."""
    # Vault Events
    SECRET_STORED = "vault.secret.stored"
    SECRET_FORGOTTEN = "vault.secret.forgotten"
    VAULT_UNLOCKED = "vault.unlocked"
    VAULT_UNLOCK_FAILED = "vault.unlock.failed"
    RECORD_SKIPPED = "vault.record.skipped"
    VAULT_WIPED = "vault.wiped"
    VAULT_LOCKED = "vault.locked"
    PERSISTENCE_DENIED = "vault.persistence.denied"
    INSECURE_CONTEXT = "vault.insecure_context"
    VAULT_ERROR = "vault.error"

    # Credential probes
    CREDENTIAL_TESTED = "credential.tested"

    # System Events
    SYSTEM_START = "system.start"
    SYSTEM_STOP = "system.stop"


class EventSeverity(str, Enum):
    """
    Severity levels for security events.

    - INFO: Normal activity, logged only
    - INVESTIGATE: Something unusual worth a second look
    - ALERT: An operation was refused
    - CRITICAL: Data was destroyed or the vault is in an unexpected state
    """
    INFO = "info"
    INVESTIGATE = "investigate"
    ALERT = "alert"
    CRITICAL = "critical"


AUDIT_LOGGER_NAME = "credential_vault.audit"


class AuditLogger:
    """
    Append-only audit trail for the vault.

    Every event becomes one JSON line in ``<log_dir>/audit_YYYY-MM-DD.log``
    carrying an event id, UTC timestamp, severity and host context.
    Callers pass provider ids, modes and counts as details, nothing secret.
    """

    def __init__(self, log_dir: Optional[Path] = None):
        """
        Args:
            log_dir: Directory for audit logs (default: CREDENTIAL_VAULT_AUDIT_DIR)
        """
        self.log_dir = Path(log_dir or config.AUDIT_DIR)
        self.log_dir.mkdir(parents=True, exist_ok=True)

        structlog.configure(
            processors=[
                structlog.stdlib.add_log_level,
                structlog.stdlib.add_logger_name,
                structlog.processors.TimeStamper(fmt="iso"),
                structlog.processors.StackInfoRenderer(),
                structlog.processors.format_exc_info,
                structlog.processors.JSONRenderer(),
            ],
            wrapper_class=structlog.stdlib.BoundLogger,
            context_class=dict,
            logger_factory=structlog.stdlib.LoggerFactory(),
            cache_logger_on_first_use=True,
        )

        self._file_handler = self._open_daily_file()
        self.logger = structlog.get_logger(AUDIT_LOGGER_NAME)

    def _open_daily_file(self) -> logging.FileHandler:
        self.log_file = self.log_dir / f"audit_{datetime.now():%Y-%m-%d}.log"

        handler = logging.FileHandler(self.log_file, mode="a", encoding="utf-8")
        handler.setLevel(logging.INFO)
        # structlog already rendered the JSON line
        handler.setFormatter(logging.Formatter("%(message)s"))

        stdlib_logger = logging.getLogger(AUDIT_LOGGER_NAME)
        stdlib_logger.addHandler(handler)
        stdlib_logger.setLevel(logging.INFO)
        return handler

    def close(self) -> None:
        """Detach and close the log file."""
        logging.getLogger(AUDIT_LOGGER_NAME).removeHandler(self._file_handler)
        self._file_handler.close()

    def log_event(
        self,
        event_type: EventType,
        severity: EventSeverity,
        message: str,
        details: Optional[Dict[str, Any]] = None,
        user_context: Optional[Dict[str, Any]] = None,
    ) -> str:
        """
        Append one event and return its id.

        Args:
            event_type: What happened
            severity: How much attention it deserves
            message: Human-readable summary
            details: Provider ids, modes, counts (never key material)
            user_context: Who asked (defaults to OS user and host)
        """
        event_id = str(uuid4())
        self.logger.info(
            "security_event",
            event_id=event_id,
            event_type=event_type.value,
            severity=severity.value,
            message=message,
            timestamp=datetime.now(timezone.utc).isoformat(),
            details=details or {},
            user_context=user_context or self._host_context(),
        )
        return event_id

    def log_vault_event(
        self,
        event_type: EventType,
        message: str,
        details: Optional[Dict[str, Any]] = None,
        severity: EventSeverity = EventSeverity.INFO,
    ) -> str:
        """Vault-scoped shorthand for log_event (INFO unless told otherwise)."""
        return self.log_event(
            event_type=event_type,
            severity=severity,
            message=f"Vault: {message}",
            details=details,
        )

    @staticmethod
    def _host_context() -> Dict[str, Any]:
        return {
            "os_user": os.getenv("USERNAME") or os.getenv("USER"),
            "hostname": socket.gethostname(),
            "platform": sys.platform,
        }


_audit_logger: Optional[AuditLogger] = None


def get_audit_logger() -> AuditLogger:
    """Process-wide AuditLogger, created on first use."""
    global _audit_logger
    if _audit_logger is None:
        _audit_logger = AuditLogger()
    return _audit_logger


def log_security_event(
    event_type: EventType,
    severity: EventSeverity,
    message: str,
    **kwargs
) -> str:
    """
    Log through the process-wide AuditLogger.

    Usage:
        log_security_event(
            EventType.SYSTEM_STOP,
            EventSeverity.INFO,
            "Credential Vault backend stopped",
        )
    """
    return get_audit_logger().log_event(event_type, severity, message, **kwargs)
