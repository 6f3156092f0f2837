# Vault - Durable Storage Permission
#
# The host decides whether encrypted credentials may be written to disk.
# The vault asks once before its first encrypted write.

import logging
import os
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Optional, Union

from ..core import config

logger = logging.getLogger(__name__)


class PersistenceGrant(ABC):
    """Host collaborator answering "may the vault persist data?"."""

    @abstractmethod
    def request_durable_persistence(self) -> bool:
        """Return True if durable storage is allowed."""


class StaticPersistenceGrant(PersistenceGrant):
    """Fixed answer, for embedding hosts that decide up front."""

    def __init__(self, granted: bool = True):
        self.granted = granted
        self.requests = 0

    def request_durable_persistence(self) -> bool:
        self.requests += 1
        return self.granted


class FilesystemPersistenceGrant(PersistenceGrant):
    """
    Grants persistence when the data directory is usable.

    Refuses when:
    - CREDENTIAL_VAULT_ALLOW_PERSISTENCE is switched off
    - the directory cannot be created
    - the directory is not writable by this process
    """

    def __init__(
        self,
        data_dir: Optional[Union[str, Path]] = None,
        allowed: Optional[bool] = None,
    ):
        self.data_dir = Path(data_dir) if data_dir else config.DATA_DIR
        self.allowed = config.ALLOW_PERSISTENCE if allowed is None else allowed

    def request_durable_persistence(self) -> bool:
        if not self.allowed:
            logger.info("Durable persistence disabled by host configuration")
            return False
        try:
            self.data_dir.mkdir(mode=0o700, parents=True, exist_ok=True)
        except OSError as e:
            logger.warning(f"Cannot create vault data directory {self.data_dir}: {e}")
            return False
        if not os.access(self.data_dir, os.W_OK):
            logger.warning(f"Vault data directory {self.data_dir} is not writable")
            return False
        return True
