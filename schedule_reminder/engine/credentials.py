"""
Schedule Reminder Credential Manager — Encrypted parameter store with
environment-variable fallback, using Fernet symmetric encryption.

Provides:
    - CredentialManager: get/set/delete named credentials (API keys, database IDs)
    - Parameter paths: NOTION_API_KEY → {prefix}/param-notion-api-key
    - Key derivation from REMINDER_SECRET_KEY env var or an explicit secret

Security model:
    - The store is a single Fernet token on disk wrapping a JSON object
    - Decrypted only at runtime, in-memory, for the duration of the lookup
    - Environment variables are the fallback, never written back to the store
"""

from __future__ import annotations

import base64
import hashlib
import json
import logging
import os
from pathlib import Path
from typing import Any, Dict, Optional

from cryptography.fernet import Fernet, InvalidToken

from schedule_reminder.engine.errors import ReminderCredentialError

logger = logging.getLogger("schedule_reminder.engine.credentials")

# Default secret key source (override via REMINDER_SECRET_KEY env var)
_DEFAULT_SECRET_KEY = "schedule-reminder-dev-key-change-in-production"


class CredentialManager:
    """
    Resolves credentials from the encrypted parameter store, falling back to
    the environment.

    Usage:
        manager = CredentialManager(store_path=".reminder/secrets.enc")
        manager.set_credential("NOTION_API_KEY", "secret_...")
        api_key = manager.get_credential("NOTION_API_KEY")
    """

    def __init__(
        self,
        store_path: Optional[str] = None,
        secret_key: Optional[str] = None,
        prefix: str = "/schedule-reminder",
    ):
        self._store_path = Path(store_path) if store_path else None
        self._prefix = prefix.rstrip("/")
        self._fernet = self._build_fernet(secret_key)

    @staticmethod
    def _build_fernet(secret_key: Optional[str] = None) -> Fernet:
        """
        Build a Fernet instance from a secret key.

        Uses REMINDER_SECRET_KEY env var if available, otherwise falls back to
        the provided secret_key or the default dev key.
        """
        key_source = (
            os.environ.get("REMINDER_SECRET_KEY")
            or secret_key
            or _DEFAULT_SECRET_KEY
        )

        # Fernet requires a URL-safe base64 32-byte key
        derived = hashlib.sha256(key_source.encode("utf-8")).digest()
        return Fernet(base64.urlsafe_b64encode(derived))

    def parameter_path(self, name: str) -> str:
        """NOTION_API_KEY → /schedule-reminder/param-notion-api-key"""
        key = "param-" + name.replace("_", "-").lower()
        return f"{self._prefix}/{key}"

    # -----------------------------------------------------------------------
    # Encrypt / Decrypt
    # -----------------------------------------------------------------------

    def encrypt(self, parameters: Dict[str, Any]) -> bytes:
        """Encrypt a parameters dict to a Fernet token."""
        payload = json.dumps(parameters, sort_keys=True).encode("utf-8")
        return self._fernet.encrypt(payload)

    def decrypt(self, encrypted: bytes) -> Dict[str, Any]:
        """
        Decrypt a Fernet token back to the parameters dict.

        Raises:
            ReminderCredentialError: If decryption fails (wrong key, corrupted data).
        """
        try:
            decrypted = self._fernet.decrypt(encrypted)
            return json.loads(decrypted.decode("utf-8"))
        except InvalidToken:
            raise ReminderCredentialError(
                "Failed to decrypt parameter store — encryption key may have changed",
                store_path=str(self._store_path),
            )
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            raise ReminderCredentialError(
                f"Corrupted parameter store: {e}",
                store_path=str(self._store_path),
            )

    # -----------------------------------------------------------------------
    # Store operations
    # -----------------------------------------------------------------------

    def _read_store(self) -> Dict[str, Any]:
        if self._store_path is None or not self._store_path.exists():
            return {}
        return self.decrypt(self._store_path.read_bytes())

    def _write_store(self, parameters: Dict[str, Any]) -> None:
        if self._store_path is None:
            raise ReminderCredentialError("No store path configured, cannot store credentials")
        self._store_path.parent.mkdir(parents=True, exist_ok=True)
        self._store_path.write_bytes(self.encrypt(parameters))

    def set_credential(self, name: str, value: str) -> None:
        """Encrypt and store a credential under its parameter path."""
        parameters = self._read_store()
        parameters[self.parameter_path(name)] = value
        self._write_store(parameters)
        logger.info(f"Stored credential: {self.parameter_path(name)}")

    def delete_credential(self, name: str) -> bool:
        """Remove a stored credential. Returns True if it existed."""
        parameters = self._read_store()
        if parameters.pop(self.parameter_path(name), None) is None:
            return False
        self._write_store(parameters)
        logger.info(f"Deleted credential: {self.parameter_path(name)}")
        return True

    def get_stored(self, name: str) -> Optional[str]:
        """Look a credential up in the parameter store only."""
        value = self._read_store().get(self.parameter_path(name))
        return value or None

    def get_credential(self, name: str) -> str:
        """
        Resolve a credential: parameter store first, then environment.

        Raises:
            ReminderCredentialError: If found in neither, or the store is unreadable.
        """
        value = self.get_stored(name)
        if value:
            return value

        env_value = os.environ.get(name)
        if env_value:
            logger.warning(
                f"Using environment variable {name} as fallback "
                f"(not in parameter store at {self.parameter_path(name)})"
            )
            return env_value

        raise ReminderCredentialError(
            f"Credential {name} not found in parameter store or environment",
            credential_name=name,
        )
