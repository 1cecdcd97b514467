"""Local storage for the iLearning account credentials."""
from __future__ import annotations

import json
import os
import stat
from datetime import datetime, timezone
from pathlib import Path
from typing import Protocol

from loguru import logger

from ilearning.config import CREDENTIALS_FILE
from ilearning.errors import CredentialsNotFound
from ilearning.schemas.login import Credentials


class CredentialStore(Protocol):
    def save(self, username: str, password: str) -> None: ...

    def get(self) -> Credentials: ...

    def delete(self) -> None: ...


class FileCredentialStore:
    """
    Keep one username/password pair in a JSON file readable only by its owner.

    Args:
        path: Override the storage file (primarily useful for tests).
    """

    def __init__(self, path: Path = CREDENTIALS_FILE) -> None:
        self.path = Path(path)

    def save(self, username: str, password: str) -> None:
        self.delete()
        payload = {
            "saved_at": datetime.now(timezone.utc).isoformat(),
            "username": username,
            "password": password,
        }
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with self.path.open("w", encoding="utf-8") as handle:
            json.dump(payload, handle, ensure_ascii=False, indent=2)
        self._harden_permissions()
        logger.info("Stored credentials for account {}", username)

    def get(self) -> Credentials:
        if not self.path.exists():
            raise CredentialsNotFound()
        try:
            with self.path.open("r", encoding="utf-8") as handle:
                data = json.load(handle)
        except (OSError, ValueError) as exc:
            logger.warning("Failed to read credentials from {}: {}", self.path, type(exc).__name__)
            raise CredentialsNotFound() from exc

        username = data.get("username") if isinstance(data, dict) else None
        password = data.get("password") if isinstance(data, dict) else None
        if not isinstance(username, str) or not isinstance(password, str):
            logger.warning("Credential payload malformed: {}", self.path)
            raise CredentialsNotFound()
        return Credentials(username=username, password=password)

    def delete(self) -> None:
        if self.path.exists():
            self.path.unlink()
            logger.info("Removed stored credentials at {}", self.path)

    def _harden_permissions(self) -> None:
        if os.name == "nt":
            return
        try:
            os.chmod(self.path, stat.S_IRUSR | stat.S_IWUSR)
        except OSError as exc:
            logger.warning("Could not restrict permissions on {}: {}", self.path, exc)


__all__ = ["CredentialStore", "FileCredentialStore"]
