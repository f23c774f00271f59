# -*- coding: utf-8 -*-
"""
Durable storage for the session credential blob.

The store is the only writer of its file. Writes go to a temporary file first
and replace the target atomically, so a crash never leaves a half-written blob.
"""
import asyncio
import json
import os
from pathlib import Path

from loguru import logger
from pydantic import ValidationError

from errors import CredentialsCorruptedError
from models import DisconnectReason, SessionCredentials


class CredentialStore:
    def __init__(self, path: Path):
        self._path = Path(path)
        self._lock = asyncio.Lock()

    @property
    def path(self) -> Path:
        return self._path

    def exists(self) -> bool:
        return self._path.is_file()

    def load(self) -> SessionCredentials | None:
        """
        Read the persisted credentials.

        Returns:
            None when nothing has been persisted yet

        Raises:
            CredentialsCorruptedError: the file exists but cannot be parsed
        """
        if not self.exists():
            logger.info(f"No persisted session found at {self._path}")
            return None

        try:
            raw = self._path.read_text(encoding="utf8")
            credentials = SessionCredentials.model_validate_json(raw)
        except (OSError, ValidationError, ValueError) as err:
            raise CredentialsCorruptedError(
                DisconnectReason.LOGGED_OUT,
                f"Persisted session at {self._path} is unreadable: {err}",
            ) from err

        logger.debug(
            f"Restored session for @{credentials.bot_username} (offset={credentials.update_offset})"
        )
        return credentials

    async def save(self, credentials: SessionCredentials) -> None:
        async with self._lock:
            await asyncio.to_thread(self._write, credentials)

    def _write(self, credentials: SessionCredentials) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        payload = json.dumps(credentials.model_dump(mode="json"), indent=2, ensure_ascii=False)

        tmp_path = self._path.with_name(f".{self._path.name}.tmp")
        with open(tmp_path, "w", encoding="utf8") as file:
            file.write(payload)
            file.flush()
            os.fsync(file.fileno())
        os.replace(tmp_path, self._path)
