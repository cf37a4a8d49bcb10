"""File-backed SessionPersistence for clients without Redis.

The blob lives in a single JSON file that survives process restarts. Writes
go to a sibling temp file first and are moved into place, so a reader never
sees a half-written record. Blocking file I/O runs in a worker thread.
"""

import asyncio
import os
from typing import Optional

from pydantic import ValidationError

from errors import StoreReadError, StoreWriteError
from schemas.models.session import PersistedPhoneSession
from shared.logging import get_logger

log = get_logger(__name__)


class FileSessionPersistence:
    def __init__(self, path: str) -> None:
        self.path = path

    def _read(self) -> Optional[str]:
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                return f.read()
        except FileNotFoundError:
            return None

    def _write(self, payload: str) -> None:
        directory = os.path.dirname(self.path)
        if directory:
            os.makedirs(directory, exist_ok=True)
        tmp_path = f"{self.path}.tmp"
        with open(tmp_path, "w", encoding="utf-8") as f:
            f.write(payload)
        os.replace(tmp_path, self.path)

    def _remove(self) -> None:
        try:
            os.remove(self.path)
        except FileNotFoundError:
            pass

    async def _discard_corrupt(self, error: Exception) -> None:
        log.warning("session_record_corrupt", backend="file", path=self.path, error=str(error))
        await self.clear()

    async def load(self) -> Optional[PersistedPhoneSession]:
        try:
            raw = await asyncio.to_thread(self._read)
        except UnicodeDecodeError as e:
            await self._discard_corrupt(e)
            return None
        except OSError as e:
            log.error("session_load_failed", backend="file", path=self.path, error=str(e))
            raise StoreReadError("Failed to load persisted session") from e
        if raw is None:
            return None
        try:
            return PersistedPhoneSession.from_json(raw)
        except ValidationError as e:
            await self._discard_corrupt(e)
            return None

    async def save(self, record: PersistedPhoneSession) -> None:
        try:
            await asyncio.to_thread(self._write, record.to_json())
        except OSError as e:
            log.error("session_save_failed", backend="file", path=self.path, error=str(e))
            raise StoreWriteError("Failed to persist session") from e

    async def clear(self) -> None:
        try:
            await asyncio.to_thread(self._remove)
        except OSError as e:
            log.error("session_clear_failed", backend="file", path=self.path, error=str(e))
            raise StoreWriteError("Failed to clear persisted session") from e
