"""
Local Filesystem Storage Implementation.
Stores one JSON document per session on the server's local filesystem.
"""

import os
import json
import logging
import aiofiles
from pathlib import Path
from typing import Optional, List

from pydantic import ValidationError as SchemaError

from .interface import SessionRecordStore
from ..errors import StoreUnavailable, ValidationError
from ..models.session import SessionRecord

logger = logging.getLogger(__name__)


class LocalStorage(SessionRecordStore):
    """
    Local filesystem store.
    Records live at <base_dir>/sessions/<session_id>.json.
    """

    def __init__(self, base_dir: str = "./data"):
        """
        Initialize local storage with a base directory.

        Args:
            base_dir: Base directory for all stored files
        """
        self.base_dir = Path(base_dir).resolve()
        self.sessions_dir = self.base_dir / "sessions"
        self.sessions_dir.mkdir(parents=True, exist_ok=True)

    def _get_full_path(self, session_id: str) -> Path:
        """Map a session id to its document path within the sessions directory."""
        full_path = (self.sessions_dir / f"{session_id}.json").resolve()

        # Security check: ensure path is within sessions_dir
        if full_path.parent != self.sessions_dir:
            raise ValidationError(f"Invalid session id: {session_id!r}")

        return full_path

    async def _read(self, full_path: Path) -> Optional[SessionRecord]:
        try:
            async with aiofiles.open(full_path, 'r', encoding='utf-8') as f:
                content = await f.read()
        except FileNotFoundError:
            return None
        except OSError as e:
            logger.error(f"Error loading session file {full_path.name}: {e}")
            raise StoreUnavailable(f"Failed to read session record: {e}") from e

        try:
            record = SessionRecord.model_validate(json.loads(content))
        except (json.JSONDecodeError, SchemaError) as e:
            logger.error(f"Corrupt session file {full_path.name}: {e}")
            raise StoreUnavailable(f"Corrupt session record: {full_path.name}") from e

        record.persisted = True
        return record

    async def get(self, session_id: str) -> Optional[SessionRecord]:
        """Load a session record from disk."""
        return await self._read(self._get_full_path(session_id))

    async def upsert(self, record: SessionRecord) -> None:
        """Write the record atomically (temp file, then rename)."""
        full_path = self._get_full_path(record.session_id)
        tmp_path = full_path.with_suffix(".json.tmp")
        content = json.dumps(record.to_document(), indent=2, ensure_ascii=False)

        try:
            async with aiofiles.open(tmp_path, 'w', encoding='utf-8') as f:
                await f.write(content)
            os.replace(tmp_path, full_path)
        except OSError as e:
            logger.error(f"Error saving session file {full_path.name}: {e}")
            raise StoreUnavailable(f"Failed to write session record: {e}") from e

    async def delete(self, session_id: str) -> bool:
        """Delete a session document; absent documents are not an error."""
        full_path = self._get_full_path(session_id)
        try:
            full_path.unlink()
            return True
        except FileNotFoundError:
            return False
        except OSError as e:
            logger.error(f"Error deleting session file {full_path.name}: {e}")
            raise StoreUnavailable(f"Failed to delete session record: {e}") from e

    async def list_recent(self) -> List[SessionRecord]:
        """Load every stored record, newest first."""
        try:
            paths = sorted(self.sessions_dir.glob("*.json"))
        except OSError as e:
            raise StoreUnavailable(f"Failed to list session records: {e}") from e

        records = []
        for path in paths:
            try:
                record = await self._read(path)
            except StoreUnavailable:
                # One corrupt document must not hide every other session
                continue
            if record is not None:
                records.append(record)

        records.sort(key=lambda r: r.created_at, reverse=True)
        return records
