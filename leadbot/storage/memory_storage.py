"""
In-memory Storage Implementation.
Keeps serialized documents in a dict; used by tests and throwaway deployments.
"""

from typing import Optional, List, Dict, Any

from .interface import SessionRecordStore
from ..models.session import SessionRecord


class MemoryStorage(SessionRecordStore):
    """
    Process-local store. Documents are stored serialized so callers never
    share mutable state with the store, matching a real document database.
    """

    def __init__(self):
        self._documents: Dict[str, Dict[str, Any]] = {}

    def _load(self, document: Dict[str, Any]) -> SessionRecord:
        record = SessionRecord.model_validate(document)
        record.persisted = True
        return record

    async def get(self, session_id: str) -> Optional[SessionRecord]:
        document = self._documents.get(session_id)
        return self._load(document) if document is not None else None

    async def upsert(self, record: SessionRecord) -> None:
        self._documents[record.session_id] = record.to_document()

    async def delete(self, session_id: str) -> bool:
        return self._documents.pop(session_id, None) is not None

    async def list_recent(self) -> List[SessionRecord]:
        records = [self._load(d) for d in self._documents.values()]
        records.sort(key=lambda r: r.created_at, reverse=True)
        return records
