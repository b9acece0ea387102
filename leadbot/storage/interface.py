"""
Storage Interface - Abstract base class for durable session record stores.
This interface enables seamless switching between local files, in-memory, or a database.
"""

from abc import ABC, abstractmethod
from typing import Optional, List

from ..models.session import SessionRecord


class SessionRecordStore(ABC):
    """
    Contract for the durable store: one record per session, keyed by session id.
    Implementations raise StoreUnavailable when the backend itself fails;
    a missing record is not an error.
    """

    @abstractmethod
    async def get(self, session_id: str) -> Optional[SessionRecord]:
        """
        Load the record for a session.

        Args:
            session_id: Session identifier

        Returns:
            Optional[SessionRecord]: The stored record, or None if absent
        """
        pass

    @abstractmethod
    async def upsert(self, record: SessionRecord) -> None:
        """
        Insert or fully replace the record for record.session_id.

        Args:
            record: Record to store (document replace, no field merging)
        """
        pass

    @abstractmethod
    async def delete(self, session_id: str) -> bool:
        """
        Delete a session record.

        Args:
            session_id: Session identifier

        Returns:
            bool: True if a record was removed, False if none existed
        """
        pass

    @abstractmethod
    async def list_recent(self) -> List[SessionRecord]:
        """
        List all records, newest created_at first.

        Returns:
            List[SessionRecord]: Stored records ordered by recency
        """
        pass
