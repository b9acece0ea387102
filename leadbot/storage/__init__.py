"""Storage module - provides interface and implementations for session persistence."""

from .interface import SessionRecordStore
from .local_storage import LocalStorage
from .memory_storage import MemoryStorage

__all__ = ['SessionRecordStore', 'LocalStorage', 'MemoryStorage', 'create_record_store']


def create_record_store(storage_type: str = "local", base_dir: str = "./data") -> SessionRecordStore:
    """Create the configured durable store."""
    if storage_type == "local":
        return LocalStorage(base_dir)
    if storage_type == "memory":
        return MemoryStorage()
    raise ValueError(f"Unsupported storage type: {storage_type}")
