"""
Memory layer - In-memory message store and durable-load reconciliation
"""

from src.memory.message_store import MessageStore, stream_message_id
from src.memory.persistence_merger import PersistenceMerger

__all__ = [
    "MessageStore",
    "stream_message_id",
    "PersistenceMerger",
]
