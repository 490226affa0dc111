"""
Streaming layer - Snapshot normalization, stream watcher and completion timer
"""

from src.streaming.snapshot import extract_snapshot_text
from src.streaming.completion_timer import CompletionTimer
from src.streaming.watcher import StreamWatcher

__all__ = [
    "extract_snapshot_text",
    "CompletionTimer",
    "StreamWatcher",
]
