"""
HistoryLib - Undo/redo history

Bounded history of committed-mask snapshots and the thumbnail strip
that displays it.
"""

from BR_Libs.HistoryLib.history_store import HistoryEntry, HistoryStore
from BR_Libs.HistoryLib.history_strip import HistoryStripLayout, render_history_strip

__all__ = [
    "HistoryEntry",
    "HistoryStore",
    "HistoryStripLayout",
    "render_history_strip",
]
