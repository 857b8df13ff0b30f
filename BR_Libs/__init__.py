"""
BR_Libs - Blur Redactor Library Modules

This package contains core functionality for the Blur Redactor project,
organized into specialized sub-packages:

- ImageEditingLib: Masks, blur filters, compositing and the edit engine
- HistoryLib: Bounded undo/redo history and the thumbnail strip
- SessionLib: Editor state, render scheduling, gestures and pluggable services
"""

__version__ = "0.1.0"
