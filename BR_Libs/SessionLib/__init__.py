"""
SessionLib - Editor session

Editor state, render scheduling, region detection, page sources and the
RedactionSession that ties them to an EditEngine.
"""

from BR_Libs.SessionLib.editor_state import EditorState
from BR_Libs.SessionLib.render_scheduler import RenderScheduler
from BR_Libs.SessionLib.detection import RegionDetector, RandomRegionDetector
from BR_Libs.SessionLib.page_source import (
    PageRasterizer,
    ImageSequenceRasterizer,
    PlaceholderDocumentRasterizer,
)
from BR_Libs.SessionLib.redaction_session import RedactionSession

__all__ = [
    "EditorState",
    "RenderScheduler",
    "RegionDetector",
    "RandomRegionDetector",
    "PageRasterizer",
    "ImageSequenceRasterizer",
    "PlaceholderDocumentRasterizer",
    "RedactionSession",
]
