from pathlib import Path
from typing import Optional

import logging
import sys

from PyQt5.QtCore import Qt, QTimer
from PyQt5.QtGui import QImage, QPainter, QPixmap
from PyQt5.QtWidgets import (
    QApplication,
    QCheckBox,
    QComboBox,
    QFileDialog,
    QHBoxLayout,
    QLabel,
    QMainWindow,
    QMessageBox,
    QPushButton,
    QSlider,
    QVBoxLayout,
    QWidget,
)

from BR_Libs.constants import (
    DEFAULT_EXPORT_FILENAME,
    MAX_BLUR_INTENSITY,
    MIN_RENDER_INTERVAL_MS,
    TOOLS,
)
from BR_Libs.errors import RedactorError
from BR_Libs.ImageEditingLib.export_ops import ExportConfig
from BR_Libs.pillow_compat import ImageClass
from BR_Libs.SessionLib import (
    ImageSequenceRasterizer,
    PlaceholderDocumentRasterizer,
    RedactionSession,
)
from BR_Libs.SessionLib.redaction_session import BUTTON_LEFT, BUTTON_MIDDLE, BUTTON_RIGHT

logger = logging.getLogger(__name__)

STRIP_HEIGHT = 90

_QT_BUTTONS = {
    Qt.LeftButton: BUTTON_LEFT,
    Qt.MiddleButton: BUTTON_MIDDLE,
    Qt.RightButton: BUTTON_RIGHT,
}


def to_pixmap(image: ImageClass) -> QPixmap:
    rgba = image.convert("RGBA")
    data = rgba.tobytes("raw", "RGBA")
    qimage = QImage(data, rgba.width, rgba.height, rgba.width * 4, QImage.Format_RGBA8888)
    # QImage does not own `data`
    return QPixmap.fromImage(qimage.copy())


class RedactionCanvas(QWidget):
    """Viewport widget forwarding input to a RedactionSession."""

    def __init__(self, session: RedactionSession, parent=None) -> None:
        super().__init__(parent)
        self.session = session
        self.setMouseTracking(True)
        self.setFocusPolicy(Qt.StrongFocus)
        self.setMinimumSize(640, 480)
        self._pixmap: Optional[QPixmap] = None

    def refresh(self) -> None:
        if self.session.frame is not None:
            self._pixmap = to_pixmap(self.session.frame)
        self.update()

    def resizeEvent(self, event) -> None:
        self.session.set_viewport_size(self.width(), self.height())
        super().resizeEvent(event)

    def paintEvent(self, event) -> None:
        painter = QPainter(self)
        painter.fillRect(self.rect(), Qt.darkGray)
        if not self.session.engine.has_source():
            painter.setPen(Qt.white)
            painter.drawText(self.rect(), Qt.AlignCenter, "Open an image to start")
        elif self._pixmap is not None:
            painter.drawPixmap(0, 0, self._pixmap)
        painter.end()

    def mousePressEvent(self, event) -> None:
        button = _QT_BUTTONS.get(event.button())
        if button is None:
            return
        ctrl = bool(event.modifiers() & Qt.ControlModifier)
        self.session.pointer_down(event.x(), event.y(), button, ctrl)

    def mouseMoveEvent(self, event) -> None:
        self.session.pointer_move(event.x(), event.y())

    def mouseReleaseEvent(self, event) -> None:
        self.session.pointer_up()

    def leaveEvent(self, event) -> None:
        self.session.pointer_leave()
        super().leaveEvent(event)

    def wheelEvent(self, event) -> None:
        position = event.pos()
        # Qt reports positive angleDelta for scrolling up (zoom in)
        self.session.wheel(position.x(), position.y(), -event.angleDelta().y())

    def contextMenuEvent(self, event) -> None:
        event.accept()


class HistoryStripWidget(QLabel):
    """Clickable history thumbnails."""

    def __init__(self, session: RedactionSession, parent=None) -> None:
        super().__init__(parent)
        self.session = session
        self.setFixedHeight(STRIP_HEIGHT)

    def refresh(self) -> None:
        strip = self.session.history_strip((max(1, self.width()), STRIP_HEIGHT))
        self.setPixmap(to_pixmap(strip))

    def mousePressEvent(self, event) -> None:
        if self.session.history_click(event.x(), event.y(), self.width()):
            self.refresh()


class BlurRedactorMainWindow(QMainWindow):
    def __init__(self) -> None:
        super().__init__()
        self.setWindowTitle("Blur Redactor")
        self.resize(1200, 850)

        self.session = RedactionSession()
        self._history_size = -1
        self._history_position = -1

        self._build_ui()
        self._connect_signals()

        self.timer = QTimer(self)
        self.timer.timeout.connect(self._on_tick)
        self.timer.start(int(MIN_RENDER_INTERVAL_MS))

    def _build_ui(self) -> None:
        central = QWidget(self)
        self.setCentralWidget(central)
        root = QHBoxLayout(central)

        controls = QVBoxLayout()
        self.btn_open = QPushButton("Open Image")
        self.btn_open_document = QPushButton("Open Document")
        self.btn_sample_document = QPushButton("Sample Document")
        self.btn_prev_page = QPushButton("Previous Page")
        self.btn_next_page = QPushButton("Next Page")
        self.label_page = QLabel("")

        self.combo_tool = QComboBox()
        self.combo_tool.addItems(TOOLS)

        self.slider_brush = QSlider(Qt.Horizontal)
        self.slider_brush.setRange(1, 100)
        self.slider_brush.setValue(int(self.session.state.brush_size))

        self.slider_intensity = QSlider(Qt.Horizontal)
        self.slider_intensity.setRange(0, int(MAX_BLUR_INTENSITY))
        self.slider_intensity.setValue(int(self.session.state.blur_intensity))

        self.slider_passes = QSlider(Qt.Horizontal)
        self.slider_passes.setRange(1, 10)
        self.slider_passes.setValue(self.session.state.blur_passes)

        self.check_high_quality = QCheckBox("High quality blur")
        self.check_high_quality.setChecked(self.session.state.high_quality)
        self.check_dark_mode = QCheckBox("Dark history strip")

        self.btn_undo = QPushButton("Undo")
        self.btn_redo = QPushButton("Redo")
        self.btn_clear = QPushButton("Clear All")
        self.btn_detect = QPushButton("Detect Sensitive Info")
        self.btn_zoom_in = QPushButton("Zoom In")
        self.btn_zoom_out = QPushButton("Zoom Out")
        self.btn_zoom_reset = QPushButton("Reset Zoom")
        self.btn_export = QPushButton("Export")

        self.label_zoom = QLabel("Zoom: 100%")
        self.label_status = QLabel("")
        self.label_status.setWordWrap(True)

        for widget in (
            self.btn_open,
            self.btn_open_document,
            self.btn_sample_document,
            self.btn_prev_page,
            self.btn_next_page,
            self.label_page,
            QLabel("Tool"),
            self.combo_tool,
            QLabel("Brush size"),
            self.slider_brush,
            QLabel("Blur intensity"),
            self.slider_intensity,
            QLabel("Blur passes"),
            self.slider_passes,
            self.check_high_quality,
            self.check_dark_mode,
            self.btn_undo,
            self.btn_redo,
            self.btn_clear,
            self.btn_detect,
            self.btn_zoom_in,
            self.btn_zoom_out,
            self.btn_zoom_reset,
            self.label_zoom,
            self.btn_export,
            self.label_status,
        ):
            controls.addWidget(widget)
        controls.addStretch(1)

        viewer = QVBoxLayout()
        self.canvas = RedactionCanvas(self.session)
        self.history_strip = HistoryStripWidget(self.session)
        viewer.addWidget(self.canvas, stretch=1)
        viewer.addWidget(self.history_strip)

        root.addLayout(controls, stretch=0)
        root.addLayout(viewer, stretch=1)
        self._update_page_controls()

    def _connect_signals(self) -> None:
        self.btn_open.clicked.connect(self.open_image)
        self.btn_open_document.clicked.connect(self.open_document)
        self.btn_sample_document.clicked.connect(self.open_sample_document)
        self.btn_prev_page.clicked.connect(self.session.prev_page)
        self.btn_next_page.clicked.connect(self.session.next_page)
        self.combo_tool.currentTextChanged.connect(self.session.set_tool)
        self.slider_brush.valueChanged.connect(self.session.set_brush_size)
        self.slider_intensity.valueChanged.connect(lambda value: self.session.set_blur(intensity=value))
        self.slider_passes.valueChanged.connect(lambda value: self.session.set_blur(passes=value))
        self.check_high_quality.toggled.connect(self.session.set_high_quality)
        self.check_dark_mode.toggled.connect(self._on_dark_mode)
        self.btn_undo.clicked.connect(self.session.undo)
        self.btn_redo.clicked.connect(self.session.redo)
        self.btn_clear.clicked.connect(self.clear_all)
        self.btn_detect.clicked.connect(lambda: self.session.detect_sensitive())
        self.btn_zoom_in.clicked.connect(self.session.zoom_in)
        self.btn_zoom_out.clicked.connect(self.session.zoom_out)
        self.btn_zoom_reset.clicked.connect(self.session.zoom_reset)
        self.btn_export.clicked.connect(self.export_image)

    def _on_tick(self) -> None:
        if self.session.tick():
            self.canvas.refresh()

        history = self.session.engine.history
        if (len(history), history.position) != (self._history_size, self._history_position):
            self._history_size = len(history)
            self._history_position = history.position
            self.history_strip.refresh()

        self.label_zoom.setText(f"Zoom: {self.session.zoom_percent}%")
        self.label_status.setText(self.session.status)
        self._update_page_controls()

    def _on_dark_mode(self, enabled: bool) -> None:
        self.session.set_dark_mode(enabled)
        self.history_strip.refresh()

    def _update_page_controls(self) -> None:
        visible = self.session.is_document_loaded
        for widget in (self.btn_prev_page, self.btn_next_page, self.label_page):
            widget.setVisible(visible)
        if visible:
            state = self.session.state
            self.label_page.setText(f"Page {state.page_number}/{state.page_count}")

    def keyPressEvent(self, event) -> None:
        ctrl = bool(event.modifiers() & Qt.ControlModifier)
        key = {Qt.Key_Left: "ArrowLeft", Qt.Key_Right: "ArrowRight"}.get(event.key(), event.text())
        if ctrl and event.key() == Qt.Key_S:
            self.export_image()
            return
        if ctrl and event.key() in (Qt.Key_Z, Qt.Key_Y):
            key = "z" if event.key() == Qt.Key_Z else "y"
        if key and self.session.handle_key(key, ctrl):
            self.combo_tool.setCurrentText(self.session.state.tool)
            return
        super().keyPressEvent(event)

    def open_image(self) -> None:
        file_path, _ = QFileDialog.getOpenFileName(
            self,
            "Open Image",
            "",
            "Images (*.png *.jpg *.jpeg *.gif *.bmp *.webp)",
        )
        if not file_path:
            return
        if self.session.open_image_async(file_path) is None:
            self._show_info("Busy", "An image is already being loaded.")

    def open_document(self) -> None:
        file_path, _ = QFileDialog.getOpenFileName(
            self,
            "Open Document",
            "",
            "Multi-page images (*.tif *.tiff *.gif)",
        )
        if not file_path:
            return
        try:
            self.session.load_document(ImageSequenceRasterizer(file_path))
        except RedactorError as e:
            logger.error(f"Failed to open document {file_path}: {e}")
            self._show_info("Open Document", str(e))

    def open_sample_document(self) -> None:
        self.session.load_document(PlaceholderDocumentRasterizer())

    def clear_all(self) -> None:
        if not self.session.engine.has_source():
            return
        answer = QMessageBox.question(self, "Clear All", "Remove all edits?")
        if answer == QMessageBox.Yes:
            self.session.clear_all()

    def export_image(self) -> None:
        if not self.session.engine.has_source():
            self._show_info("Export", "No image to save.")
            return
        file_path, _ = QFileDialog.getSaveFileName(
            self,
            "Export Redacted Image",
            DEFAULT_EXPORT_FILENAME,
            "PNG (*.png);;JPEG (*.jpg *.jpeg)",
        )
        if not file_path:
            return
        try:
            self.session.export(Path(file_path), self._export_config(file_path))
        except RedactorError as e:
            logger.error(f"Export failed: {e}")
            self._show_info("Export", str(e))

    @staticmethod
    def _export_config(file_path: str) -> ExportConfig:
        suffix = Path(file_path).suffix.lstrip(".").upper() or "PNG"
        return ExportConfig(output_path=file_path, save_format=suffix)

    def _show_info(self, title: str, message: str) -> None:
        QMessageBox.information(self, title, message)


def main() -> None:
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    app = QApplication(sys.argv)
    window = BlurRedactorMainWindow()
    window.show()
    sys.exit(app.exec_())


if __name__ == "__main__":
    main()
