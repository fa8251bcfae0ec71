"""
缩略图组件：整图缩略 + 可视区域指示框，点击跳转
"""

from typing import Optional

from PySide6.QtWidgets import QWidget
from PySide6.QtCore import Qt, QRectF
from PySide6.QtGui import QPainter, QPen, QColor, QPixmap

from dmcmatch.core.data_types import FrameDrawList, OverviewRect
from .preview_widget import array_to_pixmap


class MinimapWidget(QWidget):
    """固定尺寸的导航小地图"""

    def __init__(self, context, parent=None):
        super().__init__(parent)
        self.context = context
        box_w, box_h = context.settings.minimap_box
        self.setFixedSize(int(box_w), int(box_h))
        self.setCursor(Qt.CursorShape.PointingHandCursor)
        self._pixmap: Optional[QPixmap] = None
        self._overview: Optional[OverviewRect] = None

        self.context.image_loaded.connect(self._on_image_loaded)
        self.context.frame_changed.connect(self._on_frame_changed)

    def _on_image_loaded(self):
        raster = self.context.get_minimap_raster()
        self._pixmap = array_to_pixmap(raster) if raster is not None else None
        self.update()

    def _on_frame_changed(self, frame: FrameDrawList):
        self._overview = frame.overview if frame is not None else None
        self.update()

    def paintEvent(self, event):
        painter = QPainter(self)
        painter.fillRect(self.rect(), QColor(30, 30, 30))
        minimap = self.context.controller.minimap
        if self._pixmap is None or minimap is None:
            painter.end()
            return

        ox, oy = minimap.raster_origin
        map_w, map_h = minimap.map_size
        painter.drawPixmap(QRectF(ox, oy, map_w, map_h), self._pixmap, QRectF(self._pixmap.rect()))

        overview = self._overview
        if overview is not None and overview.visible:
            painter.setPen(QPen(QColor(255, 80, 80), 1.5))
            painter.drawRect(QRectF(ox + overview.left, oy + overview.top, overview.width, overview.height))
        painter.end()

    def mousePressEvent(self, event):
        minimap = self.context.controller.minimap
        if minimap is not None and event.button() == Qt.MouseButton.LeftButton:
            p = event.position()
            x, y = minimap.box_to_raster(float(p.x()), float(p.y()))
            self.context.minimap_click(x, y)
        event.accept()
