"""
预览组件
按 FrameDrawList 绘制图像与标注点；把鼠标 / 触摸 / 滚轮事件归一化为 PointerEvent
"""

import numpy as np
from typing import Optional

from PySide6.QtWidgets import QWidget, QSizePolicy
from PySide6.QtCore import Qt, QEvent, QPointF, QRectF
from PySide6.QtGui import QPixmap, QImage, QPainter, QPen, QColor, QBrush, QFont, QEventPoint

from dmcmatch.core.data_types import FrameDrawList, ImageData
from dmcmatch.core.interaction import PointerAction, PointerEvent
from dmcmatch.utils.debug_logger import error


PIN_COLOR = QColor(255, 64, 64)
PIN_HIGHLIGHT_COLOR = QColor(255, 210, 0)
LABEL_RADIUS = 10.0


def array_to_pixmap(array: np.ndarray) -> QPixmap:
    """将 RGBA/RGB uint8 numpy 数组转换为 QPixmap"""
    # 确保数组是连续的内存布局
    if not array.flags['C_CONTIGUOUS']:
        array = np.ascontiguousarray(array)

    height, width = array.shape[:2]
    channels = array.shape[2] if array.ndim == 3 else 1
    if channels == 4:
        qimage = QImage(array.data, width, height, width * 4, QImage.Format.Format_RGBA8888)
    elif channels == 3:
        qimage = QImage(array.data, width, height, width * 3, QImage.Format.Format_RGB888)
    else:
        qimage = QImage(array.data, width, height, width, QImage.Format.Format_Grayscale8)
    # QImage 不持有 numpy 内存，转换时复制
    return QPixmap.fromImage(qimage.copy())


class PreviewCanvas(QWidget):
    """自绘制画布：只负责绘制 context 给出的帧，并转发输入"""

    def __init__(self, context, parent=None):
        super().__init__(parent)
        self.context = context
        self._source_pixmap: Optional[QPixmap] = None
        self._frame: Optional[FrameDrawList] = None
        self._pin_dot_radius = float(context.settings.pin_dot_radius)

        self.setMouseTracking(True)
        self.setAttribute(Qt.WidgetAttribute.WA_AcceptTouchEvents, True)
        self.setSizePolicy(QSizePolicy.Policy.Expanding, QSizePolicy.Policy.Expanding)
        self.setMinimumSize(320, 240)
        self.setCursor(Qt.CursorShape.CrossCursor)

        self.context.frame_changed.connect(self.set_frame)

    # ============ 数据 ============
    def set_image(self, image: Optional[ImageData]) -> None:
        self._source_pixmap = array_to_pixmap(image.array) if image is not None else None
        self.update()

    def set_frame(self, frame: Optional[FrameDrawList]) -> None:
        self._frame = frame
        self.update()

    # ============ 绘制 ============
    def paintEvent(self, event):
        painter = QPainter(self)
        painter.fillRect(self.rect(), QColor(40, 40, 40))
        frame = self._frame
        if self._source_pixmap is None or frame is None:
            painter.setPen(QColor(160, 160, 160))
            painter.drawText(self.rect(), Qt.AlignmentFlag.AlignCenter, "打开一张图片开始取色")
            painter.end()
            return

        painter.save()
        # 放大时保留像素边缘，缩小时平滑
        painter.setRenderHint(QPainter.RenderHint.SmoothPixmapTransform, frame.image.scale < 1.0)
        painter.translate(QPointF(frame.image.offset_x, frame.image.offset_y))
        painter.scale(frame.image.scale, frame.image.scale)
        painter.drawPixmap(0, 0, self._source_pixmap)
        painter.restore()

        painter.setRenderHint(QPainter.RenderHint.Antialiasing, True)
        try:
            self._draw_pins(painter, frame)
            self._draw_cursor(painter, frame)
        except (TypeError, ValueError) as e:
            error(f"Overlay drawing failed: {e}", "PreviewCanvas")
        painter.end()

    def _draw_pins(self, painter: QPainter, frame: FrameDrawList):
        font = QFont(self.font())
        font.setBold(True)
        painter.setFont(font)
        for overlay in frame.pins:
            color = PIN_HIGHLIGHT_COLOR if overlay.highlighted else PIN_COLOR
            (x0, y0), (x1, y1) = overlay.line
            painter.setPen(QPen(color, 1.5))
            painter.drawLine(QPointF(x0, y0), QPointF(x1, y1))

            painter.setBrush(QBrush(color))
            r = self._pin_dot_radius
            painter.drawEllipse(QPointF(*overlay.dot), r, r)

            lx, ly = overlay.label
            painter.setPen(QPen(QColor(255, 255, 255), 1.5))
            painter.drawEllipse(QPointF(lx, ly), LABEL_RADIUS, LABEL_RADIUS)
            rect = QRectF(lx - LABEL_RADIUS, ly - LABEL_RADIUS, LABEL_RADIUS * 2, LABEL_RADIUS * 2)
            painter.drawText(rect, Qt.AlignmentFlag.AlignCenter, overlay.label_text)
        painter.setBrush(Qt.BrushStyle.NoBrush)

    def _draw_cursor(self, painter: QPainter, frame: FrameDrawList):
        cursor = frame.cursor
        if cursor is None:
            return
        half = cursor.size / 2.0
        rect = QRectF(cursor.x - half, cursor.y - half, cursor.size, cursor.size)
        if cursor.color is not None:
            painter.fillRect(rect, QColor(cursor.color.r, cursor.color.g, cursor.color.b))
        painter.setPen(QPen(QColor(255, 255, 255), 1))
        painter.drawRect(rect)
        painter.setPen(QPen(QColor(0, 0, 0), 1))
        painter.drawRect(rect.adjusted(-1, -1, 1, 1))

    # ============ 输入 ============
    def _dispatch(self, action: PointerAction, points=(), wheel_delta: float = 0.0, remaining: int = 0):
        self.context.handle_pointer_event(
            PointerEvent(action=action, points=tuple(points), wheel_delta=wheel_delta, remaining=remaining)
        )

    @staticmethod
    def _pos(event):
        p = event.position()
        return float(p.x()), float(p.y())

    def mousePressEvent(self, event):
        if event.button() == Qt.MouseButton.LeftButton:
            self._dispatch(PointerAction.DOWN, [self._pos(event)])
        event.accept()

    def mouseMoveEvent(self, event):
        self._dispatch(PointerAction.MOVE, [self._pos(event)])
        event.accept()

    def mouseReleaseEvent(self, event):
        if event.button() == Qt.MouseButton.LeftButton:
            self._dispatch(PointerAction.UP, [self._pos(event)])
        event.accept()

    def leaveEvent(self, event):
        self._dispatch(PointerAction.CANCEL)
        super().leaveEvent(event)

    def wheelEvent(self, event):
        delta = event.angleDelta().y()
        if delta:
            self._dispatch(PointerAction.WHEEL, [self._pos(event)], wheel_delta=float(delta))
        event.accept()

    def event(self, event):
        etype = event.type()
        if etype in (QEvent.Type.TouchBegin, QEvent.Type.TouchUpdate,
                     QEvent.Type.TouchEnd, QEvent.Type.TouchCancel):
            self._touch_event(event)
            event.accept()
            return True
        return super().event(event)

    def _touch_event(self, event):
        etype = event.type()
        if etype == QEvent.Type.TouchCancel:
            self._dispatch(PointerAction.CANCEL)
            return

        points = event.points()
        active = [(float(p.position().x()), float(p.position().y()))
                  for p in points if p.state() != QEventPoint.State.Released]
        released = [(float(p.position().x()), float(p.position().y()))
                    for p in points if p.state() == QEventPoint.State.Released]

        if etype == QEvent.Type.TouchBegin:
            self._dispatch(PointerAction.DOWN, active)
        elif etype == QEvent.Type.TouchEnd or released:
            remaining = 0 if etype == QEvent.Type.TouchEnd else len(active)
            self._dispatch(PointerAction.UP, released or active, remaining=remaining)
        else:
            self._dispatch(PointerAction.MOVE, active)

    def resizeEvent(self, event):
        super().resizeEvent(event)
        size = event.size()
        self.context.resize_viewport(float(size.width()), float(size.height()))
