"""
视口坐标变换
固定尺寸视口内的缩放 / 平移 / 边界约束

坐标约定：
    canvas = image * (zoom * base_scale) + offset
    image  = (canvas - offset) / (zoom * base_scale)
"""

from dataclasses import replace
from typing import Optional, Tuple

from .data_types import ViewportState


MIN_ZOOM = 0.5
MAX_ZOOM = 16.0


class ViewportTransform:
    """视口变换：持有 ViewportState，所有修改后都会 clamp()"""

    def __init__(self, image_width: int, image_height: int,
                 viewport_width: float, viewport_height: float,
                 min_zoom: float = MIN_ZOOM, max_zoom: float = MAX_ZOOM):
        if image_width <= 0 or image_height <= 0:
            raise ValueError(f"图像尺寸无效: {image_width}x{image_height}")
        if viewport_width <= 0 or viewport_height <= 0:
            raise ValueError(f"视口尺寸无效: {viewport_width}x{viewport_height}")
        self._min_zoom = float(min_zoom)
        self._max_zoom = float(max_zoom)
        self._state = ViewportState(
            viewport_width=float(viewport_width),
            viewport_height=float(viewport_height),
            image_width=int(image_width),
            image_height=int(image_height),
            base_scale=self._fit_scale(image_width, image_height, viewport_width, viewport_height),
            zoom=1.0,
            offset_x=0.0,
            offset_y=0.0,
        )
        self.reset_view()

    @staticmethod
    def _fit_scale(iw, ih, vw, vh) -> float:
        # 适应视口，但不放大
        return min(vw / iw, vh / ih, 1.0)

    # ============ 只读属性 ============
    @property
    def zoom(self) -> float:
        return self._state.zoom

    @property
    def offset_x(self) -> float:
        return self._state.offset_x

    @property
    def offset_y(self) -> float:
        return self._state.offset_y

    @property
    def base_scale(self) -> float:
        return self._state.base_scale

    @property
    def scale(self) -> float:
        """屏幕像素 / 图像像素"""
        return self._state.zoom * self._state.base_scale

    @property
    def viewport_size(self) -> Tuple[float, float]:
        return self._state.viewport_width, self._state.viewport_height

    @property
    def image_size(self) -> Tuple[int, int]:
        return self._state.image_width, self._state.image_height

    @property
    def scaled_size(self) -> Tuple[float, float]:
        s = self.scale
        return self._state.image_width * s, self._state.image_height * s

    @property
    def zoom_percent(self) -> int:
        return int(round(self._state.zoom * 100))

    def state(self) -> ViewportState:
        """当前状态快照（不可变）"""
        return self._state

    # ============ 坐标映射 ============
    def image_to_canvas(self, x: float, y: float) -> Tuple[float, float]:
        s = self.scale
        return x * s + self._state.offset_x, y * s + self._state.offset_y

    def canvas_to_image(self, cx: float, cy: float) -> Tuple[float, float]:
        s = self.scale
        return (cx - self._state.offset_x) / s, (cy - self._state.offset_y) / s

    # ============ 修改操作 ============
    def clamp_zoom(self, z: float) -> float:
        return max(self._min_zoom, min(self._max_zoom, float(z)))

    def set_zoom(self, z: float, anchor: Optional[Tuple[float, float]] = None) -> None:
        """
        设置缩放。给定 anchor（画布坐标）时保持其下的图像点不动：
            offset' = anchor - (anchor - offset) * (z / z_old)
        """
        old_zoom = self._state.zoom
        new_zoom = self.clamp_zoom(z)
        offset_x, offset_y = self._state.offset_x, self._state.offset_y
        if anchor is not None:
            ax, ay = float(anchor[0]), float(anchor[1])
            ratio = new_zoom / old_zoom
            offset_x = ax - (ax - offset_x) * ratio
            offset_y = ay - (ay - offset_y) * ratio
        self._state = replace(self._state, zoom=new_zoom, offset_x=offset_x, offset_y=offset_y)
        self.clamp()

    def zoom_by(self, factor: float, anchor: Optional[Tuple[float, float]] = None) -> None:
        """按倍率缩放（滚轮）"""
        self.set_zoom(self._state.zoom * factor, anchor)

    def pan(self, dx: float, dy: float) -> None:
        self._state = replace(
            self._state,
            offset_x=self._state.offset_x + dx,
            offset_y=self._state.offset_y + dy,
        )
        self.clamp()

    def set_offsets(self, offset_x: float, offset_y: float) -> None:
        self._state = replace(self._state, offset_x=float(offset_x), offset_y=float(offset_y))
        self.clamp()

    def center_on(self, image_x: float, image_y: float) -> None:
        """将图像点置于视口中心"""
        s = self.scale
        self.set_offsets(
            self._state.viewport_width / 2.0 - image_x * s,
            self._state.viewport_height / 2.0 - image_y * s,
        )

    def reset_view(self) -> None:
        """zoom=1 并居中"""
        scaled_w = self._state.image_width * self._state.base_scale
        scaled_h = self._state.image_height * self._state.base_scale
        self._state = replace(
            self._state,
            zoom=1.0,
            offset_x=(self._state.viewport_width - scaled_w) / 2.0,
            offset_y=(self._state.viewport_height - scaled_h) / 2.0,
        )
        self.clamp()

    def resize(self, viewport_width: float, viewport_height: float) -> None:
        """视口尺寸变化：重算 base_scale，保留 zoom"""
        if viewport_width <= 0 or viewport_height <= 0:
            raise ValueError(f"视口尺寸无效: {viewport_width}x{viewport_height}")
        self._state = replace(
            self._state,
            viewport_width=float(viewport_width),
            viewport_height=float(viewport_height),
            base_scale=self._fit_scale(self._state.image_width, self._state.image_height,
                                       viewport_width, viewport_height),
        )
        self.clamp()

    def clamp(self) -> None:
        """
        边界约束（逐轴）：
        - 缩放后图像不大于视口：居中
        - 否则 offset 限制在 [viewport - scaled, 0]，不留空白
        对已约束状态重复调用不产生变化。
        """
        scaled_w, scaled_h = self.scaled_size
        offset_x = self._clamp_axis(self._state.offset_x, self._state.viewport_width, scaled_w)
        offset_y = self._clamp_axis(self._state.offset_y, self._state.viewport_height, scaled_h)
        if offset_x != self._state.offset_x or offset_y != self._state.offset_y:
            self._state = replace(self._state, offset_x=offset_x, offset_y=offset_y)

    @staticmethod
    def _clamp_axis(offset: float, viewport: float, scaled: float) -> float:
        if scaled <= viewport:
            return (viewport - scaled) / 2.0
        lower = viewport - scaled
        return max(lower, min(0.0, offset))
