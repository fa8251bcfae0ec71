"""
缩略图（导航小地图）同步
- 加载时生成一次固定尺寸的整图缩略栅格
- 由视口状态推导可视区域框；点击缩略图反向平移视口
"""

from typing import Tuple

import cv2
import numpy as np

from .data_types import ImageData, OverviewRect
from .viewport import ViewportTransform


MINIMAP_BOX = (120, 90)


class MinimapSync:
    """缩略图与视口之间的坐标同步"""

    def __init__(self, image: ImageData, box_size: Tuple[int, int] = MINIMAP_BOX,
                 hide_tolerance: float = 2.0):
        self.image_width = image.width
        self.image_height = image.height
        self.box_size = (int(box_size[0]), int(box_size[1]))
        self.hide_tolerance = float(hide_tolerance)

        box_w, box_h = self.box_size
        image_aspect = image.width / image.height
        box_aspect = box_w / box_h
        if image_aspect > box_aspect:
            map_w = float(box_w)
            map_h = box_w / image_aspect
        else:
            map_h = float(box_h)
            map_w = box_h * image_aspect
        self.map_size = (map_w, map_h)
        # 缩略栅格在容器中居中
        self.raster_origin = ((box_w - map_w) / 2.0, (box_h - map_h) / 2.0)
        self.raster = self._build_raster(image, map_w, map_h)

    @staticmethod
    def _build_raster(image: ImageData, map_w: float, map_h: float) -> np.ndarray:
        target = (max(1, int(round(map_w))), max(1, int(round(map_h))))
        raster = cv2.resize(image.array.copy(), target, interpolation=cv2.INTER_AREA)
        raster.flags.writeable = False
        return raster

    def visible_rect(self, viewport: ViewportTransform) -> OverviewRect:
        """
        视口可视区域 → 缩略图像素坐标的矩形。
        覆盖整个缩略图时 visible=False（隐藏指示框）。
        """
        state = viewport.state()
        s = state.scale
        visible_left = -state.offset_x / s
        visible_top = -state.offset_y / s
        visible_w = state.viewport_width / s
        visible_h = state.viewport_height / s

        map_w, map_h = self.map_size
        to_map = map_w / self.image_width

        left = max(0.0, visible_left * to_map)
        top = max(0.0, visible_top * to_map)
        width = min(map_w - left, visible_w * to_map)
        height = min(map_h - top, visible_h * to_map)

        tol = self.hide_tolerance
        covers_all = width >= map_w - tol and height >= map_h - tol
        return OverviewRect(left=left, top=top, width=width, height=height, visible=not covers_all)

    def overview_to_image(self, x: float, y: float) -> Tuple[float, float]:
        map_w, map_h = self.map_size
        return x / map_w * self.image_width, y / map_h * self.image_height

    def box_to_raster(self, x: float, y: float) -> Tuple[float, float]:
        """容器坐标 → 栅格坐标"""
        return x - self.raster_origin[0], y - self.raster_origin[1]

    def on_overview_click(self, x: float, y: float, viewport: ViewportTransform) -> None:
        """点击缩略图（栅格坐标）：将对应图像点移到视口中心，然后约束"""
        image_x, image_y = self.overview_to_image(x, y)
        viewport.center_on(image_x, image_y)
