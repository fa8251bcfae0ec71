"""
取色器
从缓存的 RGBA 像素中按孔径（方形窗口）求平均颜色
"""

import math
from typing import Optional

import numpy as np

from .data_types import ColorSample, CursorPreview, ImageData, RGBColor
from .viewport import ViewportTransform


class SamplingError(Exception):
    """取色错误：点在图像外或采样窗口为空"""
    pass


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


class ColorSampler:
    """基于 ViewportTransform 的画布坐标取色，只读取已缓存的像素"""

    def __init__(self, image: ImageData, viewport: ViewportTransform):
        self.image = image
        self.viewport = viewport

    @staticmethod
    def _validate_aperture(aperture: int) -> int:
        if isinstance(aperture, bool) or int(aperture) != aperture or aperture < 1 or aperture % 2 == 0:
            raise ValueError(f"孔径必须为 >=1 的奇数: {aperture!r}")
        return int(aperture)

    def sample(self, canvas_x: float, canvas_y: float, aperture: int = 1) -> ColorSample:
        """
        在画布坐标处取色。

        Args:
            canvas_x, canvas_y: 画布坐标
            aperture: 采样窗口边长（奇数）

        Returns:
            ColorSample，各通道独立四舍五入

        Raises:
            SamplingError: 取整后的点不在图像内，或裁剪后窗口为空
        """
        aperture = self._validate_aperture(aperture)
        ix, iy = self.viewport.canvas_to_image(canvas_x, canvas_y)
        return self.sample_image_point(_round_half_up(ix), _round_half_up(iy), aperture)

    def sample_image_point(self, px: int, py: int, aperture: int = 1) -> ColorSample:
        """在整数图像坐标处取色"""
        aperture = self._validate_aperture(aperture)
        width, height = self.image.width, self.image.height
        if px < 0 or px >= width or py < 0 or py >= height:
            raise SamplingError(f"取色点超出图像范围: ({px}, {py}) / {width}x{height}")

        half = aperture // 2
        x0 = max(0, px - half)
        y0 = max(0, py - half)
        x1 = min(width, px + half + 1)
        y1 = min(height, py + half + 1)

        window = self.image.rgb[y0:y1, x0:x1]
        count = window.shape[0] * window.shape[1]
        if count == 0:
            raise SamplingError(f"采样窗口为空: ({px}, {py}) 孔径 {aperture}")

        sums = window.reshape(-1, 3).sum(axis=0, dtype=np.int64)
        r, g, b = (_round_half_up(int(s) / count) for s in sums)
        return ColorSample(color=RGBColor(r, g, b), image_x=px, image_y=py, aperture=aperture)

    def peek(self, canvas_x: float, canvas_y: float, aperture: int = 1) -> Optional[ColorSample]:
        """同 sample()，但点不可取时返回 None（用于悬停预览）"""
        try:
            return self.sample(canvas_x, canvas_y, aperture)
        except SamplingError:
            return None

    def cursor_preview(self, canvas_x: float, canvas_y: float, aperture: int = 1) -> CursorPreview:
        """悬停光标：显示尺寸随缩放变化，但不小于 8 + 4 * aperture"""
        actual = aperture * self.viewport.scale
        size = max(actual, 8.0 + aperture * 4.0)
        sample = self.peek(canvas_x, canvas_y, aperture)
        return CursorPreview(
            x=canvas_x,
            y=canvas_y,
            size=size,
            color=sample.color if sample is not None else None,
        )
