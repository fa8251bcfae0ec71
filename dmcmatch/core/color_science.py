"""
色彩科学转换工具
- sRGB (0-255) → 线性 RGB → XYZ → Lab(D65)
- hex / rgb 互转
"""

from __future__ import annotations

import re
from typing import Tuple

import numpy as np


# sRGB → XYZ 标准矩阵（D65）
SRGB_TO_XYZ = np.array([
    [0.4124564, 0.3575761, 0.1804375],
    [0.2126729, 0.7151522, 0.0721750],
    [0.0193339, 0.1191920, 0.9503041],
], dtype=np.float64)

# D65 参考白 (X, Y, Z)，Y=100
D65_WHITE = np.array([95.047, 100.000, 108.883], dtype=np.float64)

SRGB_GAMMA_BREAKPOINT = 0.04045
LAB_EPSILON = 0.008856
LAB_KAPPA_SLOPE = 7.787

_HEX_RE = re.compile(r'^#?([0-9a-fA-F]{2})([0-9a-fA-F]{2})([0-9a-fA-F]{2})$')


def srgb_to_linear(values: np.ndarray) -> np.ndarray:
    """sRGB 编码值 (0-1) → 线性光"""
    values = np.asarray(values, dtype=np.float64)
    return np.where(
        values > SRGB_GAMMA_BREAKPOINT,
        ((values + 0.055) / 1.055) ** 2.4,
        values / 12.92,
    )


def _lab_f(t: np.ndarray) -> np.ndarray:
    # 立方根 / 线性分段
    return np.where(t > LAB_EPSILON, np.cbrt(t), LAB_KAPPA_SLOPE * t + 16.0 / 116.0)


def xyz_to_lab(xyz: np.ndarray) -> np.ndarray:
    """XYZ (Y=100 标度) → Lab(D65)。支持 (3,) 或 (...,3)。"""
    xyz = np.asarray(xyz, dtype=np.float64)
    f = _lab_f(xyz / D65_WHITE)
    fx = f[..., 0]
    fy = f[..., 1]
    fz = f[..., 2]
    L = 116.0 * fy - 16.0
    a = 500.0 * (fx - fy)
    b = 200.0 * (fy - fz)
    return np.stack([L, a, b], axis=-1)


def rgb_array_to_lab(rgb: np.ndarray) -> np.ndarray:
    """sRGB (0-255) → Lab(D65)。支持 (3,) 或 (...,3)。"""
    rgb = np.asarray(rgb, dtype=np.float64) / 255.0
    linear = srgb_to_linear(rgb) * 100.0
    xyz = linear @ SRGB_TO_XYZ.T
    return xyz_to_lab(xyz)


def rgb_to_lab(r: float, g: float, b: float) -> Tuple[float, float, float]:
    """单色 sRGB (0-255) → Lab(D65)，纯函数，对全部输入有定义。"""
    L, a, b_ = rgb_array_to_lab(np.array([r, g, b], dtype=np.float64))
    return float(L), float(a), float(b_)


def rgb_to_hex(r: int, g: int, b: int) -> str:
    """(r, g, b) → '#RRGGBB'（大写）"""
    return '#{:02X}{:02X}{:02X}'.format(int(r), int(g), int(b))


def hex_to_rgb(value: str) -> Tuple[int, int, int]:
    """'#RRGGBB' 或 'RRGGBB' → (r, g, b)。格式错误时抛出 ValueError。"""
    match = _HEX_RE.match(value.strip())
    if match is None:
        raise ValueError(f"无效的颜色值: {value!r}")
    r, g, b = (int(part, 16) for part in match.groups())
    return r, g, b
