"""
色差与色卡匹配
- CIEDE2000 色差 (kL = kC = kH = 1)
- 最近色查询：对整个色卡逐一计算，稳定排序
"""

import math
from typing import List, Optional, Sequence

from .data_types import ColorMatch, MatchQuality, PaletteEntry


_POW25_7 = 25.0 ** 7


def ciede2000(lab1: Sequence[float], lab2: Sequence[float]) -> float:
    """
    计算两个 Lab 颜色之间的 CIEDE2000 色差。

    Args:
        lab1: 第一个颜色 (L*, a*, b*)
        lab2: 第二个颜色 (L*, a*, b*)

    Returns:
        Delta E 2000，越小表示越接近。公式本身对称，且同色为 0。
    """
    L1, a1, b1 = (float(v) for v in lab1)
    L2, a2, b2 = (float(v) for v in lab2)
    kL = kC = kH = 1.0

    # 1. C'、h'
    C1 = math.hypot(a1, b1)
    C2 = math.hypot(a2, b2)
    C_bar = (C1 + C2) / 2.0
    C_bar7 = C_bar ** 7
    G = 0.5 * (1.0 - math.sqrt(C_bar7 / (C_bar7 + _POW25_7)))

    a1p = a1 * (1.0 + G)
    a2p = a2 * (1.0 + G)
    C1p = math.hypot(a1p, b1)
    C2p = math.hypot(a2p, b2)

    h1p = math.degrees(math.atan2(b1, a1p)) % 360.0
    h2p = math.degrees(math.atan2(b2, a2p)) % 360.0

    # 2. ΔL'、ΔC'、ΔH'
    dLp = L2 - L1
    dCp = C2p - C1p

    chroma_product = C1p * C2p
    dh = h2p - h1p
    if chroma_product == 0:
        dhp = 0.0
    elif abs(dh) <= 180.0:
        dhp = dh
    elif dh > 180.0:
        dhp = dh - 360.0
    else:
        dhp = dh + 360.0

    dHp = 2.0 * math.sqrt(chroma_product) * math.sin(math.radians(dhp / 2.0))

    # 3. 均值与权重
    Lp_bar = (L1 + L2) / 2.0
    Cp_bar = (C1p + C2p) / 2.0

    h_sum = h1p + h2p
    if chroma_product == 0:
        Hp_bar = h_sum
    elif abs(h1p - h2p) <= 180.0:
        Hp_bar = h_sum / 2.0
    elif h_sum < 360.0:
        Hp_bar = (h_sum + 360.0) / 2.0
    else:
        Hp_bar = (h_sum - 360.0) / 2.0

    T = (1.0
         - 0.17 * math.cos(math.radians(Hp_bar - 30.0))
         + 0.24 * math.cos(math.radians(2.0 * Hp_bar))
         + 0.32 * math.cos(math.radians(3.0 * Hp_bar + 6.0))
         - 0.20 * math.cos(math.radians(4.0 * Hp_bar - 63.0)))

    d_theta = 30.0 * math.exp(-(((Hp_bar - 275.0) / 25.0) ** 2))
    Cp_bar7 = Cp_bar ** 7
    RC = 2.0 * math.sqrt(Cp_bar7 / (Cp_bar7 + _POW25_7))

    L_term = (Lp_bar - 50.0) ** 2
    SL = 1.0 + (0.015 * L_term) / math.sqrt(20.0 + L_term)
    SC = 1.0 + 0.045 * Cp_bar
    SH = 1.0 + 0.015 * Cp_bar * T
    RT = -math.sin(math.radians(2.0 * d_theta)) * RC

    l_part = dLp / (kL * SL)
    c_part = dCp / (kC * SC)
    h_part = dHp / (kH * SH)

    return math.sqrt(l_part ** 2 + c_part ** 2 + h_part ** 2 + RT * c_part * h_part)


def find_closest_dmc(target_lab: Optional[Sequence[float]],
                     palette: Sequence[PaletteEntry],
                     limit: int = 5) -> List[ColorMatch]:
    """
    在色卡中查找最接近 target_lab 的颜色。

    按 deltaE 升序稳定排序（相同 deltaE 保持色卡原始顺序），返回前 limit 个。
    未取色或色卡为空时返回空列表，不抛异常。
    """
    if target_lab is None or not palette or limit <= 0:
        return []
    matches = [ColorMatch(entry=entry, delta_e=ciede2000(target_lab, entry.lab)) for entry in palette]
    matches.sort(key=lambda m: m.delta_e)
    return matches[:limit]


# (上限, key, 显示标签, 进度条百分比)
_QUALITY_BANDS = (
    (1.0, 'best', 'Perfect', 100),
    (2.0, 'excellent', 'Excellent', 95),
    (5.0, 'good', 'Good', 80),
    (10.0, 'fair', 'Fair', 60),
)


def match_quality(delta_e: float) -> MatchQuality:
    """deltaE 档位：<1 best, <2 excellent, <5 good, <10 fair, 其余 poor（仅用于显示）"""
    for upper, key, label, percent in _QUALITY_BANDS:
        if delta_e < upper:
            return MatchQuality(key=key, label=label, percent=percent)
    return MatchQuality(key='poor', label='Poor', percent=40)
