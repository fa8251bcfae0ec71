"""
标注点（Pin）存储
- 新→旧有序集合，插入即成为最新
- 编号：按 paletteId 首次出现顺序（旧→新扫描）分配，同色共享编号
- 命中测试：新→旧扫描，与绘制的层叠顺序一致
"""

import time
from typing import Callable, Dict, Iterable, List, Optional, Sequence, Tuple

from .data_types import AnnotationSnapshot, PaletteEntry, Pin, PinOverlay
from .viewport import ViewportTransform
from ..utils.debug_logger import debug, warning


PIN_HIT_RADIUS = 8.0
LABEL_OFFSET = (20.0, -20.0)
LABEL_HIT_HALF_SIZE = 12.0
OVERLAY_CULL_MARGIN = 40.0


class AnnotationStore:
    """标注点集合。每次修改后重算编号，并尝试持久化"""

    def __init__(self, pins: Iterable[Pin] = (), storage=None,
                 hit_radius: float = PIN_HIT_RADIUS,
                 label_offset: Tuple[float, float] = LABEL_OFFSET,
                 label_half_size: float = LABEL_HIT_HALF_SIZE,
                 cull_margin: float = OVERLAY_CULL_MARGIN,
                 clock: Callable[[], float] = time.time):
        # 内部按 新→旧 存放
        self._pins: List[Pin] = list(pins)
        self._storage = storage
        self.hit_radius = float(hit_radius)
        self.label_offset = (float(label_offset[0]), float(label_offset[1]))
        self.label_half_size = float(label_half_size)
        self.cull_margin = float(cull_margin)
        self._clock = clock
        self._numbering: Dict[str, int] = {}
        # 最近一次持久化是否失败（下次修改时自动重试）
        self.persist_failed: bool = False
        self._recompute_numbering()

    @classmethod
    def hydrate(cls, storage, **kwargs) -> 'AnnotationStore':
        """从持久化存储读取历史并创建"""
        pins = storage.load_pins()
        debug(f"Hydrated {len(pins)} pins from history", "AnnotationStore")
        return cls(pins, storage=storage, **kwargs)

    # ============ 查询 ============
    def __len__(self) -> int:
        return len(self._pins)

    def __iter__(self):
        return iter(list(self._pins))

    def list(self) -> List[Pin]:
        """新→旧"""
        return list(self._pins)

    def get(self, pin_id: int) -> Optional[Pin]:
        for pin in self._pins:
            if pin.id == pin_id:
                return pin
        return None

    def numbering(self) -> Dict[str, int]:
        """paletteId → 编号（副本）"""
        return dict(self._numbering)

    def number_for(self, palette_id: str) -> Optional[int]:
        return self._numbering.get(palette_id)

    def unique_entries(self) -> List[Pin]:
        """每个 paletteId 的首个标注点，按编号顺序"""
        seen = set()
        result = []
        for pin in reversed(self._pins):
            if pin.palette_id not in seen:
                seen.add(pin.palette_id)
                result.append(pin)
        return result

    def next_pin_id(self) -> int:
        """毫秒时间戳，保证严格大于现有最大 id"""
        candidate = int(self._clock() * 1000)
        if self._pins:
            candidate = max(candidate, max(p.id for p in self._pins) + 1)
        return candidate

    # ============ 修改 ============
    def insert(self, pin: Pin) -> None:
        if self.get(pin.id) is not None:
            raise ValueError(f"标注点 id 重复: {pin.id}")
        self._pins.insert(0, pin)
        self._on_mutated()

    def delete(self, pin_id: int) -> bool:
        remaining = [p for p in self._pins if p.id != pin_id]
        if len(remaining) == len(self._pins):
            return False
        self._pins = remaining
        self._on_mutated()
        return True

    def clear(self) -> None:
        self._pins = []
        self._on_mutated()

    def _on_mutated(self) -> None:
        self._recompute_numbering()
        self._persist()

    def _recompute_numbering(self) -> None:
        numbering: Dict[str, int] = {}
        for pin in reversed(self._pins):
            if pin.palette_id not in numbering:
                numbering[pin.palette_id] = len(numbering) + 1
        self._numbering = numbering

    def _persist(self) -> None:
        if self._storage is None:
            return
        ok = self._storage.save_pins(self._pins)
        if not ok:
            warning("Pin history not persisted; will retry on next change", "AnnotationStore")
        self.persist_failed = not ok

    # ============ 命中与绘制 ============
    def _label_position(self, px: float, py: float) -> Tuple[float, float]:
        return px + self.label_offset[0], py + self.label_offset[1]

    def hit_test(self, canvas_x: float, canvas_y: float, viewport: ViewportTransform) -> Optional[Pin]:
        """
        返回画布坐标下命中的标注点（圆点或编号标签）。
        新→旧扫描：重叠时命中最上层（最新）的点。
        """
        r2 = self.hit_radius * self.hit_radius
        for pin in self._pins:
            px, py = viewport.image_to_canvas(pin.image_x, pin.image_y)
            dx = canvas_x - px
            dy = canvas_y - py
            if dx * dx + dy * dy <= r2:
                return pin
            lx, ly = self._label_position(px, py)
            if abs(canvas_x - lx) <= self.label_half_size and abs(canvas_y - ly) <= self.label_half_size:
                return pin
        return None

    def build_overlays(self, viewport: ViewportTransform,
                       highlighted_id: Optional[int] = None) -> List[PinOverlay]:
        """生成标注点绘制命令：旧→新，最新的画在最上层；远离视口的点被剔除"""
        vw, vh = viewport.viewport_size
        margin = self.cull_margin
        overlays = []
        for pin in reversed(self._pins):
            px, py = viewport.image_to_canvas(pin.image_x, pin.image_y)
            if px < -margin or px > vw + margin or py < -margin or py > vh + margin:
                continue
            label = self._label_position(px, py)
            overlays.append(PinOverlay(
                pin_id=pin.id,
                dot=(px, py),
                label=label,
                label_text=str(self._numbering[pin.palette_id]),
                line=((px, py), label),
                highlighted=(pin.id == highlighted_id),
            ))
        return overlays

    def snapshot(self, palette: Sequence[PaletteEntry]) -> AnnotationSnapshot:
        """导出协作方使用的只读快照"""
        return AnnotationSnapshot(
            pins=tuple(self._pins),
            palette=tuple(palette),
            numbering=self.numbering(),
        )
