"""
交互控制器
- 统一鼠标 / 触摸的指针事件模型，驱动显式状态机
- 唯一持有 ViewportTransform 与 AnnotationStore，并生成每帧绘制列表

状态：
    IDLE -> POINTER_DOWN -> (位移超过阈值) PANNING -> IDLE
                         -> (阈值内松开) 点击 -> IDLE
    两个触点 -> PINCH_ZOOM -> (松开一指) PINCH_RELEASING -> (全部松开) IDLE
"""

import math
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import List, Optional, Sequence, Tuple

from .annotation_store import AnnotationStore
from .color_matcher import find_closest_dmc
from .color_sampler import ColorSampler, SamplingError
from .color_science import rgb_to_lab
from .data_types import (
    AppSettings, AnnotationSnapshot, ColorMatch, ColorSample, CursorPreview,
    FrameDrawList, ImageData, ImageTransform, PaletteEntry, Pin, RGBColor,
)
from .minimap import MinimapSync
from .viewport import ViewportTransform
from ..utils.debug_logger import debug, info, warning, error


DRAG_THRESHOLD = 5.0


class PointerAction(Enum):
    DOWN = "down"
    MOVE = "move"
    UP = "up"
    CANCEL = "cancel"
    WHEEL = "wheel"


class InteractionState(Enum):
    IDLE = "idle"
    POINTER_DOWN = "pointer_down"
    PANNING = "panning"
    PINCH_ZOOM = "pinch_zoom"
    PINCH_RELEASING = "pinch_releasing"


@dataclass(frozen=True)
class PointerEvent:
    """
    归一化的指针事件。

    points: 当前所有活动指针的画布坐标（鼠标为 1 个，双指触摸为 2 个）
    wheel_delta: 滚轮方向，>0 放大，<0 缩小
    remaining: UP 之后仍按住的触点数
    """
    action: PointerAction
    points: Tuple[Tuple[float, float], ...] = ()
    wheel_delta: float = 0.0
    remaining: int = 0

    @property
    def position(self) -> Optional[Tuple[float, float]]:
        return self.points[0] if self.points else None


# InteractionResult.kind
RESULT_NONE = "none"
RESULT_HOVER = "hover"
RESULT_SAMPLE = "sample"
RESULT_SAMPLE_FAILED = "sample_failed"
RESULT_PIN_HIT = "pin_hit"
RESULT_PAN = "pan"
RESULT_ZOOM = "zoom"


@dataclass
class InteractionResult:
    """一次 dispatch 的结果"""
    kind: str = RESULT_NONE
    sample: Optional[ColorSample] = None
    pin: Optional[Pin] = None
    cursor: Optional[CursorPreview] = None
    message: str = ""


def _distance(p1: Tuple[float, float], p2: Tuple[float, float]) -> float:
    return math.hypot(p2[0] - p1[0], p2[1] - p1[1])


def _midpoint(p1: Tuple[float, float], p2: Tuple[float, float]) -> Tuple[float, float]:
    return (p1[0] + p2[0]) / 2.0, (p1[1] + p2[1]) / 2.0


class InteractionController:
    """单线程事件驱动的交互状态机"""

    def __init__(self, palette: Sequence[PaletteEntry], storage=None,
                 settings: Optional[AppSettings] = None,
                 store: Optional[AnnotationStore] = None):
        self.settings = settings or AppSettings()
        self.palette: Tuple[PaletteEntry, ...] = tuple(palette)

        if store is None:
            store_kwargs = dict(
                hit_radius=self.settings.pin_hit_radius,
                label_offset=self.settings.label_offset,
                label_half_size=self.settings.label_hit_half_size,
                cull_margin=self.settings.overlay_cull_margin,
            )
            if storage is not None:
                store = AnnotationStore.hydrate(storage, **store_kwargs)
            else:
                store = AnnotationStore(**store_kwargs)
        self.store = store

        self.image: Optional[ImageData] = None
        self.viewport: Optional[ViewportTransform] = None
        self.sampler: Optional[ColorSampler] = None
        self.minimap: Optional[MinimapSync] = None

        self.state = InteractionState.IDLE
        self.aperture = ColorSampler._validate_aperture(self.settings.default_aperture)
        self.current_sample: Optional[ColorSample] = None
        self.current_matches: List[ColorMatch] = []
        self.highlighted_pin_id: Optional[int] = None
        self.cursor: Optional[CursorPreview] = None

        # 手势状态
        self._down_pos: Optional[Tuple[float, float]] = None
        self._pan_anchor: Optional[Tuple[float, float]] = None
        self._pan_start_offset: Tuple[float, float] = (0.0, 0.0)
        self._pinch_start_distance = 0.0
        self._pinch_start_zoom = 1.0
        self._pinch_center: Optional[Tuple[float, float]] = None

    @property
    def has_image(self) -> bool:
        return self.image is not None

    # ============ 图像与视口 ============
    def load_image(self, image: ImageData, viewport_size: Tuple[float, float],
                   clear_history: bool = False) -> None:
        """
        加载新图像。先完整构建视口、取色器、缩略图，再一次性替换；
        构建失败时原有状态保持不变。
        """
        viewport = ViewportTransform(
            image.width, image.height, viewport_size[0], viewport_size[1],
            min_zoom=self.settings.min_zoom, max_zoom=self.settings.max_zoom,
        )
        sampler = ColorSampler(image, viewport)
        minimap = MinimapSync(image, box_size=self.settings.minimap_box,
                              hide_tolerance=self.settings.minimap_hide_tolerance)

        self.image = image
        self.viewport = viewport
        self.sampler = sampler
        self.minimap = minimap
        self._reset_gesture()
        self.cursor = None
        self.current_sample = None
        self.current_matches = []
        self.highlighted_pin_id = None
        if clear_history:
            self.store.clear()
        info(f"Image loaded into controller: {image.width}x{image.height}, "
             f"viewport {viewport_size[0]}x{viewport_size[1]}", "InteractionController")

    def set_zoom(self, zoom: float) -> None:
        """滑块设置缩放（无锚点）"""
        if self.viewport is None:
            return
        self.viewport.set_zoom(zoom)

    def reset_view(self) -> None:
        if self.viewport is None:
            return
        self.viewport.reset_view()

    def resize_viewport(self, width: float, height: float) -> None:
        if self.viewport is None:
            return
        self.viewport.resize(width, height)

    def minimap_click(self, x: float, y: float) -> None:
        """x, y 为缩略栅格坐标"""
        if self.viewport is None or self.minimap is None:
            return
        self.minimap.on_overview_click(x, y, self.viewport)

    # ============ 取色与匹配 ============
    def set_aperture(self, aperture: int) -> None:
        self.aperture = ColorSampler._validate_aperture(aperture)
        debug(f"Aperture set to {self.aperture}", "InteractionController")

    def find_matches(self) -> List[ColorMatch]:
        """当前取样的最近色匹配；无取样或色卡为空时返回空列表"""
        if self.current_sample is None or not self.palette:
            self.current_matches = []
            return []
        color = self.current_sample.color
        target = rgb_to_lab(color.r, color.g, color.b)
        self.current_matches = find_closest_dmc(target, self.palette, limit=self.settings.match_limit)
        return list(self.current_matches)

    def select_match(self, index: int) -> Optional[Pin]:
        """确认匹配：由当前取样和第 index 个匹配结果创建标注点"""
        if self.current_sample is None:
            error("Cannot create pin: no color sampled", "InteractionController")
            return None
        if index < 0 or index >= len(self.current_matches):
            error(f"Cannot create pin: match index {index} out of range "
                  f"({len(self.current_matches)} matches)", "InteractionController")
            return None

        sample = self.current_sample
        match = self.current_matches[index]
        pin = Pin(
            id=self.store.next_pin_id(),
            palette_id=match.entry.id,
            name=match.entry.name,
            sampled_color=sample.color,
            matched_color=RGBColor.from_sequence(match.entry.rgb),
            delta_e=match.delta_e,
            image_x=sample.image_x,
            image_y=sample.image_y,
            created_at=datetime.now(timezone.utc),
        )
        self.store.insert(pin)
        self.current_sample = None
        self.current_matches = []
        info(f"Pin {pin.id} created for {pin.palette_id} (dE={pin.delta_e:.2f})", "InteractionController")
        return pin

    # ============ 标注点 ============
    def delete_pin(self, pin_id: int) -> bool:
        removed = self.store.delete(pin_id)
        if removed and self.highlighted_pin_id == pin_id:
            self.highlighted_pin_id = None
        return removed

    def clear_pins(self) -> None:
        self.store.clear()
        self.current_sample = None
        self.current_matches = []
        self.highlighted_pin_id = None

    def snapshot(self) -> AnnotationSnapshot:
        return self.store.snapshot(self.palette)

    # ============ 事件分发 ============
    def dispatch(self, event: PointerEvent) -> InteractionResult:
        """处理一个指针事件（完整处理后才返回）"""
        if self.viewport is None:
            return InteractionResult()

        action = event.action
        if action == PointerAction.WHEEL:
            return self._on_wheel(event)
        if action == PointerAction.CANCEL:
            self._reset_gesture()
            self.cursor = None
            return InteractionResult()

        if len(event.points) >= 2 and action in (PointerAction.DOWN, PointerAction.MOVE):
            if self.state != InteractionState.PINCH_ZOOM:
                return self._begin_pinch(event.points[0], event.points[1])
            return self._update_pinch(event.points[0], event.points[1])

        if action == PointerAction.DOWN:
            return self._on_down(event)
        if action == PointerAction.MOVE:
            return self._on_move(event)
        if action == PointerAction.UP:
            return self._on_up(event)
        return InteractionResult()

    def _reset_gesture(self) -> None:
        self.state = InteractionState.IDLE
        self._down_pos = None
        self._pan_anchor = None
        self._pinch_center = None
        self._pinch_start_distance = 0.0

    def _on_down(self, event: PointerEvent) -> InteractionResult:
        if event.position is None:
            return InteractionResult()
        self.state = InteractionState.POINTER_DOWN
        self._down_pos = event.position
        return InteractionResult()

    def _on_move(self, event: PointerEvent) -> InteractionResult:
        pos = event.position
        if pos is None:
            return InteractionResult()

        if self.state == InteractionState.IDLE:
            self.cursor = self.sampler.cursor_preview(pos[0], pos[1], self.aperture)
            return InteractionResult(kind=RESULT_HOVER, cursor=self.cursor)

        if self.state == InteractionState.POINTER_DOWN:
            if _distance(self._down_pos, pos) <= self.settings.drag_threshold:
                return InteractionResult()
            # 越过阈值：以当前位置为起点开始平移，图像不跳动
            self.state = InteractionState.PANNING
            self._pan_anchor = pos
            self._pan_start_offset = (self.viewport.offset_x, self.viewport.offset_y)
            self.cursor = None
            return InteractionResult(kind=RESULT_PAN)

        if self.state == InteractionState.PANNING:
            self.viewport.set_offsets(
                self._pan_start_offset[0] + pos[0] - self._pan_anchor[0],
                self._pan_start_offset[1] + pos[1] - self._pan_anchor[1],
            )
            return InteractionResult(kind=RESULT_PAN)

        # PINCH_ZOOM / PINCH_RELEASING 中剩下一个触点：忽略
        return InteractionResult()

    def _on_up(self, event: PointerEvent) -> InteractionResult:
        state = self.state
        down_pos = self._down_pos
        if state in (InteractionState.PINCH_ZOOM, InteractionState.PINCH_RELEASING) and event.remaining > 0:
            # 双指手势未结束：剩余触点既不悬停也不平移
            self._reset_gesture()
            self.state = InteractionState.PINCH_RELEASING
            return InteractionResult()
        self._reset_gesture()
        if state != InteractionState.POINTER_DOWN:
            return InteractionResult()
        pos = event.position or down_pos
        return self._click(pos[0], pos[1])

    def _click(self, x: float, y: float) -> InteractionResult:
        """点击：命中标注点优先，否则取色"""
        pin = self.store.hit_test(x, y, self.viewport)
        if pin is not None:
            self.highlighted_pin_id = pin.id
            debug(f"Pin {pin.id} hit at ({x:.1f}, {y:.1f})", "InteractionController")
            return InteractionResult(kind=RESULT_PIN_HIT, pin=pin)

        self.current_matches = []
        try:
            sample = self.sampler.sample(x, y, self.aperture)
        except SamplingError as e:
            self.current_sample = None
            warning(f"Sampling failed: {e}", "InteractionController")
            return InteractionResult(kind=RESULT_SAMPLE_FAILED, message=str(e))

        self.current_sample = sample
        debug(f"Sampled {sample.hex} at image ({sample.image_x}, {sample.image_y}) "
              f"aperture {sample.aperture}", "InteractionController")
        return InteractionResult(kind=RESULT_SAMPLE, sample=sample)

    def _on_wheel(self, event: PointerEvent) -> InteractionResult:
        if event.wheel_delta == 0:
            return InteractionResult()
        factor = self.settings.wheel_zoom_in if event.wheel_delta > 0 else self.settings.wheel_zoom_out
        self.viewport.zoom_by(factor, anchor=event.position)
        return InteractionResult(kind=RESULT_ZOOM)

    def _begin_pinch(self, p1: Tuple[float, float], p2: Tuple[float, float]) -> InteractionResult:
        self._down_pos = None
        self._pan_anchor = None
        self.cursor = None
        self.state = InteractionState.PINCH_ZOOM
        self._pinch_start_distance = _distance(p1, p2)
        self._pinch_start_zoom = self.viewport.zoom
        self._pinch_center = _midpoint(p1, p2)
        return InteractionResult(kind=RESULT_ZOOM)

    def _update_pinch(self, p1: Tuple[float, float], p2: Tuple[float, float]) -> InteractionResult:
        if self._pinch_start_distance <= 0:
            return InteractionResult()
        ratio = _distance(p1, p2) / self._pinch_start_distance
        self.viewport.set_zoom(self._pinch_start_zoom * ratio, anchor=self._pinch_center)
        return InteractionResult(kind=RESULT_ZOOM)

    # ============ 绘制 ============
    def frame(self) -> Optional[FrameDrawList]:
        """当前帧的绘制命令；未加载图像时返回 None"""
        if self.viewport is None:
            return None
        viewport = self.viewport
        return FrameDrawList(
            image=ImageTransform(offset_x=viewport.offset_x, offset_y=viewport.offset_y,
                                 scale=viewport.scale),
            pins=tuple(self.store.build_overlays(viewport, self.highlighted_pin_id)),
            overview=self.minimap.visible_rect(viewport),
            cursor=self.cursor,
            zoom_percent=viewport.zoom_percent,
            highlighted_pin_id=self.highlighted_pin_id,
        )
