from PySide6.QtCore import QObject, Signal
from typing import Optional, List, Tuple, Sequence, Dict

from .data_types import AppSettings, ColorMatch, ColorSample, FrameDrawList, PaletteEntry, Pin, AnnotationSnapshot
from .image_manager import LoadError, load_image
from .interaction import (
    InteractionController, InteractionResult, PointerEvent,
    RESULT_NONE, RESULT_HOVER, RESULT_SAMPLE, RESULT_SAMPLE_FAILED, RESULT_PIN_HIT,
)
from ..utils.debug_logger import info, warning, error
from ..utils.defaults import load_app_settings
from ..utils.history_storage import PinHistoryStorage
from ..utils.palette_loader import PaletteLoadError, load_palette


class ApplicationContext(QObject):
    """
    应用上下文，作为单一数据源 (Single Source of Truth)。
    持有 InteractionController，把状态变化以信号形式发布给 UI。
    """
    # =================
    # 信号 (Signals)
    # =================
    image_loaded = Signal()
    frame_changed = Signal(object)          # FrameDrawList
    sample_changed = Signal(object)         # ColorSample 或 None
    matches_changed = Signal(list)          # List[ColorMatch]
    history_changed = Signal()
    status_message_changed = Signal(str)
    pin_highlighted = Signal(object)        # pin id 或 None

    def __init__(self, settings: Optional[AppSettings] = None,
                 palette: Optional[Sequence[PaletteEntry]] = None,
                 storage=None, parent=None):
        super().__init__(parent)

        self.settings = settings or load_app_settings()
        self.startup_message = ""

        if palette is None:
            palette = self._load_default_palette()

        self.storage = storage if storage is not None else PinHistoryStorage()
        if self.settings.history_startup_behavior == "clear":
            # 启动时清空历史（策略由设置决定）
            self.storage.clear()

        self.controller = InteractionController(palette, storage=self.storage, settings=self.settings)
        info(f"ApplicationContext ready: {len(self.controller.palette)} palette entries, "
             f"{len(self.controller.store)} pins restored", "ApplicationContext")

    def _load_default_palette(self) -> Tuple[PaletteEntry, ...]:
        try:
            return load_palette(self.settings.palette_file)
        except PaletteLoadError as e:
            error(f"Palette unavailable: {e}", "ApplicationContext")
            self.startup_message = f"无法加载色卡: {e}"
            return ()

    # =================
    # 属性访问器 (Getters)
    # =================
    def has_image(self) -> bool:
        return self.controller.has_image

    def get_frame(self) -> Optional[FrameDrawList]:
        return self.controller.frame()

    def get_pins(self) -> List[Pin]:
        """新→旧"""
        return self.controller.store.list()

    def get_numbering(self) -> Dict[str, int]:
        return self.controller.store.numbering()

    def get_current_sample(self) -> Optional[ColorSample]:
        return self.controller.current_sample

    def get_current_matches(self) -> List[ColorMatch]:
        return list(self.controller.current_matches)

    def get_palette(self) -> Tuple[PaletteEntry, ...]:
        return self.controller.palette

    def get_aperture(self) -> int:
        return self.controller.aperture

    def get_minimap_raster(self):
        minimap = self.controller.minimap
        return minimap.raster if minimap is not None else None

    def snapshot(self) -> AnnotationSnapshot:
        return self.controller.snapshot()

    # =================
    # 图像
    # =================
    def needs_history_confirmation(self) -> bool:
        """加载新图像前是否需要询问用户清空历史"""
        return self.settings.new_image_history_behavior == "ask" and len(self.controller.store) > 0

    def load_image(self, file_path: str, viewport_size: Tuple[float, float],
                   clear_history: Optional[bool] = None) -> bool:
        """
        加载图像。失败时原有视口与标注点保持不变。

        Args:
            clear_history: None 时按 new_image_history_behavior 决定（'ask' 视为保留）
        """
        if clear_history is None:
            clear_history = self.settings.new_image_history_behavior == "clear"
        self.status_message_changed.emit(f"正在加载图像: {file_path}...")
        try:
            image = load_image(file_path)
            self.controller.load_image(image, viewport_size, clear_history=clear_history)
        except (LoadError, ValueError) as e:
            error(f"Failed to load image {file_path}: {e}", "ApplicationContext")
            self.status_message_changed.emit(f"无法加载图像: {e}")
            return False

        self.image_loaded.emit()
        self.sample_changed.emit(None)
        self.matches_changed.emit([])
        self.pin_highlighted.emit(None)
        if clear_history:
            self.history_changed.emit()
        self._emit_frame()
        self.status_message_changed.emit(f"已加载图像: {image.width}x{image.height}")
        return True

    # =================
    # 视口
    # =================
    def handle_pointer_event(self, event: PointerEvent) -> InteractionResult:
        result = self.controller.dispatch(event)
        if result.kind == RESULT_SAMPLE:
            self.sample_changed.emit(result.sample)
            self.matches_changed.emit([])
            self.status_message_changed.emit(f"已取色: {result.sample.hex}")
        elif result.kind == RESULT_SAMPLE_FAILED:
            self.sample_changed.emit(None)
            self.matches_changed.emit([])
            self.status_message_changed.emit(f"取色失败: {result.message}")
        elif result.kind == RESULT_PIN_HIT:
            self.pin_highlighted.emit(result.pin.id)
        if result.kind != RESULT_NONE:
            self._emit_frame()
        return result

    def set_zoom(self, zoom: float):
        self.controller.set_zoom(zoom)
        self._emit_frame()

    def reset_view(self):
        self.controller.reset_view()
        self._emit_frame()

    def resize_viewport(self, width: float, height: float):
        if width <= 0 or height <= 0:
            return
        self.controller.resize_viewport(width, height)
        self._emit_frame()

    def minimap_click(self, x: float, y: float):
        self.controller.minimap_click(x, y)
        self._emit_frame()

    def _emit_frame(self):
        frame = self.controller.frame()
        if frame is not None:
            self.frame_changed.emit(frame)

    # =================
    # 取色与匹配
    # =================
    def set_aperture(self, aperture: int):
        try:
            self.controller.set_aperture(aperture)
        except ValueError as e:
            warning(str(e), "ApplicationContext")
            self.status_message_changed.emit(str(e))
            return
        self.status_message_changed.emit(f"取色孔径: {aperture}x{aperture}")

    def find_matches(self) -> List[ColorMatch]:
        matches = self.controller.find_matches()
        self.matches_changed.emit(matches)
        if self.controller.current_sample is None:
            self.status_message_changed.emit("请先在图像上取色")
        elif not matches:
            self.status_message_changed.emit("色卡为空，无法匹配")
        return matches

    def select_match(self, index: int) -> Optional[Pin]:
        pin = self.controller.select_match(index)
        if pin is None:
            self.status_message_changed.emit("无法添加标注点")
            return None
        self.sample_changed.emit(None)
        self.matches_changed.emit([])
        self._after_history_mutation()
        self.status_message_changed.emit(f"已添加标注点: DMC {pin.palette_id}")
        return pin

    # =================
    # 标注点
    # =================
    def highlight_pin(self, pin_id: Optional[int]):
        self.controller.highlighted_pin_id = pin_id
        self.pin_highlighted.emit(pin_id)
        self._emit_frame()

    def delete_pin(self, pin_id: int) -> bool:
        removed = self.controller.delete_pin(pin_id)
        if removed:
            self._after_history_mutation()
        return removed

    def clear_pins(self):
        self.controller.clear_pins()
        self.sample_changed.emit(None)
        self.matches_changed.emit([])
        self.pin_highlighted.emit(None)
        self._after_history_mutation()
        self.status_message_changed.emit("已清空标注历史")

    def _after_history_mutation(self):
        self.history_changed.emit()
        self._emit_frame()
        if self.controller.store.persist_failed:
            self.status_message_changed.emit("标注历史保存失败，将在下次修改时重试")
