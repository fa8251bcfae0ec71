"""
核心数据类型定义
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, List, Tuple, Any, Optional
import numpy as np


def _parse_timestamp(value: Any) -> datetime:
    """解析 ISO8601 时间戳（兼容结尾的 'Z'）"""
    if isinstance(value, datetime):
        return value
    text = str(value)
    if text.endswith('Z'):
        text = text[:-1] + '+00:00'
    return datetime.fromisoformat(text)


@dataclass(frozen=True)
class RGBColor:
    """sRGB 颜色 (0-255)"""
    r: int
    g: int
    b: int

    @property
    def hex(self) -> str:
        return '#{:02X}{:02X}{:02X}'.format(self.r, self.g, self.b)

    def to_list(self) -> List[int]:
        return [self.r, self.g, self.b]

    @classmethod
    def from_sequence(cls, values) -> 'RGBColor':
        r, g, b = [int(v) for v in values]
        return cls(r, g, b)


@dataclass(frozen=True)
class PaletteEntry:
    """色卡中的一个目标颜色（Lab 已预先计算）"""
    id: str
    name: str
    hex: str
    rgb: Tuple[int, int, int]
    lab: Tuple[float, float, float]


@dataclass(frozen=True)
class ColorSample:
    """一次取色结果：平均颜色 + 取整后的图像坐标"""
    color: RGBColor
    image_x: int
    image_y: int
    aperture: int = 1

    @property
    def hex(self) -> str:
        return self.color.hex


@dataclass(frozen=True)
class ColorMatch:
    """色卡匹配结果"""
    entry: PaletteEntry
    delta_e: float

    @property
    def id(self) -> str:
        return self.entry.id

    @property
    def name(self) -> str:
        return self.entry.name

    @property
    def hex(self) -> str:
        return self.entry.hex


@dataclass(frozen=True)
class MatchQuality:
    """匹配质量档位，仅用于显示"""
    key: str
    label: str
    percent: int


@dataclass(frozen=True)
class Pin:
    """
    图像上的标注点。只能通过确认匹配创建，删除或清空时移除，从不原地修改。
    image_x/image_y 为图像坐标（非屏幕坐标）。
    """
    id: int
    palette_id: str
    name: str
    sampled_color: RGBColor
    matched_color: RGBColor
    delta_e: float
    image_x: int
    image_y: int
    created_at: datetime

    def to_dict(self) -> Dict[str, Any]:
        """转换为持久化记录"""
        return {
            'id': self.id,
            'paletteId': self.palette_id,
            'name': self.name,
            'matchedHex': self.matched_color.hex,
            'matchedRgb': self.matched_color.to_list(),
            'sampledHex': self.sampled_color.hex,
            'sampledRgb': self.sampled_color.to_list(),
            'deltaE': self.delta_e,
            'imageX': self.image_x,
            'imageY': self.image_y,
            'timestamp': self.created_at.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Pin':
        """从持久化记录恢复。缺少必需字段时抛出 KeyError/ValueError"""
        return cls(
            id=int(data['id']),
            palette_id=str(data['paletteId']),
            name=data.get('name', ''),
            sampled_color=RGBColor.from_sequence(data['sampledRgb']),
            matched_color=RGBColor.from_sequence(data['matchedRgb']),
            delta_e=float(data['deltaE']),
            image_x=int(data['imageX']),
            image_y=int(data['imageY']),
            created_at=_parse_timestamp(data['timestamp']),
        )


@dataclass
class ImageData:
    """
    已解码图像：RGBA uint8 像素缓存，加载后只读。
    取色与渲染共享同一份缓存，不再重复解码。
    """
    array: np.ndarray
    width: int = 0
    height: int = 0
    file_path: str = ""
    metadata: Dict[str, Any] = field(default_factory=dict)

    def __post_init__(self):
        if self.array.ndim != 3 or self.array.shape[2] != 4:
            raise ValueError(f"ImageData 需要 (H, W, 4) 的 RGBA 数组，实际为 {self.array.shape}")
        self.height, self.width = self.array.shape[:2]
        # 加载后只读
        self.array.flags.writeable = False

    @property
    def rgb(self) -> np.ndarray:
        """RGB 视图（不拷贝）"""
        return self.array[:, :, :3]


@dataclass(frozen=True)
class ViewportState:
    """视口状态快照（由 InteractionController 独占持有）"""
    viewport_width: float
    viewport_height: float
    image_width: int
    image_height: int
    base_scale: float
    zoom: float
    offset_x: float
    offset_y: float

    @property
    def scale(self) -> float:
        return self.zoom * self.base_scale


@dataclass(frozen=True)
class ImageTransform:
    """图像绘制变换：先平移再缩放"""
    offset_x: float
    offset_y: float
    scale: float


@dataclass(frozen=True)
class PinOverlay:
    """单个标注点的绘制命令"""
    pin_id: int
    dot: Tuple[float, float]
    label: Tuple[float, float]
    label_text: str
    line: Tuple[Tuple[float, float], Tuple[float, float]]
    highlighted: bool = False


@dataclass(frozen=True)
class OverviewRect:
    """缩略图中的可视区域指示框（缩略图像素坐标）"""
    left: float
    top: float
    width: float
    height: float
    visible: bool = True


@dataclass(frozen=True)
class CursorPreview:
    """悬停时的取色光标预览"""
    x: float
    y: float
    size: float
    color: Optional[RGBColor] = None


@dataclass(frozen=True)
class FrameDrawList:
    """每帧的绘制命令列表，由外部渲染器消费"""
    image: ImageTransform
    pins: Tuple[PinOverlay, ...] = ()
    overview: Optional[OverviewRect] = None
    cursor: Optional[CursorPreview] = None
    zoom_percent: int = 100
    highlighted_pin_id: Optional[int] = None


@dataclass(frozen=True)
class AnnotationSnapshot:
    """导出用只读快照 (pins, palette, numbering)，pins 按新→旧排列"""
    pins: Tuple[Pin, ...]
    palette: Tuple[PaletteEntry, ...]
    numbering: Dict[str, int]


@dataclass
class AppSettings:
    """应用可调参数（集中默认值）"""
    # 视口
    min_zoom: float = 0.5
    max_zoom: float = 16.0
    wheel_zoom_in: float = 1.1
    wheel_zoom_out: float = 0.9

    # 交互
    drag_threshold: float = 5.0

    # 标注点绘制与命中
    pin_dot_radius: float = 3.0
    pin_hit_radius: float = 8.0
    label_offset: Tuple[float, float] = (20.0, -20.0)
    label_hit_half_size: float = 12.0
    overlay_cull_margin: float = 40.0

    # 取色
    aperture_sizes: Tuple[int, ...] = (1, 3, 5, 7)
    default_aperture: int = 1

    # 匹配
    match_limit: int = 3
    palette_file: str = "dmc_sample.json"

    # 缩略图
    minimap_box: Tuple[int, int] = (120, 90)
    minimap_hide_tolerance: float = 2.0

    # 历史策略: 'restore' | 'clear'
    history_startup_behavior: str = "restore"
    # 加载新图像时: 'ask' | 'clear' | 'keep'
    new_image_history_behavior: str = "ask"

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'AppSettings':
        """从字典创建（忽略未知键，元组字段自动转换）

        数值不合法时抛出 ValueError，由加载器记录并回退。
        """
        if not isinstance(data, dict):
            raise ValueError(f"settings must be a JSON object, got {type(data).__name__}")
        defaults = cls()
        kwargs = {}
        for key, value in data.items():
            if not hasattr(defaults, key):
                continue
            if isinstance(getattr(defaults, key), tuple) and isinstance(value, list):
                value = tuple(value)
            kwargs[key] = value
        settings = cls(**kwargs)
        settings.validate()
        return settings

    def validate(self) -> None:
        if not (0 < float(self.min_zoom) <= float(self.max_zoom)):
            raise ValueError(f"invalid zoom range: {self.min_zoom}..{self.max_zoom}")
        sizes = self.aperture_sizes
        if not isinstance(sizes, tuple) or not sizes:
            raise ValueError(f"aperture_sizes must be a non-empty list: {sizes!r}")
        for size in sizes:
            if isinstance(size, bool) or not isinstance(size, int) or size < 1 or size % 2 == 0:
                raise ValueError(f"aperture size must be a positive odd integer: {size!r}")
        if self.default_aperture not in sizes:
            raise ValueError(f"default_aperture {self.default_aperture!r} not in {sizes!r}")

    def to_dict(self) -> Dict[str, Any]:
        return {k: (list(v) if isinstance(v, tuple) else v) for k, v in self.__dict__.items()}
