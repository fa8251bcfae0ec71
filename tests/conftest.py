import os

# 测试中关闭文件日志（必须在导入 dmcmatch 之前设置）
os.environ["DMCMATCH_DEBUG_LOG"] = "0"

import numpy as np
import pytest

from dmcmatch.core.color_science import rgb_to_lab, rgb_to_hex
from dmcmatch.core.data_types import PaletteEntry
from dmcmatch.core.image_manager import image_from_array
from dmcmatch.core.viewport import ViewportTransform
from dmcmatch.utils.history_storage import PinHistoryStorage


def make_entry(entry_id, rgb, name=None):
    return PaletteEntry(
        id=str(entry_id),
        name=name or f"Color {entry_id}",
        hex=rgb_to_hex(*rgb),
        rgb=tuple(rgb),
        lab=rgb_to_lab(*rgb),
    )


def make_image(width, height, rgb=(255, 0, 0)):
    array = np.zeros((height, width, 3), dtype=np.uint8)
    array[:, :] = rgb
    return image_from_array(array)


@pytest.fixture
def red_image():
    return make_image(100, 100, (255, 0, 0))


@pytest.fixture
def gradient_image():
    """r = x, g = y, b = 0 (x, y < 256)"""
    width, height = 200, 150
    xs = np.arange(width, dtype=np.uint8)
    ys = np.arange(height, dtype=np.uint8)
    array = np.zeros((height, width, 3), dtype=np.uint8)
    array[:, :, 0] = xs[np.newaxis, :]
    array[:, :, 1] = ys[:, np.newaxis]
    return image_from_array(array)


@pytest.fixture
def palette():
    return (
        make_entry("310", (0, 0, 0), "Black"),
        make_entry("B5200", (255, 255, 255), "Snow White"),
        make_entry("666", (255, 0, 0), "Bright Red"),
        make_entry("700", (7, 115, 27), "Bright Green"),
        make_entry("797", (19, 71, 125), "Royal Blue"),
        make_entry("307", (253, 237, 84), "Lemon"),
    )


@pytest.fixture
def viewport():
    # 800x600 图像，400x300 视口，base_scale = 0.5
    return ViewportTransform(800, 600, 400, 300)


@pytest.fixture
def history_storage(tmp_path):
    return PinHistoryStorage(tmp_path / "history.json")
