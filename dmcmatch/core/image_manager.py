"""
图像加载
一次性解码为只读 RGBA 缓存，供取色和渲染共享
"""

from pathlib import Path
from typing import Union

import numpy as np
from PIL import Image, ImageOps, UnidentifiedImageError

from .data_types import ImageData
from ..utils.debug_logger import info, log_file_operation


class LoadError(Exception):
    """图像无法解码或格式不受支持"""
    pass


def image_from_array(array: np.ndarray, file_path: str = "") -> ImageData:
    """
    从 numpy 数组创建 ImageData。

    接受 (H, W)、(H, W, 3)、(H, W, 4) 的 uint8 数组，统一转为 RGBA 拷贝。
    """
    arr = np.asarray(array)
    if arr.dtype != np.uint8:
        raise LoadError(f"不支持的像素类型: {arr.dtype}")
    if arr.ndim == 2:
        arr = np.stack([arr, arr, arr], axis=-1)
    if arr.ndim != 3 or arr.shape[2] not in (3, 4):
        raise LoadError(f"不支持的图像形状: {arr.shape}")
    if arr.shape[0] == 0 or arr.shape[1] == 0:
        raise LoadError("图像尺寸为 0")
    if arr.shape[2] == 3:
        alpha = np.full(arr.shape[:2] + (1,), 255, dtype=np.uint8)
        arr = np.concatenate([arr, alpha], axis=-1)
    else:
        arr = arr.copy()
    return ImageData(array=np.ascontiguousarray(arr), file_path=file_path)


def load_image(file_path: Union[str, Path]) -> ImageData:
    """
    读取图像文件（Pillow），应用 EXIF 方向并转换为 RGBA。

    Raises:
        LoadError: 文件不存在、损坏或格式不受支持
    """
    path = Path(file_path)
    try:
        with Image.open(path) as img:
            img = ImageOps.exif_transpose(img)
            if img.mode != 'RGBA':
                img = img.convert('RGBA')
            array = np.array(img, dtype=np.uint8)
    except (FileNotFoundError, UnidentifiedImageError, Image.DecompressionBombError, OSError, ValueError) as e:
        log_file_operation("Load image", str(path), success=False, error=str(e), module="ImageManager")
        raise LoadError(f"无法加载图像 {path}: {e}") from e

    image = image_from_array(array, file_path=str(path))
    info(f"Loaded image {path.name} ({image.width}x{image.height})", "ImageManager")
    return image
