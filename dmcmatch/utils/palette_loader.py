#!/usr/bin/env python3
"""
色卡（DMC 绣线）加载器

JSON schema:
    {
        "name": "DMC",
        "colors": [
            {"id": "321", "name": "Red", "hex": "#C72B3B", "rgb": [199, 43, 59], "lab": [43.4, 60.1, 30.2]},
            ...
        ]
    }

职责：
- 加载并校验色卡 JSON（结构损坏时抛出 PaletteLoadError）
- 兼容 dmc_id / name_en 字段名
- lab 缺失时在加载时一次性计算（向量化）
- 返回不可变的 PaletteEntry 元组，运行期间不再修改
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Dict, List, Tuple, Union

import numpy as np

from dmcmatch.core.color_science import hex_to_rgb, rgb_array_to_lab, rgb_to_hex
from dmcmatch.core.data_types import PaletteEntry
from dmcmatch.utils.app_paths import resolve_data_path
from dmcmatch.utils.debug_logger import info, log_file_operation


class PaletteLoadError(Exception):
    """色卡加载错误"""
    pass


def load_palette(filename: Union[str, Path]) -> Tuple[PaletteEntry, ...]:
    """
    加载色卡

    Args:
        filename: config/palettes 下的文件名，或已存在的文件路径

    Returns:
        PaletteEntry 元组（文件中的顺序）

    Raises:
        PaletteLoadError: 文件不存在、JSON 格式错误或记录结构错误
    """
    data = _load_palette_json(filename)
    colors = data.get("colors") if isinstance(data, dict) else None
    if not isinstance(colors, list):
        raise PaletteLoadError(f"色卡文件 {filename} 缺少 colors 数组")

    records = [_normalize_record(record, index, filename) for index, record in enumerate(colors)]
    _fill_missing_lab(records)

    entries = tuple(
        PaletteEntry(
            id=r["id"],
            name=r["name"],
            hex=r["hex"],
            rgb=r["rgb"],
            lab=r["lab"],
        )
        for r in records
    )
    info(f"Loaded palette {filename}: {len(entries)} entries", "PaletteLoader")
    return entries


def _load_palette_json(filename: Union[str, Path]) -> Any:
    """加载色卡 JSON 文件"""
    path = Path(filename)
    try:
        if not path.is_file():
            path = resolve_data_path("config", "palettes", str(filename))
        with open(path, 'r', encoding='utf-8') as f:
            data = json.load(f)
        log_file_operation("Load palette", str(path), module="PaletteLoader")
        return data
    except FileNotFoundError:
        log_file_operation("Load palette", str(filename), success=False, error="not found", module="PaletteLoader")
        raise PaletteLoadError(f"无法加载色卡文件: {filename}")
    except (json.JSONDecodeError, OSError, UnicodeDecodeError) as e:
        log_file_operation("Load palette", str(path), success=False, error=str(e), module="PaletteLoader")
        raise PaletteLoadError(f"色卡文件格式错误: {filename} - {e}")


def _normalize_record(record: Any, index: int, filename) -> Dict[str, Any]:
    """校验单条记录并统一字段名"""
    if not isinstance(record, dict):
        raise PaletteLoadError(f"色卡 {filename} 第 {index} 条记录不是对象")

    entry_id = record.get("id", record.get("dmc_id"))
    if entry_id is None or str(entry_id).strip() == "":
        raise PaletteLoadError(f"色卡 {filename} 第 {index} 条记录缺少 id")
    name = record.get("name", record.get("name_en", ""))

    try:
        if "rgb" in record:
            rgb = tuple(int(v) for v in record["rgb"])
            if len(rgb) != 3:
                raise ValueError(f"rgb 需要 3 个分量: {record['rgb']}")
        elif "hex" in record:
            rgb = hex_to_rgb(str(record["hex"]))
        else:
            raise ValueError("缺少 rgb 与 hex")
        # 统一为大写 '#RRGGBB'
        hex_value = rgb_to_hex(*hex_to_rgb(str(record["hex"]))) if "hex" in record else rgb_to_hex(*rgb)

        lab = None
        if record.get("lab") is not None:
            lab = tuple(float(v) for v in record["lab"])
            if len(lab) != 3:
                raise ValueError(f"lab 需要 3 个分量: {record['lab']}")
    except (TypeError, ValueError) as e:
        raise PaletteLoadError(f"色卡 {filename} 第 {index} 条记录 ({entry_id}) 无效: {e}")

    return {"id": str(entry_id), "name": str(name), "hex": hex_value, "rgb": rgb, "lab": lab}


def _fill_missing_lab(records: List[Dict[str, Any]]) -> None:
    """批量计算缺失的 Lab"""
    missing = [r for r in records if r["lab"] is None]
    if not missing:
        return
    labs = rgb_array_to_lab(np.array([r["rgb"] for r in missing], dtype=np.float64))
    for record, lab in zip(missing, labs):
        record["lab"] = tuple(float(v) for v in lab)
