"""
默认设置加载器
集中式默认值入口：优先从 config/defaults/default.json 读取；若不存在，回退到内置 AppSettings。
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import List, Optional

from dmcmatch.core.data_types import AppSettings
from dmcmatch.utils.app_paths import user_config_dir, get_data_dir
from dmcmatch.utils.debug_logger import info, warning


_DEFAULT_SETTINGS_CACHE: Optional[AppSettings] = None
_DEFAULT_SETTINGS_LOGGED: bool = False


def _candidate_paths() -> List[Path]:
    # 候选路径，优先级从高到低：
    # 1. 用户配置目录中的 defaults
    # 2. 包内 config/defaults
    candidates = [user_config_dir() / "config" / "defaults" / "default.json"]
    try:
        candidates.append(get_data_dir("config") / "defaults" / "default.json")
    except FileNotFoundError:
        pass
    return candidates


def load_app_settings(candidate_paths: Optional[List[Path]] = None) -> AppSettings:
    """加载应用设置（首次加载后缓存；显式传入 candidate_paths 时不使用缓存）"""
    global _DEFAULT_SETTINGS_CACHE, _DEFAULT_SETTINGS_LOGGED
    use_cache = candidate_paths is None
    if use_cache and _DEFAULT_SETTINGS_CACHE is not None:
        return _DEFAULT_SETTINGS_CACHE

    paths = _candidate_paths() if candidate_paths is None else list(candidate_paths)
    settings = None
    for default_path in paths:
        if not Path(default_path).exists():
            continue
        try:
            with open(default_path, "r", encoding="utf-8") as f:
                data = json.load(f)
            settings = AppSettings.from_dict(data)
            info(f"Loaded settings from {default_path}", "Defaults")
            break
        except (OSError, ValueError, TypeError) as e:
            # 解析失败，记录错误并尝试下一个
            if not _DEFAULT_SETTINGS_LOGGED:
                warning(f"Failed to load settings {default_path}: {e}", "Defaults")
                _DEFAULT_SETTINGS_LOGGED = True

    if settings is None:
        # 回退到内置默认（集中唯一硬编码）
        info(f"No settings file found, using built-in defaults. Tried: {[str(p) for p in paths]}", "Defaults")
        settings = AppSettings()

    if use_cache:
        _DEFAULT_SETTINGS_CACHE = settings
    return settings


def clear_settings_cache() -> None:
    global _DEFAULT_SETTINGS_CACHE, _DEFAULT_SETTINGS_LOGGED
    _DEFAULT_SETTINGS_CACHE = None
    _DEFAULT_SETTINGS_LOGGED = False
