"""
标注点历史存储
以单个 JSON 文件作为键值存储，标注点列表保存在 'dmcHistory' 键下
"""

import json
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, Union

from dmcmatch.core.data_types import Pin
from dmcmatch.utils.app_paths import user_config_dir
from dmcmatch.utils.debug_logger import debug, warning, log_file_operation


HISTORY_KEY = "dmcHistory"
HISTORY_FILENAME = "history.json"


def default_history_path() -> Path:
    return user_config_dir() / HISTORY_FILENAME


class PinHistoryStorage:
    """
    标注点持久化。

    - load_pins(): 启动时读取一次；损坏的记录跳过并记录警告
    - save_pins(): 每次修改后写入完整列表（新→旧），保留文件中的其他键
    写入失败不抛出异常，返回 False，由调用方在下次修改时重试。
    """

    def __init__(self, file_path: Optional[Union[str, Path]] = None, key: str = HISTORY_KEY):
        self.file_path = Path(file_path) if file_path is not None else default_history_path()
        self.key = key

    def _read_all(self) -> Dict[str, Any]:
        if not self.file_path.exists():
            return {}
        with open(self.file_path, 'r', encoding='utf-8') as f:
            data = json.load(f)
        if not isinstance(data, dict):
            raise ValueError(f"历史文件顶层必须是对象: {self.file_path}")
        return data

    def load_pins(self) -> List[Pin]:
        """读取标注点（新→旧）。文件缺失或无法解析时返回空列表"""
        try:
            data = self._read_all()
        except (OSError, ValueError) as e:
            log_file_operation("Load history", str(self.file_path), success=False, error=str(e),
                               module="HistoryStorage")
            return []

        records = data.get(self.key, [])
        if not isinstance(records, list):
            warning(f"History key '{self.key}' is not a list, ignoring", "HistoryStorage")
            return []

        pins = []
        seen_ids = set()
        for index, record in enumerate(records):
            try:
                pin = Pin.from_dict(record)
            except (KeyError, TypeError, ValueError) as e:
                warning(f"Skipping corrupt history record #{index}: {e}", "HistoryStorage")
                continue
            if pin.id in seen_ids:
                warning(f"Skipping duplicate history record id {pin.id}", "HistoryStorage")
                continue
            seen_ids.add(pin.id)
            pins.append(pin)
        debug(f"Loaded {len(pins)} pins from {self.file_path}", "HistoryStorage")
        return pins

    def save_pins(self, pins: Sequence[Pin]) -> bool:
        """写入完整标注点列表；成功返回 True"""
        try:
            try:
                data = self._read_all()
            except ValueError:
                # 文件已损坏：以新内容覆盖
                data = {}
            data[self.key] = [pin.to_dict() for pin in pins]

            # 确保目录存在
            self.file_path.parent.mkdir(parents=True, exist_ok=True)
            with open(self.file_path, 'w', encoding='utf-8') as f:
                json.dump(data, f, indent=2, ensure_ascii=False)
        except OSError as e:
            log_file_operation("Save history", str(self.file_path), success=False, error=str(e),
                               module="HistoryStorage")
            return False
        log_file_operation("Save history", str(self.file_path), module="HistoryStorage")
        return True

    def clear(self) -> bool:
        return self.save_pins([])
