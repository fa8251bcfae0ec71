from __future__ import annotations

from pathlib import Path
import os
import sys


APP_NAME = "DMCMatch"


def _exe_dir() -> Path:
    """Return the directory where the running executable/module lives."""
    try:
        return Path(sys.argv[0]).resolve().parent
    except (OSError, RuntimeError):
        return Path.cwd()


def _pkg_root() -> Path:
    """Return package path: <repo>/dmcmatch"""
    return Path(__file__).resolve().parent.parent


def user_config_dir() -> Path:
    """Return the per-user config directory (not created here).

    - macOS:   ~/Library/Application Support/DMCMatch
    - Windows: %LOCALAPPDATA%/DMCMatch（缺省为 ~/AppData/Local）
    - 其他:    $XDG_CONFIG_HOME/DMCMatch（缺省为 ~/.config）
    """
    home = Path.home()
    if sys.platform == "darwin":
        return home / "Library" / "Application Support" / APP_NAME
    if sys.platform.startswith("win"):
        base = os.environ.get("LOCALAPPDATA")
        return (Path(base) if base else home / "AppData" / "Local") / APP_NAME
    base = os.environ.get("XDG_CONFIG_HOME")
    return (Path(base) if base else home / ".config") / APP_NAME


def resolve_data_path(*parts: str) -> Path:
    """Resolve a data file path with unified search order.

    Search priority:
      1) Executable dir (binary adjacent): ./<parts>
      2) Package data: dmcmatch/<parts>
      3) Current working directory (fallback): ./<parts>

    Raises FileNotFoundError if none exists.
    """
    candidates = [
        _exe_dir().joinpath(*parts),
        _pkg_root().joinpath(*parts),
        Path.cwd().joinpath(*parts),
    ]
    for p in candidates:
        if p.exists():
            return p
    raise FileNotFoundError("Data path not found: " + "/".join(parts))


def get_data_dir(name: str) -> Path:
    """Return a data directory (config) with unified search order.

    The directory is not created here; it must exist in one of the candidate locations.
    """
    if name not in {"config"}:
        raise ValueError(f"Unsupported data dir: {name}")
    return resolve_data_path(name)
