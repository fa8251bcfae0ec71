#!/usr/bin/env python3
"""
Debug Logger for DMC Match
Provides centralized logging for image loading, palette/history I/O and interaction events
"""

import os
import sys
import logging
from pathlib import Path
from typing import Optional
import platform
from datetime import datetime, timedelta

from .app_paths import user_config_dir


LOG_RETENTION_DAYS = 30


class DMCMatchDebugLogger:
    """Centralized debug logger for DMC Match application"""

    _instance: Optional['DMCMatchDebugLogger'] = None
    _logger: Optional[logging.Logger] = None
    _log_file: Optional[Path] = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
            cls._instance._initialize()
        return cls._instance

    def _initialize(self):
        """Initialize the debug logger"""
        self.debug_enabled = self._should_enable_debug()

        if not self.debug_enabled:
            return

        self._log_file = self._get_log_file_path()
        self._ensure_log_directory()

        self._setup_logger()

        self.info("=" * 60)
        self.info(f"DMC Match Debug Logger initialized at {datetime.now()}")
        self.info(f"Platform: {platform.system()} {platform.release()}")
        self.info(f"Python: {sys.version}")
        self.info(f"Working directory: {Path.cwd()}")
        self.info("=" * 60)

    def _should_enable_debug(self) -> bool:
        """Check if debug logging should be enabled (DMCMATCH_DEBUG_LOG=0 disables it)"""
        return os.environ.get("DMCMATCH_DEBUG_LOG", "1").strip().lower() not in ("0", "false", "off", "no")

    def _get_log_file_path(self) -> Path:
        """Get the path for the debug log file"""
        log_dir = user_config_dir() / "logs"

        # Use timestamp in filename for new sessions
        timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
        return log_dir / f"dmcmatch_debug_{timestamp}.log"

    def _ensure_log_directory(self):
        """Ensure the log directory exists and cleanup old logs"""
        if not self._log_file:
            return
        try:
            self._log_file.parent.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            print(f"Warning: Could not create log directory: {e}")
            self._log_file = None
            return
        self._cleanup_old_logs()

    def _cleanup_old_logs(self):
        """Remove log files older than LOG_RETENTION_DAYS"""
        log_dir = self._log_file.parent
        cutoff_date = datetime.now() - timedelta(days=LOG_RETENTION_DAYS)

        deleted_count = 0
        for log_file in log_dir.glob("dmcmatch_debug_*.log"):
            try:
                file_mtime = datetime.fromtimestamp(log_file.stat().st_mtime)
                if file_mtime < cutoff_date:
                    log_file.unlink()
                    deleted_count += 1
            except (OSError, ValueError):
                # Skip files that can't be processed
                continue

        if deleted_count > 0:
            print(f"Debug logger: Cleaned up {deleted_count} old log files (older than {LOG_RETENTION_DAYS} days)")

    def _setup_logger(self):
        """Set up the logger with file and console handlers"""
        self._logger = logging.getLogger('dmcmatch_debug')
        self._logger.setLevel(logging.DEBUG)

        # Clear any existing handlers
        self._logger.handlers.clear()

        formatter = logging.Formatter(
            '%(asctime)s.%(msecs)03d [%(levelname)8s] %(name)s:%(lineno)d - %(message)s',
            datefmt='%Y-%m-%d %H:%M:%S'
        )

        if self._log_file:
            try:
                file_handler = logging.FileHandler(self._log_file, encoding='utf-8')
                file_handler.setLevel(logging.DEBUG)
                file_handler.setFormatter(formatter)
                self._logger.addHandler(file_handler)
            except OSError as e:
                print(f"Warning: Could not set up file logging: {e}")

        # Console handler (only for ERROR and above to avoid spam)
        console_handler = logging.StreamHandler(sys.stderr)
        console_handler.setLevel(logging.ERROR)
        console_handler.setFormatter(formatter)
        self._logger.addHandler(console_handler)

        # Prevent propagation to avoid duplicate messages
        self._logger.propagate = False

    def _log(self, level: int, message: str, module: str = None):
        if self.debug_enabled and self._logger:
            module_prefix = f"[{module}] " if module else ""
            self._logger.log(level, f"{module_prefix}{message}", stacklevel=3)

    def debug(self, message: str, module: str = None):
        """Log debug message"""
        self._log(logging.DEBUG, message, module)

    def info(self, message: str, module: str = None):
        """Log info message"""
        self._log(logging.INFO, message, module)

    def warning(self, message: str, module: str = None):
        """Log warning message"""
        self._log(logging.WARNING, message, module)

    def error(self, message: str, module: str = None):
        """Log error message"""
        self._log(logging.ERROR, message, module)

    def log_file_operation(self, operation: str, file_path: str, success: bool = True, error: str = None, module: str = None):
        """Log file operation details"""
        if not self.debug_enabled:
            return

        status = "SUCCESS" if success else "FAILED"
        message = f"{operation}: {file_path} - {status}"

        if success:
            self.debug(message, module)
        else:
            self.error(f"{message} - {error}", module)

    def get_log_file_path(self) -> Optional[Path]:
        """Get the current log file path"""
        return self._log_file if self.debug_enabled else None

    def is_enabled(self) -> bool:
        """Check if debug logging is enabled"""
        return self.debug_enabled


# Global debug logger instance
debug_logger = DMCMatchDebugLogger()

# Convenience functions
def debug(message: str, module: str = None):
    """Log debug message"""
    debug_logger.debug(message, module)

def info(message: str, module: str = None):
    """Log info message"""
    debug_logger.info(message, module)

def warning(message: str, module: str = None):
    """Log warning message"""
    debug_logger.warning(message, module)

def error(message: str, module: str = None):
    """Log error message"""
    debug_logger.error(message, module)

def log_file_operation(operation: str, file_path: str, success: bool = True, error: str = None, module: str = None):
    """Log file operation details"""
    debug_logger.log_file_operation(operation, file_path, success, error, module)

def is_debug_enabled() -> bool:
    """Check if debug logging is enabled"""
    return debug_logger.is_enabled()

def get_log_file_path() -> Optional[Path]:
    """Get the current log file path"""
    return debug_logger.get_log_file_path()
