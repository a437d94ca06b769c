"""
Centralized Logging System
==========================

Handler wiring for the command line runner and progress reporting for the
search and simulation loops.

Key Features:
- Console output on stderr (stdout carries the JSON report)
- Optional rotating log files under a caller-chosen directory
- Progress tracking with rate and ETA for trial loops

Modules log through ``logging.getLogger(__name__)``; this module only
attaches handlers to the root logger and offers the progress helper.
"""

import logging
import logging.handlers
import sys
import threading
import time
from pathlib import Path
from typing import Any, Dict

LEVEL_MAP = {
    "DEBUG": logging.DEBUG,
    "INFO": logging.INFO,
    "WARNING": logging.WARNING,
    "ERROR": logging.ERROR,
    "CRITICAL": logging.CRITICAL
}

LOG_FILE_NAME = "autobalance.log"


class SafeLogger:
    """
    Owns the handlers of one named logger

    Rebuilding a SafeLogger for the same name replaces the previous
    handlers, so repeated setup never duplicates output.
    """

    def __init__(self, name: str,
                 log_dir: str = "logs",
                 level: int = logging.INFO,
                 max_file_size: int = 10 * 1024 * 1024,  # 10MB
                 backup_count: int = 3,
                 console_output: bool = True,
                 file_output: bool = True):
        """
        Args:
            name: Logger name, ``root`` for the root logger
            log_dir: Directory for the rotating log file
            level: Logging level applied to the logger and its handlers
            max_file_size: Max size before rotation (bytes)
            backup_count: Number of rotated files to keep
            console_output: Attach a stderr handler
            file_output: Attach a rotating file handler
        """
        self.name = name
        self.log_dir = Path(log_dir)
        self.level = level
        self.logger = logging.getLogger("" if name == "root" else name)
        self.logger.setLevel(level)
        self.logger.handlers.clear()

        if console_output:
            console_handler = logging.StreamHandler(sys.stderr)
            console_handler.setLevel(level)
            console_handler.setFormatter(logging.Formatter('%(levelname)s: %(message)s'))
            self.logger.addHandler(console_handler)

        if file_output:
            self.log_dir.mkdir(parents=True, exist_ok=True)
            file_handler = logging.handlers.RotatingFileHandler(
                self.log_dir / LOG_FILE_NAME,
                maxBytes=max_file_size,
                backupCount=backup_count
            )
            file_handler.setLevel(level)
            file_handler.setFormatter(logging.Formatter(
                '%(asctime)s | %(name)s | %(levelname)s | %(message)s',
                datefmt='%Y-%m-%d %H:%M:%S'
            ))
            self.logger.addHandler(file_handler)


class ProgressTracker:
    """
    Progress tracker for long-running loops

    Logs roughly fifty times over the whole run with rate and ETA at DEBUG,
    and a start/finish line at INFO.
    """

    def __init__(self, total: int, name: str, logger: logging.Logger):
        self.total = total
        self.name = name
        self.logger = logger

        self.current = 0
        self.start_time = time.time()
        self.last_update = 0
        self.update_interval = max(1, total // 50)

        self._lock = threading.Lock()

        self.logger.info(f"Starting {self.name}: {total:,} steps")

    def update(self, n: int = 1):
        """Advance the counter and log when the next interval is reached"""
        with self._lock:
            self.current += n

            if (self.current - self.last_update) >= self.update_interval or self.current >= self.total:
                self._log_progress()
                self.last_update = self.current

    def _log_progress(self):
        if self.total <= 0:
            return

        elapsed = time.time() - self.start_time
        progress_pct = min(100.0, (self.current / self.total) * 100)
        rate = self.current / elapsed if elapsed > 0 else 0.0
        eta = (self.total - self.current) / rate if rate > 0 else 0.0
        eta_str = f" | ETA: {eta:.0f}s" if eta > 0 else ""

        self.logger.debug(
            f"{self.name}: {self.current:,}/{self.total:,} "
            f"({progress_pct:.1f}%) | Rate: {rate:.1f}/s{eta_str}"
        )

    def finish(self):
        elapsed = time.time() - self.start_time
        self.logger.info(f"{self.name} Complete: {self.current:,} steps in {elapsed:.1f}s")


_root_logger = None
_root_lock = threading.Lock()


def setup_logging(log_dir: str = "logs",
                  level: str = "INFO",
                  console: bool = True,
                  files: bool = True) -> Dict[str, Any]:
    """
    Configure the root logger for a command line run

    Calling it again replaces the previous configuration.

    Args:
        log_dir: Directory for log files
        level: Global logging level name
        console: Enable stderr output
        files: Enable rotating file output

    Returns:
        Dictionary with setup results
    """
    global _root_logger

    try:
        log_level = LEVEL_MAP.get(level.upper(), logging.INFO)

        with _root_lock:
            _root_logger = SafeLogger("root",
                                      log_dir=log_dir,
                                      level=log_level,
                                      console_output=console,
                                      file_output=files)

        _root_logger.logger.info(f"Logging system initialized - Level: {level}, "
                                 f"Directory: {log_dir if files else 'disabled'}")

        return {
            'success': True,
            'log_dir': log_dir,
            'level': level,
            'console_output': console,
            'file_output': files
        }

    except OSError as e:
        print(f"Failed to setup logging: {e}", file=sys.stderr)
        return {
            'success': False,
            'error': str(e)
        }
