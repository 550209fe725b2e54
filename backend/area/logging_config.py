"""
Logging configuration for Area.

- New timestamped log file on every server start
- Keeps last N files (configurable)
- Fixed-width format, one `area.*` logger per module
- Console output in dev mode (with colour)

This is the operator log. The audit trail users see lives in the Store.
"""

from __future__ import annotations

import copy
import logging
import sys
from datetime import datetime
from pathlib import Path
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .config import Config

# Third-party loggers that are chatty at INFO
_QUIET_LOGGERS = ("httpx", "httpcore", "apscheduler")


class AreaFormatter(logging.Formatter):
    """Fixed-width format: timestamp  LEVEL  [logger]  message"""

    FMT = "%(asctime)s  %(levelname)-7s [%(name)-18s] %(message)s"
    DATE_FMT = "%Y-%m-%d %H:%M:%S"

    def format(self, record: logging.LogRecord) -> str:
        # Records are shared between handlers; decorate a copy.
        record = copy.copy(record)
        if record.name.startswith("area."):
            record.name = record.name[len("area."):]
        return super().format(record)


class ColorFormatter(AreaFormatter):
    COLORS = {
        "DEBUG": "\033[36m",
        "INFO": "\033[32m",
        "WARNING": "\033[33m",
        "ERROR": "\033[31m",
        "CRITICAL": "\033[35m",
    }
    RESET = "\033[0m"

    def format(self, record: logging.LogRecord) -> str:
        record = copy.copy(record)
        color = self.COLORS.get(record.levelname, "")
        record.levelname = f"{color}{record.levelname}{self.RESET}"
        return super().format(record)


def configure_logging(config: "Config") -> Path:
    """
    Set up logging for this server run.
    Creates a new timestamped log file. Cleans up old files.
    Returns the path of the new log file.
    """
    log_dir = config.log_dir
    log_dir.mkdir(parents=True, exist_ok=True)

    # Clean up old log files
    existing = sorted(log_dir.glob("*.log"))
    keep = config.log_keep
    for old in existing[: max(0, len(existing) - keep + 1)]:
        try:
            old.unlink()
        except OSError:
            pass

    filename = datetime.now().strftime("%Y-%m-%d_%H%M%S") + ".log"
    log_file = log_dir / filename

    level = getattr(logging, config.log_level, logging.INFO)

    file_handler = logging.FileHandler(log_file, encoding="utf-8")
    file_handler.setFormatter(AreaFormatter(
        fmt=AreaFormatter.FMT,
        datefmt=AreaFormatter.DATE_FMT,
    ))
    file_handler.setLevel(level)

    handlers: list[logging.Handler] = [file_handler]

    if config.dev_mode:
        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setFormatter(ColorFormatter(
            fmt=AreaFormatter.FMT,
            datefmt=AreaFormatter.DATE_FMT,
        ))
        console_handler.setLevel(level)
        handlers.append(console_handler)

    area_logger = logging.getLogger("area")
    area_logger.setLevel(level)
    for h in list(area_logger.handlers):
        area_logger.removeHandler(h)
        h.close()
    for h in handlers:
        area_logger.addHandler(h)
    area_logger.propagate = False

    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    root = logging.getLogger()
    root.setLevel(logging.WARNING)

    return log_file
