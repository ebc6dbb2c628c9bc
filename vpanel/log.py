"""Timestamped console logging shared by the panel components."""

from __future__ import annotations

import sys
from datetime import datetime

INFO = "INF"
ERROR = "ERR"

TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S"


def format_log_line(module: str, level: str, message: str, when: datetime) -> str:
    """Render one log line as ``[timestamp] [level] [module] message``."""
    return f"[{when.strftime(TIMESTAMP_FORMAT)}] [{level}] [{module}] {message}"


def log_message(module: str, level: str, message: str) -> None:
    """Write a log line: error levels go to stderr, everything else to stdout."""
    stream = sys.stderr if level.startswith("E") else sys.stdout
    print(format_log_line(module, level, message, datetime.now()), file=stream, flush=True)


class Loggable:
    """Mixin giving a component ``log_info`` and ``log_error`` tagged with its name.

    Subclasses may set a ``module_name`` class attribute; otherwise the class
    name is used.
    """

    @property
    def module_name(self) -> str:
        return type(self).__name__

    def log_info(self, message: str) -> None:
        log_message(self.module_name, INFO, message)

    def log_error(self, message: str) -> None:
        log_message(self.module_name, ERROR, message)