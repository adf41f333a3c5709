"""
StakeX Logging
==============

Routes the standard `logging` module through `rich` with a StakeX theme that
highlights account addresses, token amounts and pool/token event names.

Usage:
    >>> from stakex.logger import get_logger
    >>> logger = get_logger(__name__)
    >>> logger.info("Pool deployed")
"""

import logging
import logging.handlers
import re
import sys
import threading
import time
from pathlib import Path
from typing import Optional

from rich.console import Console
from rich.highlighter import RegexHighlighter
from rich.logging import RichHandler
from rich.theme import Theme

from .constants import (
    LOG_LEVEL,
    LOG_FORMAT,
    LOG_DATE_FORMAT,
    LOG_MAX_FILE_SIZE,
    LOG_BACKUP_COUNT,
    LOG_CONSOLE_HIGHLIGHTING,
    LOG_FILE_OUTPUT,
)


LOG_FILE_PATH = Path(__file__).parent.parent / "logs" / "stakex.log"

STAKEX_THEME = Theme(
    {
        "stakex.address":       "cyan",
        "stakex.amount":        "bold white",
        "stakex.event":         "bold magenta",
        "stakex.level_error":   "bold red",
        "stakex.level_info":    "bold green",
        "stakex.level_warning": "bold yellow",
        "stakex.logger_name":   "magenta",
        "stakex.timestamp":     "bold cyan",
    }
)

_lock = threading.Lock()
_configured = False


class SanitizingFormatter(logging.Formatter):
    """
    Formatter that drops ANSI escapes and control characters from log lines.

    Account ids and token names are caller supplied, so they must not be able
    to move the cursor or forge extra log lines.
    """

    _unsafe_re = re.compile(
        r"\x1b\[[0-?]*[ -/]*[@-~]"      # CSI sequences
        r"|\x1b[@-Z\\-_]"               # lone ESC sequences
        r"|[\x00-\x08\x0B-\x1F\x7F]"    # controls except tab and newline
    )

    @classmethod
    def sanitize(cls, text: str) -> str:
        return cls._unsafe_re.sub("", text) if text else text

    def format(self, record: logging.LogRecord) -> str:
        return self.sanitize(super().format(record))


class StakeXLogHighlighter(RegexHighlighter):
    """Rich highlighter for addresses, amounts and pool/token event names."""

    base_style = "stakex."
    highlights = [
        r"(?P<address>\b0x[0-9a-fA-F]{40}\b)",
        r"(?P<amount>(?<![\w.])\d+(?:\.\d+)?(?=\s+[A-Z]{2,6}\b))",
        r"(?P<event>\b(Staked|Unstaked|RewardsClaimed|Transfer|TransferFrom|Approve|Mint)\b)",
        r"(?P<level_error>\b(ERROR|CRITICAL)\b)",
        r"(?P<level_info>\bINFO\b)",
        r"(?P<level_warning>\bWARNING\b)",
        r"\-\s+\w+\s+-\s+(?P<logger_name>[\w.]+)(?=\s-\s)",
        r"(?P<timestamp>^(.*?)UTC)",
    ]


def configure(
    log_level: Optional[str] = None,
    log_file: Optional[Path] = None,
    file_output: Optional[bool] = None,
) -> None:
    """
    Install console (and optionally rotating file) handlers on the root logger.

    Runs once per process; later calls are no-ops.
    """
    global _configured
    with _lock:
        if _configured:
            return

        numeric_level = getattr(logging, str(log_level or LOG_LEVEL).upper(), logging.INFO)
        root_logger = logging.getLogger()
        root_logger.setLevel(numeric_level)
        root_logger.handlers.clear()

        formatter = SanitizingFormatter(fmt=str(LOG_FORMAT), datefmt=f"{LOG_DATE_FORMAT} UTC")
        formatter.converter = time.gmtime

        if LOG_CONSOLE_HIGHLIGHTING:
            console_handler = RichHandler(
                console=Console(theme=STAKEX_THEME, highlight=False),
                highlighter=StakeXLogHighlighter(),
                keywords=[],
                rich_tracebacks=True,
                show_path=False,
                show_time=False,
                show_level=False,
                markup=False,
            )
        else:
            console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setFormatter(formatter)
        root_logger.addHandler(console_handler)

        if file_output is None:
            file_output = bool(LOG_FILE_OUTPUT)
        if file_output:
            path = log_file or LOG_FILE_PATH
            path.parent.mkdir(parents=True, exist_ok=True)
            file_handler = logging.handlers.RotatingFileHandler(
                filename=str(path),
                maxBytes=LOG_MAX_FILE_SIZE,
                backupCount=LOG_BACKUP_COUNT,
                encoding="utf-8",
            )
            file_handler.setFormatter(formatter)
            root_logger.addHandler(file_handler)

        _configured = True


def get_logger(name: str) -> logging.Logger:
    """Return the standard logger for *name*, configuring logging on first use."""
    configure()
    return logging.getLogger(name)
