"""
qMint Logging
=============

Process-wide logging for qMint, built on the standard `logging` module with a
`rich` console handler and an optional rotating log file.

Console lines are sanitized (no ANSI escapes or control characters can be
smuggled in through token names or URIs) and highlighted: addresses, token
types, amounts, event names and gate states each get their own style.

Usage:
    >>> from qmint.logger import get_logger
    >>> logger = get_logger(__name__)
    >>> logger.info("Collection deployed")
"""

import logging
import logging.handlers
import re
import sys
import threading
import time
from pathlib import Path
from typing import Optional, Tuple

from rich.console import Console
from rich.highlighter import RegexHighlighter
from rich.logging import RichHandler
from rich.theme import Theme

from .constants import (
    LOG_BACKUP_COUNT,
    LOG_CONSOLE_HIGHLIGHTING,
    LOG_DATE_FORMAT,
    LOG_FILE_OUTPUT,
    LOG_FORMAT,
    LOG_LEVEL,
    LOG_MAX_FILE_SIZE,
)


PROJECT_ROOT = Path(__file__).parent.parent
LOG_FILE_PATH = PROJECT_ROOT / "logs" / "qmint.log"

QMINT_STYLES = {
    "qmint.address":        "cyan",
    "qmint.amount":         "bold white",
    "qmint.event":          "bold magenta",
    "qmint.gate_closed":    "bold red",
    "qmint.gate_open":      "bold green",
    "qmint.token_type":     "bold yellow",
    "qmint.logger_name":    "magenta",
    "qmint.timestamp":      "bold cyan",
    "qmint.debug":          "bold dim",
    "qmint.info":           "bold green",
    "qmint.warning":        "bold yellow",
    "qmint.error":          "bold red",
    "qmint.critical":       "bold red reverse",
}

_UNPROCESSED_SPECIFIER = re.compile(r"%\([a-zA-Z_][a-zA-Z0-9_]*\)[a-zA-Z]")
_DATE_FORMAT_SHAPE = re.compile(r"^(?=.*%[A-Za-z])(?:%%|%[A-Za-z]|[0-9 \t:\-\/\.,TZ+])+$")


def _warn_fallback(what: str, detail: str) -> None:
    # The logging system is not up yet; report on stderr directly
    print(
        f"{time.strftime('%Y-%m-%dT%H:%M:%S')} - qmint.logger - "
        f"Invalid {what} ({detail}), falling back to the default",
        file=sys.stderr,
    )


def checked_formats(log_format: Optional[str], date_format: Optional[str]) -> Tuple[str, str]:
    """
    Return usable (record format, date format), replacing either one with its
    default when it cannot be applied to a log record.
    """
    fmt = str(log_format) if log_format else str(LOG_FORMAT.default())
    probe = logging.LogRecord("probe", logging.INFO, "", 0, "probe", (), None)
    try:
        if _UNPROCESSED_SPECIFIER.search(logging.Formatter(fmt=fmt).format(probe)):
            raise ValueError("unprocessed specifier")
    except (ValueError, KeyError, TypeError) as e:
        _warn_fallback("log format", str(e))
        fmt = str(LOG_FORMAT.default())

    datefmt = str(date_format) if date_format else str(LOG_DATE_FORMAT.default())
    if not _DATE_FORMAT_SHAPE.match(datefmt):
        _warn_fallback("date format", datefmt)
        datefmt = str(LOG_DATE_FORMAT.default())

    return fmt, datefmt


class TerminalSafeFormatter(logging.Formatter):
    """Formatter that strips ANSI escapes, carriage returns and control chars."""

    _ansi_escape = re.compile(r"\x1b\[[0-?]*[ -/]*[@-~]|\x1b[@-Z\\-_]")
    # Everything below 0x20 except tab and newline, plus DEL
    _control = re.compile(r"[\x00-\x08\x0B-\x1F\x7F]")

    @classmethod
    def sanitize(cls, text: str) -> str:
        if not text:
            return text
        return cls._control.sub("", cls._ansi_escape.sub("", text))

    def format(self, record: logging.LogRecord) -> str:
        return self.sanitize(super().format(record))


class QMintLogHighlighter(RegexHighlighter):
    """Highlights issuance vocabulary in console log lines."""

    base_style = "qmint."
    highlights = [
        r"(?P<timestamp>^.*?UTC)",
        r"(?P<debug>\bDEBUG\b)",
        r"(?P<info>\bINFO\b)",
        r"(?P<warning>\bWARNING\b)",
        r"(?P<error>\bERROR\b)",
        r"(?P<critical>\bCRITICAL\b)",
        r"-\s+\w+\s+-\s+(?P<logger_name>[\w.]+)(?=\s-\s)",
        r"(?P<address>\b0x[0-9a-fA-F]{40}\b)",
        r"(?P<token_type>\btype=\d+\b)",
        r"(?P<amount>\b(?:amount|value|payment)=[\d.]+\b)",
        r"(?P<event>\b(?:TransferSingle|TransferBatch|ApprovalForAll|URI|"
        r"ReleaseTimestampChanged|SaleStateChanged|RoyaltyChanged|Withdrawal)\b)",
        r"(?P<gate_closed>\b(?:PAUSED|LOCKED|CLOSED)\b)",
        r"(?P<gate_open>\b(?:UNPAUSED|UNLOCKED|OPEN)\b)",
    ]


class LogManager:
    """
    Owns the root logger configuration. A single instance exists per process
    and ``configure`` takes effect only on its first call.
    """

    _instance: Optional["LogManager"] = None
    _lock = threading.Lock()

    def __new__(cls) -> "LogManager":
        if cls._instance is None:
            with cls._lock:
                if cls._instance is None:
                    instance = super().__new__(cls)
                    instance._configured = False
                    cls._instance = instance
        return cls._instance

    @staticmethod
    def _console_handler(formatter: logging.Formatter, level: int) -> logging.Handler:
        if LOG_CONSOLE_HIGHLIGHTING:
            console = Console(theme=Theme(QMINT_STYLES), highlight=False, stderr=True)
            handler = RichHandler(
                console=console,
                highlighter=QMintLogHighlighter(),
                keywords=[],
                markup=False,
                rich_tracebacks=True,
                show_level=False,
                show_path=False,
                show_time=False,
            )
        else:
            handler = logging.StreamHandler(sys.stderr)
        handler.setLevel(level)
        handler.setFormatter(formatter)
        return handler

    @staticmethod
    def _file_handler(path: Path, formatter: logging.Formatter, level: int) -> logging.Handler:
        path.parent.mkdir(parents=True, exist_ok=True)
        handler = logging.handlers.RotatingFileHandler(
            filename=str(path),
            maxBytes=LOG_MAX_FILE_SIZE,
            backupCount=LOG_BACKUP_COUNT,
            encoding="utf-8",
        )
        handler.setLevel(level)
        handler.setFormatter(formatter)
        return handler

    def configure(
        self,
        log_level: Optional[str] = None,
        log_file: Optional[Path] = None,
        console_output: bool = True,
        file_output: Optional[bool] = None,
    ) -> None:
        """
        Install handlers on the root logger.

        Args:
            log_level: Level name; defaults to LOG_LEVEL from the environment.
            log_file: Rotating log file; defaults to ``logs/qmint.log``.
            console_output: Attach the console handler.
            file_output: Attach the file handler; defaults to LOG_FILE_OUTPUT.
        """
        with self._lock:
            if self._configured:
                return

            level = getattr(logging, str(log_level or LOG_LEVEL).upper(), logging.INFO)
            fmt, datefmt = checked_formats(LOG_FORMAT, LOG_DATE_FORMAT)

            # Timestamps in UTC, like release timestamps
            formatter = TerminalSafeFormatter(fmt=fmt, datefmt=datefmt + " UTC")
            formatter.converter = time.gmtime

            root = logging.getLogger()
            root.setLevel(level)
            root.handlers.clear()

            if console_output:
                root.addHandler(self._console_handler(formatter, level))
            if LOG_FILE_OUTPUT if file_output is None else file_output:
                root.addHandler(self._file_handler(log_file or LOG_FILE_PATH, formatter, level))

            self._configured = True

    def get_logger(self, name: str) -> logging.Logger:
        if not self._configured:
            self.configure()
        return logging.getLogger(name)


_manager = LogManager()


def get_logger(name: str) -> logging.Logger:
    """Module logger; configures logging on first use."""
    return _manager.get_logger(name)


def set_level(level: str) -> None:
    """Change the level of the root logger and all its handlers."""
    numeric_level = getattr(logging, str(level).upper(), logging.INFO)
    root_logger = logging.getLogger()
    root_logger.setLevel(numeric_level)
    for handler in root_logger.handlers:
        handler.setLevel(numeric_level)


_manager.configure()
