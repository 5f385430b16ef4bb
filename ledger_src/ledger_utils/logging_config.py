import logging
import re
import sys
from typing import Optional, Union

from rich.console import Console
from rich.logging import RichHandler

_console = Console(stderr=True)


class PIIFilter(logging.Filter):
    """Masks account emails and home-directory user names in upload paths."""

    PATTERNS = [
        (re.compile(r"\b[A-Za-z0-9._%+-]+@[A-Za-z0-9.-]+\.[A-Za-z]{2,}\b"), "[EMAIL]"),
        (re.compile(r"(/home/|/Users/|[A-Za-z]:\\Users\\)[^/\\\s]+"), r"\1[USER]"),
    ]

    def filter(self, record: logging.LogRecord) -> bool:
        if not isinstance(record.msg, str):
            return True

        msg = record.msg
        for pattern, replacement in self.PATTERNS:
            msg = pattern.sub(replacement, msg)

        record.msg = msg
        return True


class LedgerFormatter(logging.Formatter):
    """Compact one-line stderr format: level tag, short module name, message."""

    LEVEL_TAGS = {
        "DEBUG": "\033[90mDEBUG\033[0m",
        "INFO": "\033[34mINFO \033[0m",
        "WARNING": "\033[33mWARN \033[0m",
        "ERROR": "\033[31mERROR\033[0m",
        "CRITICAL": "\033[31mFATAL\033[0m",
    }

    def format(self, record: logging.LogRecord) -> str:
        tag = self.LEVEL_TAGS.get(record.levelname, record.levelname)
        module = record.name.rsplit(".", 1)[-1]
        line = f"ledger {tag} {module}: {record.getMessage()}"

        if record.exc_info and not record.exc_text:
            record.exc_text = self.formatException(record.exc_info)
        if record.exc_text:
            line += f"\n{record.exc_text}"
        return line


def configure_root_logger(
    level: Union[int, str] = logging.INFO,
    rich_output: bool = False,
    console: Optional[Console] = None,
):
    root = logging.getLogger()
    root.setLevel(level)

    logging.getLogger("asyncio").setLevel(logging.WARNING)

    for h in root.handlers[:]:
        root.removeHandler(h)

    handler: logging.Handler
    if rich_output:
        handler = RichHandler(
            console=console or _console, show_path=False, rich_tracebacks=True
        )
        handler.setFormatter(logging.Formatter("%(name)s: %(message)s"))
    else:
        handler = logging.StreamHandler(sys.stderr)
        handler.setFormatter(LedgerFormatter())

    handler.addFilter(PIIFilter())
    root.addHandler(handler)


def get_logger(name: str) -> logging.Logger:
    """
    Returns a named logger.
    Assumes configure_root_logger() has been called.
    """
    return logging.getLogger(name)
