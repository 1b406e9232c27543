"""Process-wide logging setup shared by the engine, services and API."""

from __future__ import annotations

import logging
import sys
from pathlib import Path
from typing import Optional

from spacequote.utils.config import get_settings


LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"

_configured = False


def _build_handlers(log_file: Optional[Path]) -> list[logging.Handler]:
    handlers: list[logging.Handler] = [logging.StreamHandler(sys.stdout)]
    if log_file is not None:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(log_file, encoding="utf-8"))
    return handlers


def configure_logging(level: Optional[str] = None, log_file: Optional[Path] = None) -> None:
    """Install the stdout handler, plus a file handler when one is configured.

    Messages are pipe-delimited ``key=value`` pairs, e.g.
    ``Quote calculated | room_id=3 | final_price=1234.50``. Repeated calls are
    no-ops until ``reset_logging`` runs.
    """
    global _configured
    if _configured:
        return

    settings = get_settings()
    resolved_level = (level or settings.log_level).upper()
    resolved_file = log_file if log_file is not None else settings.log_file

    logging.basicConfig(
        level=resolved_level,
        format=LOG_FORMAT,
        handlers=_build_handlers(resolved_file),
    )
    _configured = True


def reset_logging() -> None:
    """Drop installed handlers so the next call reconfigures from settings."""
    global _configured
    root = logging.getLogger()
    for handler in list(root.handlers):
        root.removeHandler(handler)
        handler.close()
    _configured = False


def get_logger(name: str) -> logging.Logger:
    configure_logging()
    return logging.getLogger(name)
