from __future__ import annotations

import logging

from spacequote.utils.logger import configure_logging, get_logger, reset_logging


def test_log_file_receives_pipe_delimited_messages(tmp_path) -> None:
    log_file = tmp_path / "logs" / "spacequote.log"
    reset_logging()
    try:
        configure_logging(level="INFO", log_file=log_file)
        get_logger("spacequote.tests").info("Quote calculated | room_id=%s", 3)
        for handler in logging.getLogger().handlers:
            handler.flush()

        line = log_file.read_text(encoding="utf-8").strip()
        assert line.endswith("| INFO | spacequote.tests | Quote calculated | room_id=3")
    finally:
        reset_logging()


def test_configure_logging_is_idempotent(tmp_path) -> None:
    reset_logging()
    try:
        configure_logging(level="WARNING", log_file=tmp_path / "first.log")
        configure_logging(level="DEBUG", log_file=tmp_path / "second.log")

        assert logging.getLogger().level == logging.WARNING
        assert not (tmp_path / "second.log").exists()
    finally:
        reset_logging()
