"""
Tests for logging setup and log tailing.
"""

import logging
from pathlib import Path

import pytest

from sdsetup.core.observability.logging_config import setup_logging, tail_log

pytestmark = pytest.mark.usefixtures("reset_logging")


class TestSetupLogging:
    def test_console_only(self):
        setup_logging("WARNING")
        root = logging.getLogger()
        assert len(root.handlers) == 1
        assert root.level == logging.WARNING

    def test_file_handler_records_debug(self, tmp_path: Path):
        log_file = tmp_path / "logs" / "run.log"
        setup_logging("WARNING", log_file=log_file)

        logging.getLogger("sdsetup.test").debug("detail line")
        logging.getLogger("sdsetup.test").warning("visible line")

        text = "\n".join(tail_log(log_file))
        assert "detail line" in text
        assert "visible line" in text
        assert logging.getLogger().level == logging.DEBUG

    def test_replaces_previous_handlers(self, tmp_path: Path):
        setup_logging("INFO", log_file=tmp_path / "a.log")
        setup_logging("INFO")
        assert len(logging.getLogger().handlers) == 1

    def test_unknown_level_falls_back_to_info(self):
        setup_logging("LOUD")
        assert logging.getLogger().level == logging.INFO

    def test_quiets_third_party(self):
        setup_logging("INFO")
        assert logging.getLogger("urllib3").level == logging.WARNING


class TestTailLog:
    def test_last_lines(self, tmp_path: Path):
        path = tmp_path / "x.log"
        path.write_text("".join(f"line {i}\n" for i in range(200)))
        tail = tail_log(path, lines=120)
        assert len(tail) == 120
        assert tail[0] == "line 80"
        assert tail[-1] == "line 199"

    def test_short_file(self, tmp_path: Path):
        path = tmp_path / "x.log"
        path.write_text("only\n")
        assert tail_log(path) == ["only"]

    def test_missing_file(self, tmp_path: Path):
        assert tail_log(tmp_path / "missing.log") == []
