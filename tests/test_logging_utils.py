"""Tests for logging configuration."""

import logging
from contextlib import contextmanager

from labor_sim.logging_utils import configure_logging


@contextmanager
def bare_root_logger():
    """Detach root handlers so basicConfig applies, then restore them."""
    root = logging.getLogger()
    saved_handlers, saved_level = root.handlers[:], root.level
    root.handlers = []
    try:
        yield root
    finally:
        for handler in root.handlers:
            handler.close()
        root.handlers = saved_handlers
        root.setLevel(saved_level)


class TestConfigureLogging:
    def test_writes_run_log(self, tmp_path):
        """Records reach run.log in the pipe-separated format."""
        with bare_root_logger() as root:
            log_file = configure_logging(tmp_path / "logs")
            logging.getLogger("labor_sim.test").info("hello from the engine")
            for handler in root.handlers:
                handler.flush()
            text = log_file.read_text(encoding="utf-8")
        assert log_file == tmp_path / "logs" / "run.log"
        assert "| INFO | labor_sim.test | hello from the engine" in text

    def test_console_only(self):
        with bare_root_logger() as root:
            assert configure_logging() is None
            assert len(root.handlers) == 1
            assert root.level == logging.INFO

    def test_debug_level(self):
        with bare_root_logger() as root:
            configure_logging(debug=True)
            assert root.level == logging.DEBUG

    def test_library_does_not_configure_on_import(self):
        import labor_sim

        assert labor_sim.configure_logging is configure_logging
        assert logging.getLogger("labor_sim").handlers == []
