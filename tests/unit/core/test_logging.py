"""Tests for the structured logger and logging configuration."""

import logging

from rpi_cam.core.logging_config import configure_logging
from rpi_cam.core.logging_utils import StructuredLogger, ensure_structured_logger, get_module_logger


class TestStructuredLogger:

    def test_namespace_and_component(self):
        logger = get_module_logger("TaskRegistry")
        assert logger.name == "rpi_cam.TaskRegistry"
        assert logger.component == "TaskRegistry"

    def test_prefixes_messages(self, caplog):
        logger = get_module_logger("Reservation")

        with caplog.at_level(logging.INFO, logger="rpi_cam"):
            logger.info("state %s", "held")

        assert "[Reservation] state held" in caplog.messages

    def test_bad_format_args_do_not_raise(self, caplog):
        logger = get_module_logger("Core")

        with caplog.at_level(logging.INFO, logger="rpi_cam"):
            logger.info("needs %d", "text")

        assert "args=text" in caplog.messages[-1]

    def test_child_component(self):
        child = get_module_logger("CaptureOrchestrator.cam0").getChild("tasks")
        assert child.component == "CaptureOrchestrator.cam0.tasks"
        assert child.name == "rpi_cam.CaptureOrchestrator.cam0.tasks"

    def test_ensure_structured_logger(self):
        plain = logging.getLogger("rpi_cam.plain")
        structured = get_module_logger("Existing")

        assert ensure_structured_logger(structured) is structured
        assert isinstance(ensure_structured_logger(plain), StructuredLogger)
        assert ensure_structured_logger(None, fallback_name="Fallback").component == "Fallback"


class TestConfigureLogging:

    def test_file_handler(self, tmp_path):
        log_file = tmp_path / "logs" / "rpi_cam.log"

        configure_logging("debug", force=True, console=False, log_file=log_file)
        get_module_logger("Test").info("written to file")
        for handler in logging.getLogger().handlers:
            handler.flush()

        assert "[Test] written to file" in log_file.read_text()
        assert logging.getLogger().level == logging.DEBUG

    def test_suppressed_loggers(self):
        configure_logging("info", force=True, suppressed_loggers=["noisy.lib"])
        assert logging.getLogger("noisy.lib").level == logging.ERROR
