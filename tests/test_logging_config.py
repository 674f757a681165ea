"""
Tests for logging configuration
"""

import logging

import pytest

from simplehttp.logging_config import SimpleHttpLogger, get_module_logger, setup_logging


@pytest.fixture(autouse=True)
def restore_library_logger():
    """Undo handler changes on the library logger after each test"""
    logger = logging.getLogger("simplehttp")
    handlers, level = list(logger.handlers), logger.level
    yield
    for handler in logger.handlers:
        handler.close()
    logger.handlers = handlers
    logger.setLevel(level)


class TestLogging:
    """Test logger setup"""

    def test_module_logger_namespace(self):
        assert get_module_logger("http_client").name == "simplehttp.http_client"

    def test_console_only(self):
        logger = SimpleHttpLogger(console_output=True).get_logger()

        assert len(logger.handlers) == 1
        assert logger.handlers[0].level == logging.INFO

    def test_file_handler_receives_debug(self, tmp_path):
        """Debug records from module loggers end up in the log file"""
        log_file = tmp_path / "logs" / "http.log"
        setup_logging(log_file=log_file, verbose=False)

        get_module_logger("http_client").debug("Request: GET https://x/")

        for handler in logging.getLogger("simplehttp").handlers:
            handler.flush()
        assert "simplehttp.http_client - DEBUG - Request: GET https://x/" in log_file.read_text()

    def test_setup_replaces_handlers(self, tmp_path):
        """Repeated setup does not stack handlers"""
        setup_logging(verbose=True)
        logger = setup_logging(verbose=True)

        assert len(logger.handlers) == 1
