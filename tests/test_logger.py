"""Tests for logging infrastructure."""

import logging
import tempfile
from pathlib import Path

import pytest

import checkout_service.logger as logger_module
from checkout_service.config import Settings
from checkout_service.logger import LogManager, get_logger, setup_logging


class TestLogManager:
    """Test suite for logging infrastructure."""

    @pytest.fixture(autouse=True)
    def reset_log_manager(self):
        """Reset log manager state around each test."""
        def clear_handlers():
            for name in list(logging.Logger.manager.loggerDict.keys()):
                if name.startswith("checkout_service"):
                    logger = logging.Logger.manager.loggerDict[name]
                    if isinstance(logger, logging.Logger):
                        for handler in logger.handlers[:]:
                            handler.flush()
                            handler.close()
                            logger.removeHandler(handler)
                        logger.propagate = True
                        logger.setLevel(logging.NOTSET)

        original = logger_module.log_manager
        clear_handlers()
        LogManager._instance = None
        LogManager._initialized = False
        logger_module.log_manager = LogManager()

        yield

        clear_handlers()
        # Modules that imported the manager keep the original instance
        LogManager._instance = original
        logger_module.log_manager = original
        original.reset()

    @pytest.fixture
    def temp_log_dir(self):
        """Create a temporary directory for log files."""
        with tempfile.TemporaryDirectory() as tmpdir:
            yield Path(tmpdir)

    @pytest.fixture
    def settings(self, temp_log_dir):
        """Create settings with temporary log directory."""
        return Settings(
            _env_file=None,
            stripe_secret_key="sk_test_123",
            log_dir=temp_log_dir,
            log_level="DEBUG",
        )

    def test_logger_creates_separate_files_per_component(self, settings, temp_log_dir):
        """Verify each component gets its own log file."""
        setup_logging(settings)

        logger_module.log_manager.get_api_logger().info("API message")
        logger_module.log_manager.get_server_logger().info("Server message")

        assert (temp_log_dir / "api.log").exists()
        assert (temp_log_dir / "server.log").exists()
        assert "API message" in (temp_log_dir / "api.log").read_text()
        assert "API message" not in (temp_log_dir / "server.log").read_text()

    def test_log_format_includes_timestamp_level_component(self, settings, temp_log_dir):
        """Verify log format includes required fields."""
        setup_logging(settings)
        logger = logger_module.log_manager.get_api_logger()
        logger.info("Test message")

        for handler in logger.handlers:
            handler.flush()

        log_content = (temp_log_dir / "api.log").read_text()

        assert " | INFO     | " in log_content
        assert "checkout_service.api" in log_content
        assert "Test message" in log_content

    def test_log_level_configurable_via_settings(self, temp_log_dir):
        """Verify log level is configurable."""
        settings = Settings(
            _env_file=None,
            stripe_secret_key="sk_test_123",
            log_dir=temp_log_dir,
            log_level="WARNING",
        )
        setup_logging(settings)

        logger = logger_module.log_manager.get_api_logger()

        logger.debug("Debug message")
        logger.info("Info message")
        logger.warning("Warning message")

        for handler in logger.handlers:
            handler.flush()

        log_content = (temp_log_dir / "api.log").read_text()

        assert "Debug message" not in log_content
        assert "Info message" not in log_content
        assert "Warning message" in log_content

    def test_package_logger_configured(self, settings):
        """Verify module loggers under the package reach the console handler."""
        setup_logging(settings)

        package_logger = logging.getLogger("checkout_service")

        assert package_logger.level == logging.DEBUG
        assert len(package_logger.handlers) == 1

        # A second initialization does not stack handlers
        setup_logging(settings)
        assert len(package_logger.handlers) == 1

    def test_same_logger_name_returns_same_instance(self, settings):
        """Verify get_logger returns same instance for same name."""
        setup_logging(settings)

        logger1 = logger_module.log_manager.get_logger("test_component")
        logger2 = logger_module.log_manager.get_logger("test_component")

        assert logger1 is logger2

    def test_log_manager_is_singleton(self, settings):
        """Verify LogManager is a singleton."""
        setup_logging(settings)

        assert LogManager() is LogManager()

    def test_get_logger_convenience_function(self, settings, temp_log_dir):
        """Verify get_logger convenience function works."""
        setup_logging(settings)

        logger = get_logger("custom_component")
        logger.info("Custom message")

        assert "Custom message" in (temp_log_dir / "custom_component.log").read_text()

    def test_log_directory_created_if_not_exists(self, temp_log_dir):
        """Verify log directory is created if it doesn't exist."""
        new_log_dir = temp_log_dir / "nested" / "logs"

        settings = Settings(
            _env_file=None,
            stripe_secret_key="sk_test_123",
            log_dir=new_log_dir,
            log_level="INFO",
        )

        setup_logging(settings)
        logger_module.log_manager.get_logger("test").info("Test")

        assert new_log_dir.exists()

    def test_get_logger_before_initialize_raises(self):
        """Verify component loggers require setup_logging first."""
        assert logger_module.log_manager.is_configured is False

        with pytest.raises(RuntimeError, match="Logging not initialized"):
            logger_module.log_manager.get_api_logger()

    def test_reinitialize_moves_component_logs(self, settings, temp_log_dir):
        """Verify a new log directory takes effect for existing components."""
        setup_logging(settings)
        logger_module.log_manager.get_api_logger().info("First location")

        moved_dir = temp_log_dir / "moved"
        setup_logging(Settings(
            _env_file=None,
            stripe_secret_key="sk_test_123",
            log_dir=moved_dir,
            log_level="DEBUG",
        ))
        api_logger = logger_module.log_manager.get_api_logger()
        api_logger.info("Second location")

        assert "Second location" in (moved_dir / "api.log").read_text()
        assert "Second location" not in (temp_log_dir / "api.log").read_text()
        assert len(api_logger.handlers) == 2

    def test_reset_closes_component_handlers(self, settings):
        setup_logging(settings)
        api_logger = logger_module.log_manager.get_api_logger()

        logger_module.log_manager.reset()

        assert api_logger.handlers == []
        assert logger_module.log_manager.get_api_logger() is api_logger
        assert len(api_logger.handlers) == 2
