# src/user_registry/tests/test_logging/test_builder_setup.py
import logging
import logging.handlers

import pytest

from user_registry.config.settings import get_settings
from user_registry.core.logging.builder import make_dict_config, setup_logging


# Create a minimal Settings-like object for testing
class DummySettings:
    LOG_FORMAT = "json"
    LOG_LEVEL = "INFO"
    LOG_TO_STDOUT = False
    LOG_DIR = None  # set in each test
    LOG_MAX_BYTES = 1000
    LOG_BACKUP_COUNT = 1
    ENV = "development"
    ENABLE_SQL_LOGGING = False


@pytest.fixture
def restore_logging():
    yield
    # put back the session-wide configuration installed by conftest
    setup_logging(get_settings())


def test_make_dict_config_with_files(tmp_path):
    settings = DummySettings()
    settings.LOG_DIR = tmp_path

    cfg = make_dict_config(settings)

    assert set(cfg["handlers"]) == {"console", "file", "error_file"}
    assert cfg["handlers"]["file"]["filename"] == str(tmp_path / "app.log")
    assert cfg["handlers"]["error_file"]["level"] == "ERROR"
    assert cfg["filters"].keys() == {"request_id", "redact"}
    assert cfg["loggers"][""]["handlers"] == ["console", "file", "error_file"]


def test_make_dict_config_stdout_only(tmp_path):
    settings = DummySettings()
    settings.LOG_TO_STDOUT = True
    settings.LOG_DIR = tmp_path

    cfg = make_dict_config(settings)

    assert set(cfg["handlers"]) == {"console", "error_console"}
    assert cfg["handlers"]["console"]["formatter"] == "json"


def test_sql_logging_switch(tmp_path):
    settings = DummySettings()
    settings.LOG_DIR = tmp_path

    assert make_dict_config(settings)["loggers"]["sqlalchemy.engine"]["level"] == "WARNING"

    settings.ENABLE_SQL_LOGGING = True
    assert make_dict_config(settings)["loggers"]["sqlalchemy.engine"]["level"] == "DEBUG"


def test_text_format_uses_standard_formatter(tmp_path):
    settings = DummySettings()
    settings.LOG_FORMAT = "text"
    settings.LOG_DIR = tmp_path

    cfg = make_dict_config(settings)

    assert cfg["handlers"]["console"]["formatter"] == "standard"
    # errors stay structured regardless of the console format
    assert cfg["handlers"]["error_file"]["formatter"] == "json"


def test_setup_logging_creates_log_dir_and_writes(tmp_path, restore_logging):
    settings = DummySettings()
    settings.LOG_DIR = tmp_path / "logs"
    assert not settings.LOG_DIR.exists()

    setup_logging(settings)
    logging.getLogger("user_registry.test").error("repo.user.create.failed", extra={"user_id": "u-1"})
    for handler in logging.getLogger().handlers:
        handler.flush()

    assert settings.LOG_DIR.exists()
    assert "repo.user.create.failed" in (settings.LOG_DIR / "errors.log").read_text(encoding="utf-8")
    assert any(isinstance(h, logging.handlers.RotatingFileHandler) for h in logging.getLogger().handlers)
