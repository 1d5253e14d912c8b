import logging

import pytest

from core.config import Settings
from core.errors import ConfigError, MissingAPIKeyError
from core.logging_setup import configure_logging


def test_defaults() -> None:
    settings = Settings.from_env({})
    assert settings.model == "gemini-1.5-flash"
    assert settings.success_task_ttl == 5.0
    assert settings.error_task_ttl == 15.0


def test_environment_overrides() -> None:
    settings = Settings.from_env({
        "GEMINI_API_KEY": " key-123 ",
        "PARALEGAL_TEMPERATURE": "0.7",
        "PARALEGAL_SUCCESS_TASK_TTL": "1",
        "PARALEGAL_LOG_FILE": "off",
        "PARALEGAL_MODEL": "",
    })
    assert settings.gemini_api_key == "key-123"
    assert settings.temperature == 0.7
    assert settings.success_task_ttl == 1.0
    assert settings.log_file is None
    assert settings.model == "gemini-1.5-flash"


def test_invalid_values_raise_config_error() -> None:
    with pytest.raises(ConfigError):
        Settings.from_env({"PARALEGAL_MAX_OUTPUT_TOKENS": "lots"})


def test_missing_api_key() -> None:
    with pytest.raises(MissingAPIKeyError):
        Settings().require_api_key()
    assert Settings(gemini_api_key="k").require_api_key() == "k"


def test_configure_logging_writes_tagged_lines(tmp_path) -> None:
    log_file = tmp_path / "dispatch.log"
    configure_logging("INFO", str(log_file))

    logging.getLogger("tools.dispatcher").info("turn started")
    for handler in logging.getLogger().handlers:
        handler.flush()

    assert "INFO - [DISPATCH] turn started" in log_file.read_text(encoding="utf-8")
