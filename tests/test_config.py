"""Tests for configuration and logging setup."""

import logging
from pathlib import Path

import pytest

from vaultstack.config import DEFAULT_REFRESH_INTERVAL_SECONDS, AppConfig, ConfigError, configure_logging


def test_defaults_derive_from_data_dir(tmp_path):
    config = AppConfig.from_env({"VAULTSTACK_DATA_DIR": str(tmp_path)})

    assert config.data_dir == tmp_path
    assert config.store_path == tmp_path / "inventory.json"
    assert config.settings_path == tmp_path / "settings.json"
    assert config.log_path == tmp_path / "vaultstack.log"
    assert config.feed_timeout == 30.0
    assert config.refresh_interval == DEFAULT_REFRESH_INTERVAL_SECONDS
    assert config.log_level == "INFO"


def test_explicit_values_override_defaults(tmp_path):
    config = AppConfig.from_env(
        {
            "VAULTSTACK_DATA_DIR": str(tmp_path),
            "VAULTSTACK_STORE_PATH": str(tmp_path / "elsewhere.json"),
            "VAULTSTACK_FEED_URL": "https://feed.test",
            "VAULTSTACK_FEED_TIMEOUT": "5",
            "VAULTSTACK_REFRESH_INTERVAL": "60",
            "VAULTSTACK_LOG_LEVEL": "debug",
        }
    )
    assert config.store_path == tmp_path / "elsewhere.json"
    assert config.feed_url == "https://feed.test"
    assert config.feed_timeout == 5.0
    assert config.refresh_interval == 60
    assert config.log_level == "DEBUG"


@pytest.mark.parametrize(
    "name,value",
    [
        ("VAULTSTACK_REFRESH_INTERVAL", "soon"),
        ("VAULTSTACK_REFRESH_INTERVAL", "0"),
        ("VAULTSTACK_FEED_TIMEOUT", "-1"),
        ("VAULTSTACK_LOG_LEVEL", "chatty"),
    ],
)
def test_invalid_values_raise(tmp_path, name, value):
    with pytest.raises(ConfigError):
        AppConfig.from_env({"VAULTSTACK_DATA_DIR": str(tmp_path), name: value})


def test_configure_logging_writes_to_file(tmp_path):
    log_path = tmp_path / "logs" / "vaultstack.log"
    root = logging.getLogger()
    before = list(root.handlers)
    level = root.level
    try:
        configure_logging(log_path, "INFO")
        configure_logging(log_path, "INFO")
        added = [h for h in root.handlers if h not in before]
        assert len(added) == 1

        logging.getLogger("vaultstack.test").info("hello from the test")
        added[0].flush()
        assert "vaultstack.test - INFO - hello from the test" in log_path.read_text()
        assert logging.getLogger("httpx").level == logging.WARNING
    finally:
        for handler in root.handlers[:]:
            if handler not in before:
                root.removeHandler(handler)
                handler.close()
        root.setLevel(level)


def test_configure_logging_falls_back_to_silence(tmp_path):
    blocker = tmp_path / "not-a-dir"
    blocker.write_text("")
    root = logging.getLogger()
    before = list(root.handlers)
    level = root.level
    try:
        configure_logging(Path(blocker) / "vaultstack.log")
        added = [h for h in root.handlers if h not in before]
        assert [type(h) for h in added] == [logging.NullHandler]
    finally:
        for handler in root.handlers[:]:
            if handler not in before:
                root.removeHandler(handler)
        root.setLevel(level)
