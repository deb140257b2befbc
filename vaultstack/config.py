"""Runtime configuration and logging setup."""

import logging
import os
from collections.abc import Mapping
from pathlib import Path

from pydantic import BaseModel, Field, ValidationError

from .api import BASE_URL, DEFAULT_TIMEOUT_SECONDS
from .store import DEFAULT_DATA_DIR

DEFAULT_REFRESH_INTERVAL_SECONDS = 300  # 5 minutes
LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

ENV_PREFIX = "VAULTSTACK_"


class ConfigError(Exception):
    """Configuration values from the environment are unusable."""


class AppConfig(BaseModel):
    """Paths and tunables for one run of the application."""

    data_dir: Path = DEFAULT_DATA_DIR
    store_path: Path
    settings_path: Path
    log_path: Path
    log_level: str = "INFO"
    feed_url: str = BASE_URL
    feed_timeout: float = Field(default=DEFAULT_TIMEOUT_SECONDS, gt=0)
    refresh_interval: int = Field(default=DEFAULT_REFRESH_INTERVAL_SECONDS, gt=0)

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> "AppConfig":
        """Build the configuration from VAULTSTACK_* environment variables."""
        env = os.environ if environ is None else environ

        def get(name: str) -> str | None:
            return env.get(ENV_PREFIX + name) or None

        data_dir = Path(get("DATA_DIR") or DEFAULT_DATA_DIR).expanduser()
        values = {
            "data_dir": data_dir,
            "store_path": Path(get("STORE_PATH") or data_dir / "inventory.json").expanduser(),
            "settings_path": Path(get("SETTINGS_PATH") or data_dir / "settings.json").expanduser(),
            "log_path": Path(get("LOG_PATH") or data_dir / "vaultstack.log").expanduser(),
        }
        optional = {
            "log_level": get("LOG_LEVEL"),
            "feed_url": get("FEED_URL"),
            "feed_timeout": get("FEED_TIMEOUT"),
            "refresh_interval": get("REFRESH_INTERVAL"),
        }
        values.update({k: v for k, v in optional.items() if v is not None})

        try:
            config = cls(**values)
        except ValidationError as e:
            raise ConfigError(f"Invalid configuration: {e}") from e

        level = config.log_level.upper()
        if not isinstance(logging.getLevelName(level), int):
            raise ConfigError(f"Unknown log level: {config.log_level}")
        config.log_level = level
        return config


def configure_logging(log_path: Path, level: str = "INFO") -> None:
    """Send log records to a file; the terminal belongs to the UI.

    If the file can't be opened, logging is silenced instead.
    """
    root = logging.getLogger()
    target = os.path.abspath(log_path)
    if any(getattr(h, "baseFilename", None) == target for h in root.handlers):
        return

    try:
        log_path.parent.mkdir(parents=True, exist_ok=True)
        handler: logging.Handler = logging.FileHandler(log_path, encoding="utf-8")
    except OSError:
        handler = logging.NullHandler()

    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    root.addHandler(handler)
    root.setLevel(level)
    logging.getLogger("httpx").setLevel(logging.WARNING)
