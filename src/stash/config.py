"""
Configuration for stash.

The only setting is where entries live. It is resolved in this order:

    1. An explicit directory (the CLI's --dir)
    2. The STASH_DIR environment variable
    3. data_dir from config.yaml
    4. <per-user app dir>/entries

config.yaml is read from STASH_CONFIG when set, otherwise from the per-user
app directory. A missing file simply means defaults.
"""

import os
from pathlib import Path

import typer
import yaml
from pydantic import ValidationError

from stash.errors import ConfigError
from stash.schema import StashConfig

APP_NAME = "stash"
DATA_DIR_ENV = "STASH_DIR"
CONFIG_PATH_ENV = "STASH_CONFIG"
CONFIG_FILENAME = "config.yaml"


def app_dir() -> Path:
    """Per-user application directory (platform specific)."""
    return Path(typer.get_app_dir(APP_NAME))


def default_config_path() -> Path:
    """Config file location, honouring STASH_CONFIG."""
    override = os.environ.get(CONFIG_PATH_ENV)
    if override:
        return Path(override).expanduser()
    return app_dir() / CONFIG_FILENAME


def default_data_dir() -> Path:
    """Storage directory used when nothing else is configured."""
    return app_dir() / "entries"


def load_config(path: Path | str | None = None) -> StashConfig:
    """
    Load configuration from a YAML file.

    Args:
        path: Config file; defaults to default_config_path()

    Returns:
        Validated StashConfig (defaults if the file does not exist)

    Raises:
        ConfigError: If the file is unreadable, not YAML, or has unknown keys
    """
    path = Path(path) if path is not None else default_config_path()
    if not path.exists():
        return StashConfig()

    try:
        with path.open() as f:
            data = yaml.safe_load(f)
    except (OSError, yaml.YAMLError) as e:
        raise ConfigError(config_path=str(path), validation_error=str(e)) from e

    if data is None:
        return StashConfig()
    if not isinstance(data, dict):
        raise ConfigError(
            config_path=str(path),
            validation_error="top level must be a mapping",
        )

    try:
        config = StashConfig.model_validate(data)
    except ValidationError as e:
        raise ConfigError(config_path=str(path), validation_error=str(e)) from e

    # A relative data_dir is relative to the config file, not the caller's cwd.
    if config.data_dir is not None and not config.data_dir.expanduser().is_absolute():
        config = config.model_copy(update={"data_dir": path.parent / config.data_dir})
    return config


def resolve_data_dir(
    explicit: Path | str | None = None,
    config: StashConfig | None = None,
) -> Path:
    """
    Pick the storage directory.

    Args:
        explicit: Directory given on the command line, if any
        config: Loaded config; read from disk only when needed

    Returns:
        Absolute, user-expanded storage directory path
    """
    if explicit:
        return Path(explicit).expanduser().resolve()

    env_dir = os.environ.get(DATA_DIR_ENV)
    if env_dir:
        return Path(env_dir).expanduser().resolve()

    if config is None:
        config = load_config()
    if config.data_dir is not None:
        return config.data_dir.expanduser().resolve()

    return default_data_dir()
