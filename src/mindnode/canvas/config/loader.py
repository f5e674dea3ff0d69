import os
from pathlib import Path

import yaml
from pydantic import ValidationError

from mindnode.canvas.config.models import AppConfig
from mindnode.canvas.exceptions import ConfigError

CONFIG_ENV_VAR = "MINDNODE_CANVAS_CONFIG_PATH"
CONFIG_FILENAME = "mindnode.yaml"


def get_user_config_dir() -> Path:
    return Path.home() / ".config" / "mindnode"


def find_config_file(cli_path: Path | None = None) -> Path | None:
    """Find the YAML config file using the search path.

    Search order:
    1. CLI-provided path (if given)
    2. MINDNODE_CANVAS_CONFIG_PATH environment variable
    3. ./mindnode.yaml (current directory)
    4. ~/.config/mindnode/config.yaml (user config)

    Returns None if no config file is found.
    """
    if cli_path:
        if cli_path.exists():
            return cli_path
        raise ConfigError(f"Config file not found: {cli_path}")

    env_path = os.getenv(CONFIG_ENV_VAR)
    if env_path:
        path = Path(env_path)
        if path.exists():
            return path
        raise ConfigError(f"Config file not found: {path}")

    cwd_config = Path.cwd() / CONFIG_FILENAME
    if cwd_config.exists():
        return cwd_config

    user_config = get_user_config_dir() / "config.yaml"
    if user_config.exists():
        return user_config

    return None


def load_yaml_config(path: Path) -> dict:
    """Load and parse a YAML config file."""
    with open(path) as f:
        data = yaml.safe_load(f)
    return data or {}


def load_config(cli_path: Path | None = None) -> AppConfig:
    """Build an AppConfig from the first config file found, or defaults."""
    config_path = find_config_file(cli_path)
    if config_path is None:
        return AppConfig()

    try:
        return AppConfig.model_validate(load_yaml_config(config_path))
    except (yaml.YAMLError, ValidationError) as e:
        raise ConfigError(f"Invalid config file {config_path}: {e}") from e


def generate_default_config() -> dict:
    """Generate a default YAML config structure."""
    return AppConfig().model_dump(mode="json")
