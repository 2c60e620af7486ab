"""YAML settings loader and validator."""

import ipaddress
import logging
import os
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Optional

import yaml

from lanwake.core.wol import DEFAULT_BROADCAST, DEFAULT_PORT

CONFIG_DIR = Path.home() / ".config" / "lanwake"
DEFAULT_CONFIG = CONFIG_DIR / "config.yaml"
DEFAULT_DB_PATH = CONFIG_DIR / "database.db"
DEFAULT_LEGACY_PATH = CONFIG_DIR / "devices.json"

logger = logging.getLogger(__name__)

_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


class ConfigError(Exception):
    """Raised for invalid configuration."""

    def __init__(self, errors: list[str]) -> None:
        self.errors = errors
        super().__init__("; ".join(errors))


@dataclass
class Settings:
    """Runtime settings shared by the API and CLI."""

    db_path: Path = DEFAULT_DB_PATH
    legacy_devices_path: Optional[Path] = DEFAULT_LEGACY_PATH
    default_broadcast: str = DEFAULT_BROADCAST
    wol_port: int = DEFAULT_PORT
    log_level: str = "INFO"
    log_file: Optional[Path] = None


def load_config(path: Path) -> Optional[dict[str, Any]]:
    """
    Load configuration from a YAML file.

    Args:
        path: Path to the YAML config file

    Returns:
        Parsed configuration dictionary, or None if file is empty

    Raises:
        FileNotFoundError: If config file doesn't exist
        yaml.YAMLError: If YAML is invalid
    """
    with open(path) as f:
        result: Optional[dict[str, Any]] = yaml.safe_load(f)
        return result


def validate_config(config: Any) -> list[str]:
    """
    Validate a loaded configuration dictionary.

    Returns:
        List of validation error messages (empty list = valid)
    """
    if not isinstance(config, dict):
        return ["Config root must be a YAML mapping"]

    settings = config.get("settings", {})
    if settings is None:
        return []
    if not isinstance(settings, dict):
        return ["'settings' must be a mapping"]

    errors: list[str] = []
    broadcast = settings.get("default_broadcast")
    if broadcast is not None:
        try:
            ipaddress.IPv4Address(str(broadcast))
        except ValueError:
            errors.append(f"settings.default_broadcast: invalid IPv4 address '{broadcast}'")

    port = settings.get("wol_port")
    if port is not None:
        if isinstance(port, bool) or not isinstance(port, int) or not 1 <= port <= 65535:
            errors.append(f"settings.wol_port: must be an integer 1-65535, got '{port}'")

    level = settings.get("log_level")
    if level is not None and str(level).upper() not in _LOG_LEVELS:
        errors.append(f"settings.log_level: unknown level '{level}'")

    for key in ("db_path", "legacy_devices_path", "log_file"):
        value = settings.get(key)
        if value is not None and not isinstance(value, str):
            errors.append(f"settings.{key}: must be a path string")

    return errors


def settings_from_config(
    config: Optional[dict[str, Any]], env: Optional[Mapping[str, str]] = None
) -> Settings:
    """
    Build Settings from a validated config dict and environment overrides.

    ``DEVICES_DB_PATH`` overrides ``db_path`` and ``LOG_LEVEL`` overrides
    ``log_level``.

    Raises:
        ConfigError: If the config does not validate
    """
    env = os.environ if env is None else env
    config = config or {}
    errors = validate_config(config)
    if errors:
        raise ConfigError(errors)

    raw = config.get("settings") or {}
    legacy = raw.get("legacy_devices_path", str(DEFAULT_LEGACY_PATH))
    log_file = raw.get("log_file")
    return Settings(
        db_path=Path(env.get("DEVICES_DB_PATH") or raw.get("db_path") or DEFAULT_DB_PATH),
        legacy_devices_path=Path(legacy) if legacy else None,
        default_broadcast=str(raw.get("default_broadcast", DEFAULT_BROADCAST)),
        wol_port=int(raw.get("wol_port", DEFAULT_PORT)),
        log_level=str(env.get("LOG_LEVEL") or raw.get("log_level", "INFO")).upper(),
        log_file=Path(log_file) if log_file else None,
    )


def load_settings(path: Optional[Path]) -> Settings:
    """
    Load Settings from ``path``; a missing or empty file yields the defaults.

    Raises:
        ConfigError: If the file is not valid YAML or fails validation
    """
    raw: Optional[dict[str, Any]] = None
    if path is not None and Path(path).exists():
        try:
            raw = load_config(Path(path))
        except yaml.YAMLError as exc:
            raise ConfigError([f"Invalid YAML in {path}: {exc}"]) from exc
    else:
        logger.debug("No config file at %s, using defaults", path)
    return settings_from_config(raw)
