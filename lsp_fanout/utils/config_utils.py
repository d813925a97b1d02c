"""configuration management utilities

settings are read from an ini file (./config.ini unless LSP_FANOUT_CONFIG
points elsewhere):

  [dispatch]
  request_timeout = 10        ; seconds, fan-out timeout (unset: wait for all)
  sync_timeout_ms = 1000      ; request_sync default

  [logging]
  level = info
  prefix = lsp-fanout
  log_dir =                   ; unset: console only
"""

import os
import configparser
from typing import Optional

CONFIG_ENV_VAR = "LSP_FANOUT_CONFIG"
DEFAULT_CONFIG_PATH = "./config.ini"

global_config = configparser.ConfigParser()


def load_config_ini(config_path: Optional[str] = None) -> bool:
    """load configuration file

    Args:
        config_path: path to the ini file (defaults to $LSP_FANOUT_CONFIG,
                     then ./config.ini)

    Returns:
        True if a file was read
    """
    path = config_path or os.environ.get(CONFIG_ENV_VAR) or DEFAULT_CONFIG_PATH
    if not os.path.exists(path):
        return False
    global_config.read(path, encoding="utf-8")
    return True


def reset_config() -> None:
    """drop every loaded section"""
    for section in global_config.sections():
        global_config.remove_section(section)


def get_config_value(section: str, key: str, default=None):
    """get configuration value

    Args:
        section: config section name
        key: config key name
        default: default value if not found or empty

    Returns:
        config value or default
    """
    try:
        value = global_config.get(section, key)
    except (configparser.NoSectionError, configparser.NoOptionError):
        return default
    if value is None or value.strip() == "":
        return default
    return value.strip()


def get_config_int(section: str, key: str, default: int = 0) -> int:
    """get configuration value as integer"""
    value = get_config_value(section, key)
    if value is None:
        return default
    return int(value)


def get_config_float(section: str, key: str, default: Optional[float] = None) -> Optional[float]:
    """get configuration value as float"""
    value = get_config_value(section, key)
    if value is None:
        return default
    return float(value)


def get_config_bool(section: str, key: str, default: bool = False) -> bool:
    """get configuration value as boolean"""
    value = get_config_value(section, key)
    if value is None:
        return default
    return value.lower() in ("true", "1", "yes", "on")


# auto-load on import
load_config_ini()
