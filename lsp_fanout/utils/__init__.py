"""utility modules for lsp-fanout"""

from lsp_fanout.utils.singleton_utils import SingletonInstance
from lsp_fanout.utils.logging_utils import Logger, logging_func
from lsp_fanout.utils.config_utils import (
    load_config_ini,
    get_config_value,
    get_config_int,
    get_config_float,
    get_config_bool,
)

__all__ = [
    "SingletonInstance",
    "Logger",
    "logging_func",
    "load_config_ini",
    "get_config_value",
    "get_config_int",
    "get_config_float",
    "get_config_bool",
]
