"""
Autoload extension modules into a command-line host from
`cli-autoload.{yaml,yml,json}` files in the project and global config dirs.
"""

from cli_autoload.config_loader import AutoloadEntry, load_config, locate_config
from cli_autoload.core import STATE, AutoloadContext, AutoloadState, Options, build_context
from cli_autoload.engine import autoload, has_run, self_register

__all__ = [
    "STATE",
    "AutoloadContext",
    "AutoloadEntry",
    "AutoloadState",
    "Options",
    "autoload",
    "build_context",
    "has_run",
    "load_config",
    "locate_config",
    "self_register",
]

__version__ = "0.1.0"
