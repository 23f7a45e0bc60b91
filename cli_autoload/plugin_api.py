"""
Stable SDK for extension modules.

Goal: extension authors should only depend on this module and avoid importing
internal implementation details from the engine.

An extension exposes a registration hook named `_autoload` (or any function
named in its config entry):

    def _autoload(host, command):
        host.register_command("greet", cmd_greet, usage="greet [name]")
"""

from __future__ import annotations

from cli_autoload.core import HOOK_NAME, module_identity
from cli_autoload.engine import has_run, self_register
from cli_autoload.host import Host, HostCommand, HostConfig
from cli_autoload.plugins.api import RegistrationHook

__all__ = [
    "HOOK_NAME",
    "Host",
    "HostCommand",
    "HostConfig",
    "RegistrationHook",
    "has_run",
    "module_identity",
    "self_register",
]
