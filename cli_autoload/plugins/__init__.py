"""
Autoload pipeline stages: module loading, failure classification and
command table patching.
"""

from cli_autoload.plugins.api import ErrorKind, LoadResult, RegistrationHook
from cli_autoload.plugins.classify import Outcome, classify, handle_failure, is_bootstrap_pass
from cli_autoload.plugins.loader import ResolvedModule, load_entry, resolve_module
from cli_autoload.plugins.patcher import ExtensionAliasResolver, patch_commands

__all__ = [
    "ErrorKind",
    "ExtensionAliasResolver",
    "LoadResult",
    "Outcome",
    "RegistrationHook",
    "ResolvedModule",
    "classify",
    "handle_failure",
    "is_bootstrap_pass",
    "load_entry",
    "patch_commands",
    "resolve_module",
]
