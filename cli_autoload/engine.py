"""
Autoload orchestration.

One pass reads the project config, then the global config, loads every entry
in file order and finally splices any new commands into the host once.
"""

from __future__ import annotations

import importlib
from types import ModuleType
from typing import TYPE_CHECKING

from cli_autoload.config_loader import load_entries
from cli_autoload.core import (
    GLOBAL,
    PROJECT,
    STATE,
    AutoloadContext,
    AutoloadState,
    Options,
    Scope,
    build_context,
    module_identity,
)
from cli_autoload.plugins.api import LoadResult
from cli_autoload.plugins.builtin import register_builtins
from cli_autoload.plugins.classify import handle_failure, is_bootstrap_pass
from cli_autoload.plugins.loader import load_entry
from cli_autoload.plugins.patcher import patch_commands
from cli_autoload.util import canonical_path

if TYPE_CHECKING:
    from cli_autoload.host import Host


def effective_command(host: Host) -> tuple[str, list[str]]:
    """The command the host is about to run and its positional arguments."""
    argv = host.argv
    if host.command == "help" and len(argv) > 1 and not argv[0] and argv[1]:
        return argv[1], list(argv[2:])
    return host.command, list(argv)


def scopes_for(host: Host, options: Options) -> list[Scope]:
    scopes: list[Scope] = []
    if not host.config.global_mode:
        scopes.append(Scope(name=PROJECT, directory=host.config.local_prefix, global_context=False))
    scopes.append(
        Scope(
            name=GLOBAL,
            directory=host.config.global_prefix / options.global_subdir,
            global_context=True,
        )
    )

    # A project that lives at the global config dir must not load twice.
    seen: set[str] = set()
    unique: list[Scope] = []
    for scope in scopes:
        key = str(canonical_path(scope.directory))
        if key in seen:
            continue
        seen.add(key)
        unique.append(scope)
    return unique


def run_scope(
    scope: Scope,
    host: Host,
    ctx: AutoloadContext,
    *,
    command: str,
    positional: list[str],
) -> list[LoadResult]:
    entries = load_entries(scope.directory, ctx.logger, basename=ctx.options.config_basename)
    if not entries:
        return []

    bootstrap = scope.is_project and is_bootstrap_pass(command, positional, scope.directory, ctx.options)
    if bootstrap:
        ctx.logger.debug("Bootstrap install in %s, muting project autoload failures", scope.directory)

    results: list[LoadResult] = []
    with host.global_context(scope.global_context):
        for entry in entries:
            result = load_entry(entry, host, command, ctx)
            if not result.ok:
                handle_failure(result, host, ctx, scope=scope, bootstrap=bootstrap)
            results.append(result)
    return results


def autoload(host: Host, ctx: AutoloadContext | None = None) -> list[str]:
    """
    Run one autoload pass against `host`.

    Returns the names of commands added to the host. Exits the process only
    when a required entry fails outside a bootstrap install.
    """
    ctx = ctx or build_context()
    if ctx.options.skip:
        ctx.logger.debug("Autoload disabled by environment, leaving")
        return []

    before = set(host.commands)
    register_builtins(host)

    command, positional = effective_command(host)
    ctx.logger.debug("Autoloading for command %r", command)

    # Config files may point at modules created since the last import.
    importlib.invalidate_caches()
    for scope in scopes_for(host, ctx.options):
        results = run_scope(scope, host, ctx, command=command, positional=positional)
        if results:
            loaded = sum(1 for r in results if r.ok)
            ctx.logger.debug("%s scope: %d/%d entries loaded", scope.name, loaded, len(results))

    return patch_commands(host, before, ctx.logger)


def has_run(module: ModuleType | str, state: AutoloadState | None = None) -> bool:
    identity = module if isinstance(module, str) else module_identity(module)
    return (state or STATE).has_run(identity)


def self_register(
    module: ModuleType,
    host: Host,
    command: str | None = None,
    ctx: AutoloadContext | None = None,
) -> bool:
    """
    Run a module's registration hook when it was imported outside of the
    autoload config, at most once per process.

    Returns False when the engine is loading this module itself (it will run
    the hook), when the hook already ran, or when the module has no hook.
    """
    ctx = ctx or build_context()
    identity = module_identity(module)
    if ctx.state.is_resolved(identity):
        return False
    hook = getattr(module, ctx.options.hook_name, None)
    if not callable(hook):
        return False
    if not ctx.state.claim(identity):
        return False
    hook(host, host.command if command is None else command)
    return True
