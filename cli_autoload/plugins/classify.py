from __future__ import annotations

import sys
from enum import Enum
from pathlib import Path
from typing import TYPE_CHECKING, Sequence

from cli_autoload.core import AutoloadContext, Options, Scope
from cli_autoload.host import EXIT_HANDLER_WARNING, ExitListener
from cli_autoload.plugins.api import LoadResult

if TYPE_CHECKING:
    from cli_autoload.host import Host

# Host exit hooks that only produce misleading noise when we bail out early.
KNOWN_BENIGN_EXIT_WARNINGS = (EXIT_HANDLER_WARNING,)


class Outcome(Enum):
    CONTINUE_WARN = "warn"
    CONTINUE_SUPPRESS = "suppress"
    ABORT = "abort"


def is_bootstrap_pass(
    command: str,
    positional: Sequence[str],
    project_dir: Path,
    options: Options,
) -> bool:
    """
    First-time install in a project: extensions may depend on packages that
    this very install is about to provide, so their failures are muted.
    """
    if command not in options.install_commands:
        return False
    if any(positional):
        return False
    return not (project_dir / options.deps_dir_name).exists()


def classify(result: LoadResult, *, scope: Scope, bootstrap: bool) -> Outcome:
    if bootstrap and scope.is_project:
        return Outcome.CONTINUE_SUPPRESS
    if result.entry.required:
        return Outcome.ABORT
    return Outcome.CONTINUE_WARN


def _is_benign(listener: ExitListener) -> bool:
    return any(w in listener.description for w in KNOWN_BENIGN_EXIT_WARNINGS)


def handle_failure(
    result: LoadResult,
    host: Host,
    ctx: AutoloadContext,
    *,
    scope: Scope,
    bootstrap: bool,
) -> Outcome:
    outcome = classify(result, scope=scope, bootstrap=bootstrap)
    fmt, args = result.message()
    prefix = "autoload:%s: "
    args = (result.entry.base_path, *args)
    logger = ctx.logger

    if outcome is Outcome.CONTINUE_WARN:
        logger.warning(prefix + fmt, *args)
    elif outcome is Outcome.CONTINUE_SUPPRESS:
        logger.debug(prefix + fmt, *args)
    else:
        logger.error(prefix + fmt, *args)
        logger.error(
            prefix + "Module %s is marked as required, bailing",
            result.entry.base_path,
            result.entry.module,
        )
        removed = host.remove_exit_listeners(_is_benign)
        if removed:
            logger.debug("Removed %d host exit listener(s) before exiting", removed)
        sys.exit(1)
    return outcome
