from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from types import ModuleType
from typing import Mapping

from cli_autoload.util import canonical_path, env_flag

LOGGER_NAME = "cli-autoload"

HOOK_NAME = "_autoload"
CONFIG_BASENAME = "cli-autoload."
DEPS_DIR_NAME = "cli_modules"

SKIP_ENV = "CLI_AUTOLOAD_SKIP"
DEBUG_ENV = "CLI_AUTOLOAD_DEBUG"

PROJECT = "project"
GLOBAL = "global"


@dataclass(frozen=True)
class Options:
    config_basename: str = CONFIG_BASENAME
    hook_name: str = HOOK_NAME
    install_commands: tuple[str, ...] = ("install",)
    deps_dir_name: str = DEPS_DIR_NAME
    global_subdir: str = "etc"
    skip: bool = False
    verbose: bool = False


def options_from_env(environ: Mapping[str, str] | None = None) -> Options:
    env = os.environ if environ is None else environ
    return Options(skip=env_flag(env, SKIP_ENV), verbose=env_flag(env, DEBUG_ENV))


@dataclass(frozen=True)
class Scope:
    name: str  # project|global
    directory: Path
    global_context: bool

    @property
    def is_project(self) -> bool:
        return self.name == PROJECT


def module_identity(module: ModuleType) -> str:
    origin = getattr(module, "__file__", None)
    if origin:
        return str(canonical_path(Path(origin)))
    return f"module:{module.__name__}"


class AutoloadState:
    """
    Load bookkeeping shared by every pass in one process.

    resolved: identities the engine located itself (an extension importing
    itself through the engine must not also self-register).
    invoked: identities whose registration hook already ran.
    modules: loaded module per identity, so one file referenced by path and
    by name is only executed once.
    """

    def __init__(self) -> None:
        self.resolved: set[str] = set()
        self.invoked: set[str] = set()
        self.modules: dict[str, ModuleType] = {}

    def record_resolved(self, identity: str) -> None:
        self.resolved.add(identity)

    def is_resolved(self, identity: str) -> bool:
        return identity in self.resolved

    def has_run(self, identity: str) -> bool:
        return identity in self.invoked

    def claim(self, identity: str) -> bool:
        """Mark a hook as run. Returns False if it had already been claimed."""
        if identity in self.invoked:
            return False
        self.invoked.add(identity)
        return True

    def reset(self) -> None:
        self.resolved.clear()
        self.invoked.clear()
        self.modules.clear()


# Process-wide default; pass an explicit AutoloadState to isolate runs.
STATE = AutoloadState()


@dataclass(frozen=True)
class AutoloadContext:
    logger: logging.Logger
    options: Options
    state: AutoloadState = field(default=STATE)


def setup_logger(verbose: bool) -> logging.Logger:
    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(logging.DEBUG if verbose else logging.INFO)
    handler = logging.StreamHandler()
    handler.setLevel(logging.DEBUG if verbose else logging.INFO)
    handler.setFormatter(logging.Formatter("[%(levelname)s] %(message)s"))
    logger.handlers[:] = [handler]
    logger.propagate = False
    return logger


def build_context(
    *,
    options: Options | None = None,
    logger: logging.Logger | None = None,
    state: AutoloadState | None = None,
) -> AutoloadContext:
    options = options or options_from_env()
    if logger is None:
        logger = logging.getLogger(LOGGER_NAME)
        if options.verbose:
            logger.setLevel(logging.DEBUG)
    return AutoloadContext(logger=logger, options=options, state=state or STATE)
