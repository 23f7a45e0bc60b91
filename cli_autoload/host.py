"""
Host program API consumed by the autoload engine.

The engine only needs a narrow surface from the program it extends:

- a command table it may add to (never overwrite),
- a full command list plus auxiliary listing structures for help output,
- a replaceable alias resolver ("deref"),
- the resolved command name and its positional arguments,
- a small config object (global mode, project root, global prefix, usage flag).

`Host.from_argv` gives a small runnable host built on the same surface, used by
the `cli-autoload` entry point.
"""

from __future__ import annotations

import contextlib
import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Iterator, Sequence

from cli_autoload.core import DEPS_DIR_NAME, LOGGER_NAME
from cli_autoload.util import expand_path, xdg_config_home

CommandHandler = Callable[["Host", list[str]], Any]
AliasResolver = Callable[[str], "str | None"]

EXIT_HANDLER_WARNING = "exit handler never called"

BUILTIN_ALIASES = {
    "i": "install",
    "add": "install",
    "?": "help",
}


def default_global_prefix() -> Path:
    env = os.environ.get("CLI_AUTOLOAD_PREFIX")
    if env:
        return expand_path(env)
    return xdg_config_home() / "cli-autoload"


@dataclass
class HostCommand:
    name: str
    handler: CommandHandler
    usage: str = ""
    help: str | None = None
    global_context: bool = False


@dataclass
class HostConfig:
    local_prefix: Path = field(default_factory=Path.cwd)
    global_prefix: Path = field(default_factory=default_global_prefix)
    global_mode: bool = False
    usage: bool = False


@dataclass(frozen=True)
class ExitListener:
    description: str
    callback: Callable[[], None]


class Host:
    def __init__(
        self,
        config: HostConfig | None = None,
        *,
        command: str = "",
        argv: Sequence[str] = (),
    ) -> None:
        self.config = config or HostConfig()
        self.commands: dict[str, HostCommand] = {}
        self.full_list: list[str] = []
        self.listings: list[list[str]] = []
        self.aliases: dict[str, str] = {}
        self.command = command
        self.argv: list[str] = list(argv)
        self.exit_listeners: list[ExitListener] = []
        self._alias_resolver: AliasResolver = self._default_deref
        self._global_context = False
        self._finished = False

    # Command table

    def register_command(
        self,
        name: str,
        handler: CommandHandler,
        *,
        usage: str | None = None,
        help: str | None = None,
    ) -> HostCommand:
        if not isinstance(name, str) or not name:
            raise ValueError("Command name must be a non-empty string")
        if name in self.commands:
            raise ValueError(f"Command already registered: {name}")
        cmd = HostCommand(
            name=name,
            handler=handler,
            usage=usage or name,
            help=help,
            global_context=self._global_context,
        )
        self.commands[name] = cmd
        return cmd

    def add_listing(self, listing: list[str] | None = None) -> list[str]:
        listing = [] if listing is None else listing
        self.listings.append(listing)
        return listing

    @contextlib.contextmanager
    def global_context(self, flag: bool = True) -> Iterator[None]:
        previous = self._global_context
        self._global_context = flag
        try:
            yield
        finally:
            self._global_context = previous

    # Alias resolution

    @property
    def alias_resolver(self) -> AliasResolver:
        return self._alias_resolver

    def set_alias_resolver(self, resolver: AliasResolver) -> None:
        if not callable(resolver):
            raise TypeError("Alias resolver must be callable")
        self._alias_resolver = resolver

    def deref(self, name: str) -> str | None:
        return self._alias_resolver(name)

    def _default_deref(self, name: str) -> str | None:
        if not name:
            return None
        if name in self.aliases:
            return self.aliases[name]
        if name in self.full_list:
            return name
        # Unambiguous abbreviations of listed commands.
        matches = [c for c in self.full_list if c.startswith(name)]
        if len(matches) == 1:
            return matches[0]
        return None

    # Exit listeners

    def on_exit(self, description: str, callback: Callable[[], None]) -> None:
        self.exit_listeners.append(ExitListener(description=description, callback=callback))

    def remove_exit_listeners(self, predicate: Callable[[ExitListener], bool]) -> int:
        kept = [listener for listener in self.exit_listeners if not predicate(listener)]
        removed = len(self.exit_listeners) - len(kept)
        self.exit_listeners[:] = kept
        return removed

    def run_exit_listeners(self) -> None:
        for listener in list(self.exit_listeners):
            listener.callback()

    # Command line

    def resolve_command_line(self, tokens: Sequence[str]) -> None:
        """
        Resolve the first token to a command.

        An unknown command becomes `help` with an empty topic slot followed by
        the unknown token, so later-registered commands can still claim it.
        """
        tokens = list(tokens)
        if not tokens:
            self.command, self.argv = "help", []
            return
        name = self.deref(tokens[0])
        if name is None or name not in self.commands:
            self.command, self.argv = "help", ["", *tokens]
        else:
            self.command, self.argv = name, tokens[1:]
        if self.config.usage and self.command != "help":
            self.argv.insert(0, self.command)
            self.command = "help"

    def dispatch(self) -> int:
        try:
            cmd = self.commands.get(self.command)
            if cmd is None:
                print(f"Unknown command: {self.command}")
                return 1
            rc = cmd.handler(self, list(self.argv))
            return int(rc or 0)
        finally:
            self._finished = True

    @classmethod
    def from_argv(cls, argv: Sequence[str], config: HostConfig | None = None) -> Host:
        config = config or HostConfig()
        rest: list[str] = []
        for tok in argv:
            if tok in ("-h", "--help"):
                config.usage = True
            elif tok in ("-g", "--global"):
                config.global_mode = True
            else:
                rest.append(tok)

        host = cls(config)
        host.aliases.update(BUILTIN_ALIASES)
        for name, handler, usage, help_text in _BUILTINS:
            host.register_command(name, handler, usage=usage, help=help_text)
            host.full_list.append(name)
        host.add_listing(sorted(host.full_list))
        host.on_exit(EXIT_HANDLER_WARNING, host._warn_unfinished)
        host.resolve_command_line(rest)
        return host

    def _warn_unfinished(self) -> None:
        if not self._finished:
            logging.getLogger(LOGGER_NAME).warning(
                "%s: command %r did not finish", EXIT_HANDLER_WARNING, self.command
            )


def _cmd_help(host: Host, args: list[str]) -> int:
    topic = next((a for a in args if a), None)
    if topic is None:
        print("Usage: cli-autoload <command> [args...]")
        print("")
        print("Commands:")
        for name in host.full_list:
            print(f"    {name}")
        return 0
    name = host.deref(topic)
    cmd = host.commands.get(name) if name else None
    if cmd is None:
        print(f"Unknown command: {topic}")
        return 1
    if host.config.usage or not cmd.help:
        print(cmd.usage)
    else:
        print(cmd.help)
    return 0


def _cmd_install(host: Host, args: list[str]) -> int:
    deps_dir = host.config.local_prefix / DEPS_DIR_NAME
    deps_dir.mkdir(parents=True, exist_ok=True)
    for name in args:
        (deps_dir / name).mkdir(exist_ok=True)
    print(f"Installed {len(args)} package(s) into {deps_dir}")
    return 0


_BUILTINS = (
    ("help", _cmd_help, "help [command]", "Show the command list or help for a command."),
    ("install", _cmd_install, "install [package...]", None),
)
