from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Sequence

from cli_autoload.core import LOGGER_NAME

if TYPE_CHECKING:
    from cli_autoload.host import Host


@dataclass(frozen=True)
class NoopCommand:
    name: str = "autoload-noop"
    usage: str = "autoload-noop"
    help: str = "Do nothing. Handy as a placeholder or to check that autoloading ran."

    def __call__(self, host: Host, args: list[str]) -> int:
        return 0


@dataclass(frozen=True)
class PingCommand:
    name: str = "autoload-ping"
    usage: str = "autoload-ping"
    help: str = "Report that the autoload engine ran and dispatched this command."

    def __call__(self, host: Host, args: list[str]) -> int:
        logging.getLogger(LOGGER_NAME).debug("autoload-ping reached with args %r", args)
        print(f"{self.name}: reached")
        return 0


def builtin_commands() -> Sequence[NoopCommand | PingCommand]:
    # Keep ordering stable for predictable listings.
    return (NoopCommand(), PingCommand())


def register_builtins(host: Host) -> list[str]:
    registered: list[str] = []
    for cmd in builtin_commands():
        if cmd.name in host.commands:
            continue
        host.register_command(cmd.name, cmd, usage=cmd.usage, help=cmd.help)
        registered.append(cmd.name)
    return registered
