"""
Example extension adding a `greet` command.

Enable it from a project by listing it in cli-autoload.yaml:

    - ./plugins/greet.py
"""

from __future__ import annotations

from cli_autoload.plugin_api import Host

USAGE = "greet [name...]"
HELP = "Print a greeting.\n\nUsage: greet [name...]\n\nGreets each name, or the world when none is given."


def cmd_greet(host: Host, args: list[str]) -> int:
    names = [a for a in args if a] or ["world"]
    for name in names:
        print(f"Hello, {name}!")
    return 0


def _autoload(host: Host, command: str) -> None:
    if "greet" in host.commands:
        return
    host.register_command("greet", cmd_greet, usage=USAGE, help=HELP)
