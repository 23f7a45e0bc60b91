from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Iterable

if TYPE_CHECKING:
    from cli_autoload.host import AliasResolver, Host


class ExtensionAliasResolver:
    """
    Alias resolver wrapper: extension commands resolve to themselves and are
    never expanded as abbreviations; everything else goes to the host's
    original resolver.
    """

    def __init__(self, original: AliasResolver, names: Iterable[str] = ()) -> None:
        self.original = original
        self.names: set[str] = set(names)

    def __call__(self, name: str) -> str | None:
        if name in self.names:
            return name
        return self.original(name)


def _append_missing(listing: list[str], names: Iterable[str]) -> None:
    for name in names:
        if name not in listing:
            listing.append(name)


def install_alias_resolver(host: Host, names: Iterable[str]) -> ExtensionAliasResolver:
    current = host.alias_resolver
    if isinstance(current, ExtensionAliasResolver):
        # Extend in place so repeated passes never stack wrappers.
        current.names.update(names)
        return current
    wrapper = ExtensionAliasResolver(current, names)
    host.set_alias_resolver(wrapper)
    return wrapper


def redirect_help(host: Host, new_commands: set[str]) -> None:
    argv = host.argv
    if host.command != "help":
        return

    # `help "" <ext> ...`: the host did not know <ext> when it parsed argv.
    if len(argv) > 1 and not argv[0] and argv[1] in new_commands:
        if host.config.usage:
            del argv[0]
        else:
            host.command = argv[1]
            del argv[:2]
            return

    # `help <ext>`: show the extension's help text through the usage path.
    if argv and argv[0] in new_commands:
        cmd = host.commands[argv[0]]
        if cmd.help and cmd.help != cmd.usage:
            cmd.usage = cmd.help
            host.config.usage = True


def patch_commands(host: Host, before: Iterable[str], logger: logging.Logger) -> list[str]:
    """
    Splice commands registered since `before` was snapshotted into the host's
    listings, alias resolution and help handling.

    Returns the newly added command names in registration order.
    """
    known = set(before)
    added = [name for name in host.commands if name not in known]
    if not added:
        logger.debug("No new commands registered")
        return []

    for listing in host.listings:
        _append_missing(listing, added)
    _append_missing(host.full_list, added)
    install_alias_resolver(host, added)
    redirect_help(host, set(added))

    logger.debug("Registered extension commands: %s", ", ".join(added))
    return added
