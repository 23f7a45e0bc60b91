from __future__ import annotations

import argparse
from pathlib import Path

from cli_autoload.core import build_context, options_from_env, setup_logger
from cli_autoload.engine import autoload
from cli_autoload.host import Host, HostConfig, default_global_prefix


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(
        prog="cli-autoload",
        add_help=False,
        # Host flags such as --global must not match --global-prefix by prefix.
        allow_abbrev=False,
        description="Run a host command after autoloading extensions from cli-autoload.{yaml,yml,json}.",
    )
    parser.add_argument(
        "--project-dir",
        type=Path,
        default=None,
        help="Project root holding the project-scope config (default: current directory).",
    )
    parser.add_argument(
        "--global-prefix",
        type=Path,
        default=None,
        help="Global prefix; its etc/ subdirectory holds the global-scope config. "
        "Also supports CLI_AUTOLOAD_PREFIX (default: ~/.config/cli-autoload).",
    )
    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Verbose logs. Also enabled by CLI_AUTOLOAD_DEBUG.",
    )
    parser.add_argument("command", nargs=argparse.REMAINDER, help="Host command line.")
    args, extra = parser.parse_known_args(argv)

    options = options_from_env()
    logger = setup_logger(args.verbose or options.verbose)

    config = HostConfig(
        local_prefix=(args.project_dir or Path.cwd()).resolve(),
        global_prefix=args.global_prefix or default_global_prefix(),
    )
    # Host flags such as --help may come before the command name.
    host = Host.from_argv([*extra, *args.command], config)
    ctx = build_context(options=options, logger=logger)

    try:
        autoload(host, ctx)
        return host.dispatch()
    finally:
        host.run_exit_listeners()
