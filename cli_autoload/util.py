from __future__ import annotations

import os
from pathlib import Path
from typing import Mapping

_FALSEY = {"", "0", "false", "no", "off"}


def xdg_config_home() -> Path:
    return Path(os.environ.get("XDG_CONFIG_HOME", Path.home() / ".config"))


def expand_path(s: str) -> Path:
    # Expand ~ and $VARS
    return Path(os.path.expandvars(os.path.expanduser(s)))


def env_flag(environ: Mapping[str, str], name: str) -> bool:
    value = environ.get(name)
    if value is None:
        return False
    return value.strip().lower() not in _FALSEY


def looks_like_path(ref: str) -> bool:
    """
    True when a module reference names a file or directory rather than an
    importable module name.
    """
    if ref.startswith((".", "/", "~")):
        return True
    if ref.endswith(".py"):
        return True
    return os.sep in ref or (os.altsep is not None and os.altsep in ref)


def canonical_path(p: Path) -> Path:
    try:
        return p.expanduser().resolve()
    except OSError:
        return p.expanduser().absolute()

