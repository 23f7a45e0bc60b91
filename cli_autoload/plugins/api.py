from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import TYPE_CHECKING, Protocol

from cli_autoload.config_loader import AutoloadEntry
from cli_autoload.errors import AutoloadError

if TYPE_CHECKING:
    from cli_autoload.host import Host


class RegistrationHook(Protocol):
    """
    Called once per module with the host and the command about to run.

    Extensions add commands through `host.register_command(...)`.
    """

    def __call__(self, host: "Host", command: str) -> None: ...


class ErrorKind(Enum):
    RESOLVE = "resolve"
    LOAD = "load"
    HOOK = "hook"


@dataclass(frozen=True)
class LoadResult:
    entry: AutoloadEntry
    identity: str | None = None
    path: Path | None = None
    kind: ErrorKind | None = None
    error: AutoloadError | None = None
    invoked: bool = False

    @property
    def ok(self) -> bool:
        return self.kind is None

    def message(self) -> tuple[str, tuple[object, ...]]:
        """Log format string and arguments describing the failure."""
        where = str(self.path) if self.path is not None else self.entry.module
        if self.kind is ErrorKind.RESOLVE:
            fmt, args = "Could not find module %s", (self.entry.module,)
        elif self.kind is ErrorKind.LOAD:
            fmt, args = "Error importing module %s", (where,)
        elif self.kind is ErrorKind.HOOK:
            func = getattr(self.error, "func", None) or self.entry.func or "?"
            fmt, args = "Error executing function %s in module %s", (func, where)
        else:
            fmt, args = "Unknown error handling autoload entry", ()
        if self.error is not None:
            fmt += ": %s"
            args += (self.error,)
        return fmt, args
