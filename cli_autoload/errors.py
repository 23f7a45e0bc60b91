from __future__ import annotations

from pathlib import Path


class AutoloadError(Exception):
    """Base class for failures while handling a single autoload entry."""

    def __init__(self, reference: str, message: str, *, path: Path | None = None) -> None:
        super().__init__(message)
        self.reference = reference
        self.path = path


class ResolutionError(AutoloadError):
    pass


class ModuleLoadError(AutoloadError):
    pass


class HookError(AutoloadError):
    def __init__(
        self,
        reference: str,
        message: str,
        *,
        func: str,
        path: Path | None = None,
    ) -> None:
        super().__init__(reference, message, path=path)
        self.func = func
