from __future__ import annotations

import importlib
import importlib.util
import sys
from dataclasses import dataclass
from importlib.machinery import ModuleSpec, PathFinder
from pathlib import Path
from types import ModuleType
from typing import TYPE_CHECKING, Any

from cli_autoload.config_loader import AutoloadEntry
from cli_autoload.core import AutoloadContext, AutoloadState
from cli_autoload.errors import HookError, ModuleLoadError, ResolutionError
from cli_autoload.plugins.api import ErrorKind, LoadResult
from cli_autoload.util import canonical_path, looks_like_path

if TYPE_CHECKING:
    from cli_autoload.host import Host


@dataclass(frozen=True)
class ResolvedModule:
    reference: str
    identity: str
    path: Path | None
    # Specs to execute in order (parent packages first). Empty for modules
    # found on sys.path, which go through the regular import system.
    chain: tuple[ModuleSpec, ...] = ()
    import_name: str | None = None


def _spec_identity(spec: ModuleSpec) -> tuple[str, Path | None]:
    if spec.has_location and spec.origin:
        path = canonical_path(Path(spec.origin))
        return str(path), path
    return f"module:{spec.name}", None


def _module_name_for(path: Path) -> str:
    return f"cli_autoload_ext_{path.stem}_{abs(hash(str(path)))}"


def _resolve_path_reference(ref: str, base_dir: Path) -> ResolvedModule | None:
    target = Path(ref).expanduser()
    if not target.is_absolute():
        target = base_dir / target
    candidates = [target]
    if target.suffix != ".py":
        candidates.append(target.with_name(target.name + ".py"))

    for cand in candidates:
        if cand.is_dir():
            init = cand / "__init__.py"
            if not init.is_file():
                continue
            init = canonical_path(init)
            spec = importlib.util.spec_from_file_location(
                _module_name_for(init.parent),
                init,
                submodule_search_locations=[str(init.parent)],
            )
        elif cand.is_file():
            init = canonical_path(cand)
            spec = importlib.util.spec_from_file_location(_module_name_for(init), init)
        else:
            continue
        if spec is None or spec.loader is None:
            continue
        return ResolvedModule(reference=ref, identity=str(init), path=init, chain=(spec,))
    return None


def _resolve_named_reference(name: str, base_dir: Path) -> ResolvedModule | None:
    # Modules next to the config file win over anything on sys.path.
    parts = name.split(".")
    spec = PathFinder.find_spec(parts[0], [str(base_dir)])
    if spec is not None:
        chain = [spec]
        for i in range(1, len(parts)):
            locations = chain[-1].submodule_search_locations
            if not locations:
                return None
            sub = PathFinder.find_spec(".".join(parts[: i + 1]), list(locations))
            if sub is None:
                return None
            chain.append(sub)
        identity, path = _spec_identity(chain[-1])
        return ResolvedModule(reference=name, identity=identity, path=path, chain=tuple(chain))

    try:
        found = importlib.util.find_spec(name)
    except (ImportError, ValueError):
        return None
    if found is None:
        return None
    identity, path = _spec_identity(found)
    return ResolvedModule(reference=name, identity=identity, path=path, import_name=name)


def resolve_module(entry: AutoloadEntry) -> ResolvedModule:
    base_dir = entry.base_path.parent
    try:
        if looks_like_path(entry.module):
            resolved = _resolve_path_reference(entry.module, base_dir)
        else:
            resolved = _resolve_named_reference(entry.module, base_dir)
    except Exception as e:
        raise ResolutionError(entry.module, f"Failed to resolve {entry.module!r}: {e}") from e
    if resolved is None:
        raise ResolutionError(entry.module, f"No module {entry.module!r} near {base_dir}")
    return resolved


def _exec_spec(spec: ModuleSpec) -> ModuleType:
    if spec.loader is None:
        raise ImportError(f"No loader for module {spec.name}")
    mod = importlib.util.module_from_spec(spec)
    # Register before executing so the module can import itself and its
    # submodules; drop it again if execution fails.
    sys.modules[spec.name] = mod
    try:
        spec.loader.exec_module(mod)
    except BaseException:
        sys.modules.pop(spec.name, None)
        raise
    parent, _, child = spec.name.rpartition(".")
    if parent and parent in sys.modules:
        setattr(sys.modules[parent], child, mod)
    return mod


def _same_origin(module: ModuleType, spec: ModuleSpec) -> bool:
    loaded = getattr(module, "__spec__", None)
    if loaded is None:
        return False
    if spec.origin is not None:
        return loaded.origin == spec.origin
    return list(getattr(module, "__path__", [])) == list(spec.submodule_search_locations or [])


def _spec_location(spec: ModuleSpec) -> Path:
    if spec.origin is None:
        return Path(spec.name.rpartition(".")[2])
    location = Path(spec.origin)
    return location.parent if spec.submodule_search_locations else location


def _respec(spec: ModuleSpec, name: str) -> ModuleSpec:
    if spec.origin is None:
        # Namespace package: nothing to execute, only the search path moves.
        renamed = ModuleSpec(name, spec.loader, is_package=True)
        renamed.submodule_search_locations = list(spec.submodule_search_locations or [])
        return renamed
    renamed = importlib.util.spec_from_file_location(
        name,
        spec.origin,
        submodule_search_locations=spec.submodule_search_locations,
    )
    if renamed is None:
        raise ImportError(f"Cannot load {spec.origin} as {name}")
    return renamed


def _load_chain(chain: tuple[ModuleSpec, ...]) -> ModuleType:
    # A module already imported under the same name is only reused when it was
    # loaded from the same file; otherwise ours gets a private name.
    mod: ModuleType | None = None
    parent = ""
    for spec in chain:
        name = f"{parent}.{spec.name.rpartition('.')[2]}" if parent else spec.name
        existing = sys.modules.get(name)
        if existing is not None and _same_origin(existing, spec):
            mod = existing
        else:
            if existing is not None:
                private = _module_name_for(_spec_location(spec))
                name = f"{parent}.{private}" if parent else private
            mod = _exec_spec(spec if name == spec.name else _respec(spec, name))
        parent = name
    assert mod is not None
    return mod


def load_resolved(resolved: ResolvedModule) -> ModuleType:
    try:
        if resolved.chain:
            return _load_chain(resolved.chain)
        assert resolved.import_name is not None
        return importlib.import_module(resolved.import_name)
    except (Exception, SystemExit) as e:
        raise ModuleLoadError(
            resolved.reference,
            f"{type(e).__name__}: {e}",
            path=resolved.path,
        ) from e


def find_hook(module: ModuleType, identity: str, state: AutoloadState, hook_name: str) -> str | None:
    hook = getattr(module, hook_name, None)
    if callable(hook) and not state.has_run(identity):
        return hook_name
    return None


def invoke_hook(module: ModuleType, resolved: ResolvedModule, func: str, host: Host, command: str) -> Any:
    hook = getattr(module, func, None)
    if not callable(hook):
        raise HookError(
            resolved.reference,
            f"Module has no callable {func!r}",
            func=func,
            path=resolved.path,
        )
    try:
        return hook(host, command)
    except (Exception, SystemExit) as e:
        raise HookError(
            resolved.reference,
            f"{type(e).__name__}: {e}",
            func=func,
            path=resolved.path,
        ) from e


def load_entry(entry: AutoloadEntry, host: Host, command: str, ctx: AutoloadContext) -> LoadResult:
    """
    Resolve, import and run the registration hook for one entry.

    Never raises for module failures: the returned LoadResult records which
    step failed so the caller can classify it.
    """
    logger = ctx.logger
    try:
        resolved = resolve_module(entry)
    except ResolutionError as e:
        return LoadResult(entry=entry, kind=ErrorKind.RESOLVE, error=e)

    # Recorded before loading so self-registration checks work even if the
    # import fails halfway.
    ctx.state.record_resolved(resolved.identity)
    logger.debug("Resolved %s to %s", entry.module, resolved.path or resolved.identity)

    module = ctx.state.modules.get(resolved.identity)
    if module is None:
        try:
            module = load_resolved(resolved)
        except ModuleLoadError as e:
            return LoadResult(
                entry=entry,
                identity=resolved.identity,
                path=resolved.path,
                kind=ErrorKind.LOAD,
                error=e,
            )
        ctx.state.modules[resolved.identity] = module

    if entry.func is None:
        entry.func = find_hook(module, resolved.identity, ctx.state, ctx.options.hook_name)
    if not entry.func:
        logger.debug("No registration hook to run for %s", entry.module)
        return LoadResult(entry=entry, identity=resolved.identity, path=resolved.path)

    if not ctx.state.claim(resolved.identity):
        logger.debug("Hook of %s already ran, skipping", resolved.path or resolved.identity)
        return LoadResult(entry=entry, identity=resolved.identity, path=resolved.path)

    try:
        invoke_hook(module, resolved, entry.func, host, command)
    except HookError as e:
        return LoadResult(
            entry=entry,
            identity=resolved.identity,
            path=resolved.path,
            kind=ErrorKind.HOOK,
            error=e,
        )
    logger.debug("Ran %s.%s", entry.module, entry.func)
    return LoadResult(entry=entry, identity=resolved.identity, path=resolved.path, invoked=True)
