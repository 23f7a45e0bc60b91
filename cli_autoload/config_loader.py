from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass, field
from json import JSONDecodeError
from pathlib import Path
from typing import Any, Callable

from cli_autoload.core import CONFIG_BASENAME

Decoder = Callable[[str, Path], Any]


@dataclass
class AutoloadEntry:
    base_path: Path
    module: str
    func: str | None = None
    required: bool = False
    extra: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class LoadedConfig:
    path: Path
    entries: list[AutoloadEntry]
    error: str | None = None


def _load_json(text: str, path: Path) -> Any:
    try:
        return json.loads(text)
    except JSONDecodeError as e:
        raise ValueError(
            f"Invalid JSON in {path} at line {e.lineno}, column {e.colno}: {e.msg}"
        ) from e


def _load_yaml(text: str, path: Path) -> Any:
    try:
        import yaml  # type: ignore
    except Exception as e:
        raise ValueError(
            "YAML config support requires PyYAML. Install it (e.g. 'python -m pip install pyyaml') "
            f"and retry loading {path}."
        ) from e
    try:
        return yaml.safe_load(text)
    except Exception as e:
        mark = getattr(e, "problem_mark", None)
        if mark is not None and hasattr(mark, "line") and hasattr(mark, "column"):
            line = int(mark.line) + 1
            col = int(mark.column) + 1
            raise ValueError(f"Invalid YAML in {path} at line {line}, column {col}: {e}") from e
        raise ValueError(f"Invalid YAML in {path}: {e}") from e


# Probe order; the first existing file wins and the rest are never read.
CONFIG_FORMATS: tuple[tuple[str, Decoder], ...] = (
    ("yaml", _load_yaml),
    ("yml", _load_yaml),
    ("json", _load_json),
)


def locate_config(
    base_dir: Path,
    prefix: str | None = None,
    *,
    basename: str = CONFIG_BASENAME,
) -> tuple[Path, Decoder] | None:
    if prefix is None:
        prefix = str(base_dir) + os.sep
    for ext, decoder in CONFIG_FORMATS:
        path = Path(prefix + basename + ext)
        if path.is_file():
            return path, decoder
    return None


def _parse_string_entry(item: str, path: Path) -> AutoloadEntry | None:
    required = False
    if item.startswith("+"):
        required = True
        item = item[1:]
    module, _sep, func = item.partition(":")
    if not module:
        return None
    return AutoloadEntry(base_path=path, module=module, func=func or None, required=required)


def _parse_table_entry(item: dict[str, Any], path: Path) -> AutoloadEntry | None:
    module = item.get("module")
    if not isinstance(module, str) or not module:
        return None
    func = item.get("func")
    if func is not None and not isinstance(func, str):
        return None
    required = item.get("required", False)
    if not isinstance(required, bool):
        return None
    extra = {k: v for k, v in item.items() if k not in {"module", "func", "required", "basePath"}}
    return AutoloadEntry(
        base_path=path,
        module=module,
        func=func or None,
        required=required,
        extra=extra,
    )


def parse_entries(raw: Any, path: Path, logger: logging.Logger) -> list[AutoloadEntry]:
    if not isinstance(raw, list):
        raise ValueError(f"Expecting a list at the top level of {path}")
    entries: list[AutoloadEntry] = []
    for item in raw:
        entry: AutoloadEntry | None = None
        if isinstance(item, str):
            entry = _parse_string_entry(item, path)
        elif isinstance(item, dict):
            entry = _parse_table_entry(item, path)
        if entry is None:
            logger.warning("Unexpected entry %r in file %s, ignoring", item, path)
            continue
        entries.append(entry)
    return entries


def load_config_file(path: Path, logger: logging.Logger, decoder: Decoder | None = None) -> LoadedConfig:
    if decoder is None:
        suffix = path.suffix.lower()
        if suffix == ".json":
            decoder = _load_json
        elif suffix in (".yaml", ".yml"):
            decoder = _load_yaml
        else:
            raise ValueError(f"Unsupported config format for {path} (expected .yaml, .yml, .json).")
    text = path.read_text(encoding="utf-8")
    raw = decoder(text, path)
    return LoadedConfig(path=path, entries=parse_entries(raw, path, logger))


def load_config(
    base_dir: Path,
    logger: logging.Logger,
    *,
    prefix: str | None = None,
    basename: str = CONFIG_BASENAME,
) -> LoadedConfig | None:
    """
    Locate and read the autoload config of one directory.

    Returns None when no config file exists. A file that cannot be read or
    decoded is logged and yields a config with no entries.
    """
    found = locate_config(base_dir, prefix, basename=basename)
    if found is None:
        logger.debug("No autoload config in %s", base_dir)
        return None
    path, decoder = found
    try:
        loaded = load_config_file(path, logger, decoder)
    except (OSError, ValueError) as e:
        logger.error("Could not parse %s file %s: %s", path.suffix.lstrip("."), path, e)
        return LoadedConfig(path=path, entries=[], error=str(e))
    logger.debug("Read %d autoload entries from %s", len(loaded.entries), path)
    return loaded


def load_entries(base_dir: Path, logger: logging.Logger, **kwargs: Any) -> list[AutoloadEntry]:
    loaded = load_config(base_dir, logger, **kwargs)
    return loaded.entries if loaded is not None else []
