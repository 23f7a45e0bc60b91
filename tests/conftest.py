"""
Shared fixtures for autoload tests.
"""

import json
import logging
import sys
import textwrap
from pathlib import Path

import pytest

from cli_autoload.core import STATE, AutoloadState, Options, build_context
from cli_autoload.host import Host, HostConfig

TEST_LOGGER = "autoload-tests"

HOOK_MODULE = '''
def _autoload(host, command):
    vars(host).setdefault("hook_calls", []).append(({name!r}, command))
    host.register_command(
        {name!r},
        lambda host, args: vars(host).setdefault("ran", []).append(({name!r}, args)),
        usage={usage!r},
        help={help!r},
    )
'''


@pytest.fixture(autouse=True)
def _clean_modules():
    """Drop extension modules imported by a test so names can be reused."""
    yield
    for name in list(sys.modules):
        if name.startswith(("cli_autoload_ext_", "ext_")):
            sys.modules.pop(name, None)


@pytest.fixture(autouse=True)
def _reset_process_state():
    yield
    STATE.reset()


@pytest.fixture
def state():
    return AutoloadState()


@pytest.fixture
def ctx(state):
    return build_context(options=Options(), logger=logging.getLogger(TEST_LOGGER), state=state)


@pytest.fixture
def project_dir(tmp_path):
    d = tmp_path / "project"
    d.mkdir()
    return d


@pytest.fixture
def global_prefix(tmp_path):
    d = tmp_path / "prefix"
    (d / "etc").mkdir(parents=True)
    return d


@pytest.fixture
def make_host(project_dir, global_prefix):
    def _make(*argv: str, global_mode: bool = False) -> Host:
        config = HostConfig(local_prefix=project_dir, global_prefix=global_prefix)
        if global_mode:
            argv = ("--global", *argv)
        return Host.from_argv(list(argv), config)

    return _make


def write_module(directory: Path, filename: str, body: str) -> Path:
    path = directory / filename
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(textwrap.dedent(body), encoding="utf-8")
    return path


def write_hook_module(directory: Path, filename: str, command: str, *, usage=None, help=None) -> Path:
    body = HOOK_MODULE.format(name=command, usage=usage or command, help=help)
    return write_module(directory, filename, body)


def write_config(directory: Path, entries, ext: str = "json") -> Path:
    path = directory / f"cli-autoload.{ext}"
    if ext == "json":
        path.write_text(json.dumps(entries), encoding="utf-8")
    else:
        path.write_text(entries, encoding="utf-8")
    return path
