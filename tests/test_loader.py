"""
Tests for module resolution, loading and hook invocation.
"""

from pathlib import Path

import pytest

from cli_autoload.config_loader import AutoloadEntry
from cli_autoload.errors import ResolutionError
from cli_autoload.plugins.api import ErrorKind
from cli_autoload.plugins.loader import load_entry, resolve_module

from conftest import write_hook_module, write_module


def _entry(config_dir, module, **kwargs):
    return AutoloadEntry(base_path=config_dir / "cli-autoload.json", module=module, **kwargs)


class TestResolveModule:
    """Tests for module reference resolution."""

    def test_relative_file(self, tmp_path):
        path = write_module(tmp_path, "ext_a.py", "X = 1\n")
        resolved = resolve_module(_entry(tmp_path, "./ext_a.py"))
        assert resolved.path == path.resolve()
        assert resolved.identity == str(path.resolve())

    def test_relative_file_without_suffix(self, tmp_path):
        path = write_module(tmp_path, "ext_b.py", "X = 1\n")
        resolved = resolve_module(_entry(tmp_path, "./ext_b"))
        assert resolved.path == path.resolve()

    def test_absolute_file(self, tmp_path):
        path = write_module(tmp_path / "elsewhere", "ext_c.py", "X = 1\n")
        resolved = resolve_module(_entry(tmp_path, str(path)))
        assert resolved.path == path.resolve()

    def test_package_directory(self, tmp_path):
        init = write_module(tmp_path / "ext_pkg", "__init__.py", "X = 1\n")
        resolved = resolve_module(_entry(tmp_path, "./ext_pkg"))
        assert resolved.path == init.resolve()

    def test_bare_name_next_to_config(self, tmp_path):
        path = write_module(tmp_path, "ext_named.py", "X = 1\n")
        resolved = resolve_module(_entry(tmp_path, "ext_named"))
        assert resolved.path == path.resolve()
        assert resolved.import_name is None

    def test_dotted_name_next_to_config(self, tmp_path):
        write_module(tmp_path / "ext_dotted", "__init__.py", "")
        sub = write_module(tmp_path / "ext_dotted", "sub.py", "X = 1\n")
        resolved = resolve_module(_entry(tmp_path, "ext_dotted.sub"))
        assert resolved.path == sub.resolve()
        assert len(resolved.chain) == 2

    def test_bare_name_on_sys_path(self, tmp_path):
        resolved = resolve_module(_entry(tmp_path, "json"))
        assert resolved.import_name == "json"

    def test_unresolvable(self, tmp_path):
        with pytest.raises(ResolutionError):
            resolve_module(_entry(tmp_path, "ext_does_not_exist_anywhere"))

    def test_missing_relative_file(self, tmp_path):
        with pytest.raises(ResolutionError):
            resolve_module(_entry(tmp_path, "./ext_missing.py"))


class TestLoadEntry:
    """Tests for the per-entry load pipeline."""

    def test_adopts_conventional_hook(self, tmp_path, make_host, ctx):
        write_hook_module(tmp_path, "ext_hook.py", "hooked")
        host = make_host("install")
        entry = _entry(tmp_path, "./ext_hook.py")

        result = load_entry(entry, host, "install", ctx)

        assert result.ok
        assert result.invoked
        assert entry.func == "_autoload"
        assert "hooked" in host.commands
        assert host.hook_calls == [("hooked", "install")]

    def test_explicit_func(self, tmp_path, make_host, ctx):
        write_module(
            tmp_path,
            "ext_explicit.py",
            """
            def setup(host, command):
                host.register_command("explicit", lambda host, args: 0)
            """,
        )
        host = make_host()
        result = load_entry(_entry(tmp_path, "./ext_explicit.py", func="setup"), host, "help", ctx)
        assert result.invoked
        assert "explicit" in host.commands

    def test_module_without_hook(self, tmp_path, make_host, ctx):
        write_module(tmp_path, "ext_plain.py", "X = 1\n")
        entry = _entry(tmp_path, "./ext_plain.py")
        result = load_entry(entry, make_host(), "help", ctx)
        assert result.ok
        assert not result.invoked
        assert entry.func is None

    def test_resolution_failure(self, tmp_path, make_host, ctx, state):
        result = load_entry(_entry(tmp_path, "ext_nowhere_to_be_found"), make_host(), "help", ctx)
        assert result.kind is ErrorKind.RESOLVE
        assert result.identity is None
        assert state.resolved == set()
        fmt, args = result.message()
        assert fmt.startswith("Could not find module %s")
        assert args[0] == "ext_nowhere_to_be_found"

    def test_load_failure_still_records_resolution(self, tmp_path, make_host, ctx, state):
        path = write_module(tmp_path, "ext_broken.py", "raise RuntimeError('boom')\n")
        result = load_entry(_entry(tmp_path, "./ext_broken.py"), make_host(), "help", ctx)
        assert result.kind is ErrorKind.LOAD
        assert state.is_resolved(str(path.resolve()))
        assert not state.has_run(str(path.resolve()))
        assert "boom" in str(result.error)

    def test_failed_import_is_not_cached(self, tmp_path, make_host, ctx, state):
        import sys

        write_module(tmp_path, "ext_broken2.py", "raise ImportError('nope')\n")
        load_entry(_entry(tmp_path, "./ext_broken2.py"), make_host(), "help", ctx)
        assert not any(name.startswith("cli_autoload_ext_ext_broken2") for name in sys.modules)
        assert state.modules == {}

    def test_same_identity_reuses_module(self, tmp_path, make_host, ctx, state):
        path = write_module(tmp_path, "ext_reuse.py", "LOADS = []\nLOADS.append(1)\n")
        host = make_host()
        load_entry(_entry(tmp_path, "./ext_reuse.py"), host, "help", ctx)
        load_entry(_entry(tmp_path, "ext_reuse"), host, "help", ctx)
        assert state.modules[str(path.resolve())].LOADS == [1]

    def test_hook_failure(self, tmp_path, make_host, ctx):
        write_module(
            tmp_path,
            "ext_badhook.py",
            """
            def _autoload(host, command):
                raise ValueError("bad hook")
            """,
        )
        result = load_entry(_entry(tmp_path, "./ext_badhook.py"), make_host(), "help", ctx)
        assert result.kind is ErrorKind.HOOK
        fmt, args = result.message()
        assert fmt.startswith("Error executing function %s in module %s")
        assert args[0] == "_autoload"

    def test_missing_explicit_func_is_hook_failure(self, tmp_path, make_host, ctx):
        write_module(tmp_path, "ext_nofunc.py", "X = 1\n")
        result = load_entry(_entry(tmp_path, "./ext_nofunc.py", func="nope"), make_host(), "help", ctx)
        assert result.kind is ErrorKind.HOOK

    def test_hook_runs_at_most_once(self, tmp_path, make_host, ctx):
        write_hook_module(tmp_path, "ext_once.py", "once")
        host = make_host()
        first = load_entry(_entry(tmp_path, "./ext_once.py"), host, "help", ctx)
        second = load_entry(_entry(tmp_path, "ext_once"), host, "help", ctx)
        third = load_entry(_entry(tmp_path, "./ext_once.py", func="_autoload"), host, "help", ctx)
        assert first.invoked
        assert second.ok and not second.invoked
        assert third.ok and not third.invoked
        assert host.hook_calls == [("once", "help")]

    def test_local_module_named_like_imported_module(self, tmp_path, make_host, ctx):
        import sys
        import textwrap

        path = write_hook_module(tmp_path, "textwrap.py", "tw")
        host = make_host()

        result = load_entry(_entry(tmp_path, "textwrap"), host, "help", ctx)

        assert result.invoked
        assert "tw" in host.commands
        assert Path(ctx.state.modules[str(path.resolve())].__file__).resolve() == path.resolve()
        assert sys.modules["textwrap"] is textwrap

    def test_same_bare_name_in_two_directories(self, tmp_path, make_host, ctx):
        first = write_hook_module(tmp_path / "one", "ext_twin.py", "twin-one")
        second = write_hook_module(tmp_path / "two", "ext_twin.py", "twin-two")
        host = make_host()

        load_entry(_entry(first.parent, "ext_twin"), host, "help", ctx)
        result = load_entry(_entry(second.parent, "ext_twin"), host, "help", ctx)

        assert result.invoked
        assert host.hook_calls == [("twin-one", "help"), ("twin-two", "help")]
        assert ctx.state.modules[str(second.resolve())] is not ctx.state.modules[str(first.resolve())]

    def test_exit_during_import_is_load_failure(self, tmp_path, make_host, ctx):
        write_module(tmp_path, "ext_quit.py", "import sys\nsys.exit(3)\n")
        result = load_entry(_entry(tmp_path, "./ext_quit.py"), make_host(), "help", ctx)
        assert result.kind is ErrorKind.LOAD
        assert "SystemExit" in str(result.error)

    def test_exit_in_hook_is_hook_failure(self, tmp_path, make_host, ctx):
        write_module(
            tmp_path,
            "ext_quit_hook.py",
            """
            import sys

            def _autoload(host, command):
                sys.exit(3)
            """,
        )
        result = load_entry(_entry(tmp_path, "./ext_quit_hook.py"), make_host(), "help", ctx)
        assert result.kind is ErrorKind.HOOK
