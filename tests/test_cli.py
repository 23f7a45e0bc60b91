"""
Tests for the cli-autoload entry point and the bundled example extension.
"""

import json
from pathlib import Path

import pytest

from cli_autoload.cli import main
from cli_autoload.core import DEPS_DIR_NAME

GREET_PLUGIN = Path(__file__).resolve().parents[1] / "plugins" / "greet.py"


@pytest.fixture
def run(tmp_path, monkeypatch):
    monkeypatch.delenv("CLI_AUTOLOAD_SKIP", raising=False)
    project = tmp_path / "project"
    project.mkdir()
    prefix = tmp_path / "prefix"

    def _run(*argv: str) -> int:
        return main(["--project-dir", str(project), "--global-prefix", str(prefix), *argv])

    _run.project = project
    _run.prefix = prefix
    return _run


def _enable_greet(directory: Path) -> None:
    directory.mkdir(parents=True, exist_ok=True)
    (directory / "cli-autoload.json").write_text(json.dumps([str(GREET_PLUGIN)]), encoding="utf-8")


class TestMain:
    """Tests for running host commands through main()."""

    def test_help_lists_builtins(self, run, capsys):
        assert run() == 0
        out = capsys.readouterr().out
        assert "install" in out
        assert "autoload-ping" in out

    def test_ping(self, run, capsys):
        assert run("autoload-ping") == 0
        assert "autoload-ping: reached" in capsys.readouterr().out

    def test_extension_command(self, run, capsys):
        _enable_greet(run.project)
        assert run("greet", "Bob") == 0
        assert "Hello, Bob!" in capsys.readouterr().out

    def test_extension_from_global_scope(self, run, capsys):
        _enable_greet(run.prefix / "etc")
        assert run("--global", "greet") == 0
        assert "Hello, world!" in capsys.readouterr().out

    def test_global_flag_after_global_prefix(self, run, capsys):
        _enable_greet(run.prefix / "etc")
        run.project.joinpath("cli-autoload.json").write_text('["+ext_not_installed"]', encoding="utf-8")
        assert run("--verbose", "--global", "greet", "Ann") == 0
        assert "Hello, Ann!" in capsys.readouterr().out

    def test_help_for_extension(self, run, capsys):
        _enable_greet(run.project)
        assert run("help", "greet") == 0
        assert "Greets each name" in capsys.readouterr().out

    def test_help_flag_for_extension(self, run, capsys):
        _enable_greet(run.project)
        assert run("greet", "--help") == 0
        out = capsys.readouterr().out
        assert "Usage: greet" in out
        assert "Hello" not in out

    def test_unknown_command(self, run, capsys):
        assert run("nope") == 1
        assert "Unknown command: nope" in capsys.readouterr().out

    def test_required_failure_exits(self, run):
        run.project.joinpath("cli-autoload.json").write_text('["+ext_not_installed"]', encoding="utf-8")
        with pytest.raises(SystemExit) as excinfo:
            run("autoload-noop")
        assert excinfo.value.code == 1

    def test_first_install_survives_missing_required(self, run):
        run.project.joinpath("cli-autoload.json").write_text('["+ext_not_installed"]', encoding="utf-8")
        assert run("install") == 0
        assert (run.project / DEPS_DIR_NAME).is_dir()

    def test_skip_env(self, run, monkeypatch, capsys):
        monkeypatch.setenv("CLI_AUTOLOAD_SKIP", "1")
        _enable_greet(run.project)
        assert run("greet") == 1
        assert "Unknown command: greet" in capsys.readouterr().out
