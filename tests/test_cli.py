"""Tests for the hotscripts CLI."""

from pathlib import Path

import pytest
from click.testing import CliRunner
from conftest import write_script

from hotscripts import __version__
from hotscripts.cli import build_settings, cli


@pytest.fixture
def runner() -> CliRunner:
    return CliRunner()


class TestBuildSettings:
    """Tests for combining config files with flags."""

    def test_flags_override_config(self, tmp_path: Path):
        """Command line values win over the settings file."""
        config = tmp_path / "hotscripts.toml"
        config.write_text('[hotscripts]\ninit_script = "main.py"\npoll_interval = 3.0\n')

        settings = build_settings(str(config), None, 0.5, ("json",))

        assert settings.init_script == "main.py"
        assert settings.poll_interval == 0.5
        assert settings.default_imports == ("json",)

    def test_no_config(self):
        """Without a file only the flags apply."""
        settings = build_settings(None, "start.py", None)

        assert settings.init_script == "start.py"
        assert settings.poll_interval == 1.0


class TestCli:
    """Tests for CLI commands."""

    def test_version(self, runner: CliRunner):
        """--version prints the package version."""
        result = runner.invoke(cli, ["--version"])

        assert result.exit_code == 0
        assert __version__ in result.output

    def test_inspect_lists_scripts(self, runner: CliRunner, scripts_dir: Path):
        """inspect shows every preloaded script and its dependencies."""
        write_script(scripts_dir, "init.py", "loader.watch('lib.py')\ndepend('lib.py')", prelude=False)
        write_script(scripts_dir, "lib.py", "VALUE = 1", prelude=False)

        result = runner.invoke(cli, ["inspect", str(scripts_dir)])

        assert result.exit_code == 0, result.output
        assert "init.py" in result.output
        assert "lib.py" in result.output
        assert "running" in result.output

    def test_inspect_without_init_script(self, runner: CliRunner, scripts_dir: Path):
        """An empty directory reports that nothing loaded."""
        result = runner.invoke(cli, ["inspect", str(scripts_dir)])

        assert result.exit_code == 0
        assert "No scripts loaded" in result.output

    def test_inspect_reports_missing_watches(self, runner: CliRunner, scripts_dir: Path):
        """Watched paths without files are listed."""
        write_script(scripts_dir, "init.py", "loader.watch('gone.py')", prelude=False)

        result = runner.invoke(cli, ["inspect", str(scripts_dir)])

        assert result.exit_code == 0
        assert "Watched but missing" in result.output
        assert "gone.py" in result.output

    def test_inspect_custom_init(self, runner: CliRunner, scripts_dir: Path):
        """--init selects another entry point."""
        write_script(scripts_dir, "main.py", "", prelude=False)

        result = runner.invoke(cli, ["inspect", str(scripts_dir), "--init", "main.py"])

        assert result.exit_code == 0
        assert "main.py" in result.output

    def test_invalid_config_is_reported(self, runner: CliRunner, scripts_dir: Path, tmp_path: Path):
        """A bad settings file aborts with an error message."""
        config = tmp_path / "bad.toml"
        config.write_text("[hotscripts]\nbogus = 1\n")

        result = runner.invoke(cli, ["inspect", str(scripts_dir), "--config", str(config)])

        assert result.exit_code != 0
        assert "unsupported keys: bogus" in result.output
