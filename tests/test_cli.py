import pytest
from typer.testing import CliRunner

from srdl import __version__
from srdl.cli import app as cli_app


@pytest.fixture
def runner(tmp_path, monkeypatch):
    monkeypatch.setattr(cli_app, "CONFIG_DIR", tmp_path)
    monkeypatch.setattr(cli_app, "CONFIG_FILE", tmp_path / "config.ini")
    return CliRunner()


def test_version(runner):
    result = runner.invoke(cli_app.app, ["--version"])
    assert result.exit_code == 0
    assert __version__ in result.output


def test_init_writes_config(runner, tmp_path):
    result = runner.invoke(cli_app.app, ["init"])
    assert result.exit_code == 0
    assert "mode = pipe" in (tmp_path / "config.ini").read_text()


def test_show_config_requires_file(runner):
    result = runner.invoke(cli_app.app, ["--show-config"])
    assert result.exit_code == 1


def test_validate_with_defaults(runner):
    result = runner.invoke(cli_app.app, ["validate"])
    assert result.exit_code == 0


def test_validate_reports_bad_config(runner, tmp_path):
    (tmp_path / "config.ini").write_text("[DEFAULT]\nfragments = 99\n")
    result = runner.invoke(cli_app.app, ["validate"])
    assert result.exit_code == 1


def test_validate_reports_malformed_value(runner, tmp_path):
    (tmp_path / "config.ini").write_text("[DEFAULT]\nfragments = many\n")
    result = runner.invoke(cli_app.app, ["validate"])
    assert result.exit_code == 1
    assert isinstance(result.exception, SystemExit)
    assert "invalid" in result.output


def test_download_rejects_bad_url(runner):
    result = runner.invoke(cli_app.app, ["download", "https://www.speedrun.com/run/bad id"])
    assert result.exit_code == 1


def test_download_rejects_unknown_mode(runner):
    result = runner.invoke(cli_app.app, ["download", "y8dwozoj", "--mode", "stream"])
    assert result.exit_code == 1
