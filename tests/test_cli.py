from __future__ import annotations

from pathlib import Path

import pytest
import typer
from typer.testing import CliRunner

from helixql_lsp import cli
from tests.samples import write


def _invoke(args: list[str]):
    return CliRunner().invoke(cli.app, args)


def test_cli_help_lists_subcommands() -> None:
    result = _invoke(["--help"])
    assert result.exit_code == 0
    assert "serve" in result.output
    assert "check" in result.output


def test_check_clean_workspace(helix_workspace: Path) -> None:
    result = _invoke(["check", str(helix_workspace)])
    assert result.exit_code == 0
    assert result.output == ""


def test_check_reports_errors_against_owning_file(helix_workspace: Path) -> None:
    bad = write(helix_workspace, "bad.hx", "QUERY Bad() =>\n    RETURN ghost\n")
    result = _invoke(["check", str(bad)])
    assert result.exit_code == 1
    (line,) = result.output.splitlines()
    assert line.startswith(f"{bad}:2:")
    assert "error: `ghost` is not defined in query `Bad`" in line
    assert line.endswith("(hint: declare it as a parameter or assign it with `<-`)")


def test_check_parse_failure_exits_nonzero(tmp_path: Path) -> None:
    write(tmp_path, "broken.hx", "QUERY f( =>\n")
    result = _invoke(["check", str(tmp_path)])
    assert result.exit_code == 1
    assert "Parse error" in result.output


def test_check_warnings_do_not_fail(tmp_path: Path) -> None:
    write(tmp_path, "q.hx", "QUERY f(id: ID) =>\n    RETURN NONE\n")
    result = _invoke(["check", str(tmp_path)])
    assert result.exit_code == 0
    assert ": warning: " in result.output


def test_check_empty_directory(tmp_path: Path) -> None:
    result = _invoke(["check", str(tmp_path)])
    assert result.exit_code == 0
    assert f"No HelixQL files found in {tmp_path.absolute()}" in result.output


def test_check_honours_config_extensions(tmp_path: Path) -> None:
    (tmp_path / "helixql.toml").write_text('[workspace]\nextensions = [".helix"]\n')
    write(tmp_path, "q.hx", "QUERY Bad() =>\n    RETURN ghost\n")
    result = _invoke(["check", str(tmp_path)])
    assert result.exit_code == 0
    assert "No HelixQL files found" in result.output


def test_configure_logging_rejects_unknown_level() -> None:
    with pytest.raises(typer.BadParameter):
        cli.configure_logging("loud")


def test_serve_wires_tcp_starter(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    pytest.importorskip("pygls")
    from helixql_lsp import server as server_module

    levels: list[str] = []
    starters: list = []
    monkeypatch.setattr(cli, "configure_logging", lambda level, log_file=None: levels.append(level))
    monkeypatch.setattr(server_module, "start", lambda start_fn=None: starters.append(start_fn))
    monkeypatch.setattr(server_module.server, "start_tcp", lambda host, port: (host, port))

    config = tmp_path / "helixql.toml"
    config.write_text('[logging]\nlevel = "warning"\n')
    result = _invoke(["serve", "--tcp", "--port", "9999", "--config", str(config)])
    assert result.exit_code == 0, result.output
    assert levels == ["WARNING"]
    (starter,) = starters
    assert starter() == ("127.0.0.1", 9999)
    assert server_module.server.config_path == config
