from __future__ import annotations

import logging
import sys
from pathlib import Path
from typing import Optional

import typer

from helixql_lsp.config import load_settings
from helixql_lsp.language.model import Diagnostic, Severity
from helixql_lsp.pipeline import AnalysisOutcome
from helixql_lsp.session import HelixQLSession
from helixql_lsp.workspace import Workspace

app = typer.Typer(add_completion=False)

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"

logger = logging.getLogger(__name__)


def configure_logging(level: str, log_file: Optional[Path] = None) -> None:
    """Route log records to stderr or ``log_file``; stdout carries the protocol."""
    numeric = getattr(logging, level.upper(), None)
    if not isinstance(numeric, int):
        raise typer.BadParameter(f"Unknown log level: {level}")
    if log_file is not None:
        logging.basicConfig(level=numeric, format=LOG_FORMAT, filename=str(log_file), force=True)
    else:
        logging.basicConfig(level=numeric, format=LOG_FORMAT, stream=sys.stderr, force=True)


def format_diagnostic(diagnostic: Diagnostic, path: str) -> str:
    start = diagnostic.location.start
    line = f"{path}:{start.line}:{start.column}: {diagnostic.severity.value.lower()}: {diagnostic.message}"
    if diagnostic.hint:
        line += f" (hint: {diagnostic.hint})"
    return line


def _check_exit_code(outcome: AnalysisOutcome) -> int:
    if not outcome.succeeded:
        return 1
    if any(diagnostic.severity is Severity.ERROR for diagnostic in outcome.diagnostics):
        return 1
    return 0


def run_check(path: Path, config: Optional[Path] = None) -> tuple[Workspace, AnalysisOutcome, list[str]]:
    target = path.absolute()
    directory = target if target.is_dir() else target.parent
    settings = load_settings(root=directory, config_path=config)
    session = HelixQLSession(settings)
    workspace = session.workspaces.resolve_directory(directory)
    outcome = session.pipeline.run(workspace)
    lines: list[str] = []
    for diagnostic in outcome.diagnostics:
        if session.translator.severity(diagnostic.severity) is None:
            continue
        member = session.translator.owner(diagnostic, workspace)
        owner = member.path if member is not None else (diagnostic.owner or str(directory))
        lines.append(format_diagnostic(diagnostic, owner))
    return workspace, outcome, lines


@app.command()
def serve(
    tcp: bool = typer.Option(False, "--tcp", help="Listen on TCP instead of stdio."),
    host: str = typer.Option("127.0.0.1", "--host"),
    port: int = typer.Option(2087, "--port"),
    log_level: Optional[str] = typer.Option(None, "--log-level"),
    log_file: Optional[Path] = typer.Option(None, "--log-file"),
    config: Optional[Path] = typer.Option(None, "--config"),
) -> None:
    """Run the HelixQL language server."""
    from helixql_lsp.server import server, start

    settings = load_settings(config_path=config, overrides={"log_level": log_level})
    configure_logging(settings.log_level, log_file)
    server.config_path = config
    server.overrides = {"log_level": log_level}
    if tcp:
        logger.info("Serving on %s:%d", host, port)
        start(lambda: server.start_tcp(host, port))
    else:
        logger.info("Serving on stdio")
        start()


@app.command()
def check(
    path: Path = typer.Argument(..., exists=True, help="A HelixQL file or directory."),
    config: Optional[Path] = typer.Option(None, "--config"),
) -> None:
    """Analyze the workspace holding PATH and print its diagnostics."""
    workspace, outcome, lines = run_check(path, config)
    if not workspace.members:
        typer.echo(f"No HelixQL files found in {workspace.key}")
    for line in lines:
        typer.echo(line)
    raise typer.Exit(code=_check_exit_code(outcome))


def main() -> None:
    app()


if __name__ == "__main__":  # pragma: no cover
    main()  # pragma: no cover
