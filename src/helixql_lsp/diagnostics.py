"""Translation of analyzer diagnostics into per-document LSP publications."""

from __future__ import annotations

from typing import Iterable, Optional

from lsprotocol.types import (
    Diagnostic as LspDiagnostic,
    DiagnosticSeverity,
    Position,
    Range,
)

from helixql_lsp.language.model import Diagnostic, Loc, Severity
from helixql_lsp.positions import ClientPositions
from helixql_lsp.workspace import Workspace, WorkspaceMember

DEFAULT_SOURCE = "helixql"
EMPTY_SEVERITY_CHOICES = ("info", "drop")

_SEVERITY_MAP = {
    Severity.ERROR: DiagnosticSeverity.Error,
    Severity.WARNING: DiagnosticSeverity.Warning,
    Severity.INFO: DiagnosticSeverity.Information,
    Severity.HINT: DiagnosticSeverity.Hint,
}


def to_range(location: Loc) -> Range:
    start = Position(
        line=max(location.start.line - 1, 0),
        character=max(location.start.column - 1, 0),
    )
    end = Position(
        line=max(location.end.line - 1, 0),
        character=max(location.end.column - 1, 0),
    )
    if (end.line, end.character) <= (start.line, start.character):
        end = Position(line=start.line, character=start.character + 1)
    return Range(start=start, end=end)


class DiagnosticTranslator:
    """Maps compiler diagnostics onto the member documents that own them.

    The result always carries an entry for every member of the workspace,
    with an empty list for members that have nothing to report, so stale
    diagnostics are cleared on clean files. A diagnostic whose file is
    missing or unknown is attributed to the first member in path order.
    """

    def __init__(
        self,
        source: str = DEFAULT_SOURCE,
        empty_severity: str = "info",
        positions: Optional[ClientPositions] = None,
    ) -> None:
        if empty_severity not in EMPTY_SEVERITY_CHOICES:
            raise ValueError(f"empty_severity must be one of {EMPTY_SEVERITY_CHOICES}")
        self.source = source
        self.empty_severity = empty_severity
        self.positions = positions

    def severity(self, severity: Severity) -> Optional[DiagnosticSeverity]:
        if severity is Severity.EMPTY:
            if self.empty_severity == "drop":
                return None
            return DiagnosticSeverity.Information
        return _SEVERITY_MAP[severity]

    def owner(self, diagnostic: Diagnostic, workspace: Workspace) -> Optional[WorkspaceMember]:
        member = workspace.member_for(diagnostic.owner)
        if member is None and workspace.members:
            return workspace.members[0]
        return member

    def _range(self, location: Loc, text: Optional[str]) -> Range:
        value = to_range(location)
        if self.positions is None:
            return value
        return self.positions.range_to_client(text, value)

    def convert(self, diagnostic: Diagnostic, text: Optional[str] = None) -> Optional[LspDiagnostic]:
        severity = self.severity(diagnostic.severity)
        if severity is None:
            return None
        message = diagnostic.message
        if diagnostic.hint:
            message = f"{message}\n\nHint: {diagnostic.hint}"
        return LspDiagnostic(
            range=self._range(diagnostic.location, text),
            message=message,
            severity=severity,
            source=self.source,
        )

    def translate(
        self, diagnostics: Iterable[Diagnostic], workspace: Workspace
    ) -> dict[str, list[LspDiagnostic]]:
        publication: dict[str, list[LspDiagnostic]] = {
            member.uri: [] for member in workspace.members
        }
        for diagnostic in diagnostics:
            member = self.owner(diagnostic, workspace)
            if member is None:
                continue
            converted = self.convert(diagnostic, member.text)
            if converted is not None:
                publication[member.uri].append(converted)
        return publication
