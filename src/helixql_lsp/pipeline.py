"""Parse/analyze adapter and the per-workspace model cache."""

from __future__ import annotations

import logging
import re
import threading
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, Protocol, Sequence, runtime_checkable

from helixql_lsp.exceptions import AnalysisFailure, HelixQLError, ParseFailure
from helixql_lsp.language.model import (
    AnalyzedModel,
    Diagnostic,
    Loc,
    Position,
    Severity,
    Source,
    SourceFile,
)
from helixql_lsp.workspace import Workspace

logger = logging.getLogger(__name__)

_LOCATOR_RE = re.compile(r"(\d+):(\d+)")


@runtime_checkable
class SourceParser(Protocol):
    def parse(self, files: Sequence[SourceFile]) -> Source: ...


@runtime_checkable
class SourceAnalyzer(Protocol):
    def analyze(self, source: Source) -> tuple[list[Diagnostic], AnalyzedModel]: ...


class AnalysisStatus(Enum):
    OK = "ok"
    PARSE_FAILED = "parse_failed"
    ANALYSIS_FAILED = "analysis_failed"


@dataclass(frozen=True)
class AnalysisOutcome:
    status: AnalysisStatus
    diagnostics: tuple[Diagnostic, ...] = ()
    model: Optional[AnalyzedModel] = None

    @property
    def succeeded(self) -> bool:
        return self.status is AnalysisStatus.OK


@dataclass
class WorkspaceState:
    """Last good model of one workspace.

    ``model`` only changes when a run succeeds; failed runs leave the previous
    model in place so hover, completion and definition keep answering while
    the buffer is momentarily invalid.
    """

    key: str
    model: Optional[AnalyzedModel] = None
    last_status: Optional[AnalysisStatus] = None
    runs: int = 0

    def apply(self, outcome: AnalysisOutcome) -> None:
        self.runs += 1
        self.last_status = outcome.status
        if outcome.succeeded and outcome.model is not None:
            self.model = outcome.model


class WorkspaceCache:
    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._states: dict[str, WorkspaceState] = {}

    def state_for(self, key: str) -> WorkspaceState:
        with self._lock:
            state = self._states.get(key)
            if state is None:
                state = WorkspaceState(key=key)
                self._states[key] = state
            return state

    def get(self, key: str) -> Optional[AnalyzedModel]:
        with self._lock:
            state = self._states.get(key)
        return state.model if state is not None else None

    def record(self, key: str, outcome: AnalysisOutcome) -> WorkspaceState:
        state = self.state_for(key)
        with self._lock:
            state.apply(outcome)
        return state

    def keys(self) -> list[str]:
        with self._lock:
            return sorted(self._states)


def synthetic_diagnostic(failure: HelixQLError, *, prefix: str) -> Diagnostic:
    """One error standing in for a failed parse or analysis.

    The location comes from the last ``line:column`` marker in the failure
    text (quoted tokens may carry earlier ones), else 0,0.
    """
    line, column = 0, 0
    markers = _LOCATOR_RE.findall(failure.message)
    if markers:
        line, column = int(markers[-1][0]), int(markers[-1][1])
    start = Position(line=line, column=column)
    end = Position(line=line, column=column + 1)
    return Diagnostic(
        severity=Severity.ERROR,
        message=f"{prefix}: {failure.message}",
        location=Loc(failure.filepath, start, end),
        filepath=failure.filepath,
    )


@dataclass
class AnalyzePipeline:
    parser: SourceParser
    analyzer: SourceAnalyzer
    cache: WorkspaceCache = field(default_factory=WorkspaceCache)

    def run(self, workspace: Workspace) -> AnalysisOutcome:
        bundle = [SourceFile(name=member.path, content=member.text) for member in workspace.members]
        logger.info("Analyzing %d files in %s", len(bundle), workspace.key)
        outcome = self._run_bundle(bundle)
        state = self.cache.record(workspace.key, outcome)
        logger.info(
            "Analysis of %s finished: %s, %d diagnostics (run %d)",
            workspace.key,
            outcome.status.value,
            len(outcome.diagnostics),
            state.runs,
        )
        return outcome

    def _run_bundle(self, bundle: Sequence[SourceFile]) -> AnalysisOutcome:
        try:
            source = self.parser.parse(bundle)
        except ParseFailure as exc:
            logger.info("Parse error: %s", exc.message)
            return AnalysisOutcome(
                status=AnalysisStatus.PARSE_FAILED,
                diagnostics=(synthetic_diagnostic(exc, prefix="Parse error"),),
            )
        try:
            diagnostics, model = self.analyzer.analyze(source)
        except AnalysisFailure as exc:
            logger.info("Analysis error: %s", exc.message)
            return AnalysisOutcome(
                status=AnalysisStatus.ANALYSIS_FAILED,
                diagnostics=(synthetic_diagnostic(exc, prefix="Analysis error"),),
            )
        return AnalysisOutcome(
            status=AnalysisStatus.OK,
            diagnostics=tuple(diagnostics),
            model=model,
        )
