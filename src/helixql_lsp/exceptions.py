"""Failure types raised by the HelixQL parser and analyzer collaborators."""

from __future__ import annotations

from typing import Optional


class HelixQLError(RuntimeError):
    """Base class for failures reported by a compiler collaborator.

    ``filepath`` names the member file the failure belongs to when the
    collaborator knows it. The message may embed a ``line:column`` locator.
    """

    def __init__(self, message: str, *, filepath: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.filepath = filepath


class ParseFailure(HelixQLError):
    """The bundle does not parse."""


class AnalysisFailure(HelixQLError):
    """The bundle parsed but could not be turned into an analyzed model."""
