"""Exceptions raised while generating a visualization."""

from __future__ import annotations

from typing import Optional, Sequence


class ExploreError(RuntimeError):
    """Base class for errors that abort generation of a visualization."""


class NotFoundError(ExploreError, LookupError):
    """Raised when a function or basic block name cannot be resolved."""


class InconsistencyError(ExploreError):
    """Raised when the text of a basic block is not part of its function."""


class TemplateError(ExploreError):
    """Raised when a page template is missing or cannot be rendered."""


class ToolError(ExploreError):
    """Raised when an external tool cannot be started or exits non-zero."""

    def __init__(self, message: str, *, cmd: Optional[Sequence[str]] = None, stderr: str = "") -> None:
        super().__init__(message)
        self.cmd = list(cmd or [])
        self.stderr = stderr
