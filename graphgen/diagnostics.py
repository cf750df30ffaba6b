"""
Diagnostics sinks for soft problems found during loading and encoding.

Soft problems (an unparseable edge cardinality, use of a deprecated property)
never abort a run. They are reported to a sink that the caller owns and passes
in explicitly; there is no process-wide "already warned" registry.

Example:
    >>> sink = CollectingDiagnostics()
    >>> schema = load(source, diagnostics=sink)
    >>> for d in sink.diagnostics:
    ...     print(d)
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from typing import Hashable, List, Protocol

from .schema.errors import ErrorKind

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Diagnostic:
    """A recoverable problem.

    Attributes:
        kind: Problem kind (INVALID_CARDINALITY, or None for plain warnings)
        path: Location of the element the diagnostic is about
        message: Human-readable description
    """

    kind: ErrorKind | None
    path: str
    message: str

    def __str__(self) -> str:
        label = self.kind.value if self.kind else "Warning"
        return f"[{label}] {self.path}: {self.message}"


class DiagnosticsSink(Protocol):
    """Receiver for soft diagnostics."""

    def report(self, diagnostic: Diagnostic) -> None: ...

    def report_once(self, key: Hashable, diagnostic: Diagnostic) -> None: ...


class _DedupingSink:
    """Shared report_once bookkeeping, scoped to one sink instance."""

    def __init__(self) -> None:
        self._seen: set[Hashable] = set()
        self._lock = threading.Lock()

    def report(self, diagnostic: Diagnostic) -> None:
        raise NotImplementedError

    def report_once(self, key: Hashable, diagnostic: Diagnostic) -> None:
        """Report the diagnostic only the first time key is seen."""
        with self._lock:
            if key in self._seen:
                return
            self._seen.add(key)
        self.report(diagnostic)


class LoggingDiagnostics(_DedupingSink):
    """Logs every diagnostic at WARNING level."""

    def __init__(self, log: logging.Logger | None = None) -> None:
        super().__init__()
        self._log = log or logger

    def report(self, diagnostic: Diagnostic) -> None:
        self._log.warning(str(diagnostic))


class CollectingDiagnostics(_DedupingSink):
    """Keeps diagnostics in memory, and logs them at DEBUG."""

    def __init__(self) -> None:
        super().__init__()
        self.diagnostics: List[Diagnostic] = []

    def report(self, diagnostic: Diagnostic) -> None:
        logger.debug(str(diagnostic))
        self.diagnostics.append(diagnostic)

    def of_kind(self, kind: ErrorKind) -> List[Diagnostic]:
        return [d for d in self.diagnostics if d.kind is kind]
