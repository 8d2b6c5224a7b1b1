"""Merging of all analyzers' diagnostics into one snapshot."""

from __future__ import annotations

from typing import Iterable, Protocol

from ..models import Diagnostic, Severity


class DiagnosticSource(Protocol):
    def contribution(self) -> list[Diagnostic]: ...


def merge(sources: Iterable[DiagnosticSource]) -> list[Diagnostic]:
    """Concatenate contributions in registration order.

    No sorting and no deduplication: re-merging unchanged sources yields
    an identical list.
    """
    merged: list[Diagnostic] = []
    for source in sources:
        merged.extend(source.contribution())
    return merged


def count_by_severity(diagnostics: Iterable[Diagnostic]) -> dict[str, int]:
    counts = {Severity.ERROR.value: 0, Severity.WARNING.value: 0}
    for diagnostic in diagnostics:
        counts[diagnostic.severity.value] += 1
    return counts
