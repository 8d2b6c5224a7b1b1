"""Per-analyzer diagnostic cache keyed by normalized file path."""

from __future__ import annotations

from typing import Iterable, Iterator, Mapping, Sequence

from ..models import Diagnostic


class DiagnosticCache:
    """Ordered mapping of file path to that file's diagnostics.

    A clean file is absent from the map; an entry is never an empty tuple.
    Only the coordinator's event loop mutates a cache.
    """

    def __init__(self) -> None:
        self._entries: dict[str, tuple[Diagnostic, ...]] = {}

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, path: object) -> bool:
        return path in self._entries

    def __iter__(self) -> Iterator[str]:
        return iter(self._entries)

    def get(self, path: str) -> tuple[Diagnostic, ...]:
        return self._entries.get(path, ())

    def apply(self, results: Mapping[str, Sequence[Diagnostic]]) -> None:
        """Apply one run's results for exactly the files it analyzed."""
        for path, diagnostics in results.items():
            if diagnostics:
                self._entries[path] = tuple(diagnostics)
            else:
                self._entries.pop(path, None)

    def remove(self, path: str) -> bool:
        return self._entries.pop(path, None) is not None

    def clear(self) -> None:
        self._entries.clear()

    def replace_all(self, diagnostics: Iterable[Diagnostic]) -> None:
        """Replace the whole cache, grouping by file in first-seen order."""
        grouped: dict[str, list[Diagnostic]] = {}
        for diagnostic in diagnostics:
            grouped.setdefault(diagnostic.file, []).append(diagnostic)
        self._entries = {path: tuple(items) for path, items in grouped.items()}

    def flatten(self) -> list[Diagnostic]:
        return [d for entries in self._entries.values() for d in entries]
