"""Rendering of a diagnostic list for observers.

An empty list renders nothing (the overlay is hidden). Otherwise errors
are shown before warnings, each section with its count, and every item
shows its source tag, a shortened path, the line when known and the
escaped message.
"""

from __future__ import annotations

import html
import re
from dataclasses import dataclass
from typing import Optional, Sequence

from rich.console import Console
from rich.markup import escape as rich_escape
from rich.panel import Panel
from rich.table import Table

from .models import GLOBAL_FILE, Diagnostic, Severity

_SEPARATORS = re.compile(r"[\\/]")

OVERLAY_TITLE = "Dev Server Issues"


def shorten_path(file: str, keep: int = 3) -> str:
    """Keep the last *keep* path segments, prefixed with ``.../`` if cut."""
    if not file:
        return GLOBAL_FILE
    segments = _SEPARATORS.split(file)
    if len(segments) <= keep:
        return file
    return ".../" + "/".join(segments[-keep:])


def location_label(diagnostic: Diagnostic) -> str:
    label = shorten_path(diagnostic.file)
    if diagnostic.line:
        label = f"{label}:{diagnostic.line}"
    return label


@dataclass(frozen=True)
class OverlaySection:
    title: str
    severity: Severity
    items: tuple[Diagnostic, ...]

    @property
    def count(self) -> int:
        return len(self.items)

    @property
    def heading(self) -> str:
        return f"{self.title} ({self.count})"


def build_sections(diagnostics: Sequence[Diagnostic]) -> list[OverlaySection]:
    """Partition by severity, errors first; empty sections are omitted."""
    sections = []
    for title, severity in (("Errors", Severity.ERROR), ("Warnings", Severity.WARNING)):
        items = tuple(d for d in diagnostics if d.severity is severity)
        if items:
            sections.append(OverlaySection(title=title, severity=severity, items=items))
    return sections


def render_html(diagnostics: Sequence[Diagnostic]) -> Optional[str]:
    """HTML fragment for the overlay, or None when it should be hidden."""
    sections = build_sections(diagnostics)
    if not sections:
        return None

    parts = [
        '<div class="container">',
        f'<div class="header"><span class="title">{OVERLAY_TITLE}</span></div>',
        '<div class="body">',
    ]
    for section in sections:
        parts.append(f'<h2 class="{section.severity.value}">{section.heading}</h2>')
        parts.append('<ul class="list">')
        for d in section.items:
            source = d.source or "UNK"
            parts.append(
                f'<li class="item {d.severity.value}">'
                f'<div class="meta">'
                f'<span class="badge {html.escape(source.lower())}">{html.escape(source)}</span>'
                f'<span class="file" title="{html.escape(d.file)}">{html.escape(location_label(d))}</span>'
                f"</div>"
                f'<div class="msg">{html.escape(d.message)}</div>'
                f"</li>"
            )
        parts.append("</ul>")
    parts.append("</div></div>")
    return "\n".join(parts)


def render_console(diagnostics: Sequence[Diagnostic], console: Console) -> bool:
    """Print the overlay to a terminal. Returns False when hidden."""
    sections = build_sections(diagnostics)
    if not sections:
        return False

    styles = {Severity.ERROR: "red", Severity.WARNING: "yellow"}
    for section in sections:
        table = Table(show_header=False, show_edge=False, box=None, padding=(0, 1))
        table.add_column("source", style="bold", no_wrap=True)
        table.add_column("location", style="dim", no_wrap=True)
        table.add_column("message")
        for d in section.items:
            table.add_row(
                rich_escape(d.source or "UNK"),
                rich_escape(location_label(d)),
                rich_escape(d.message),
            )
        style = styles[section.severity]
        console.print(
            Panel(table, title=f"[bold {style}]{section.heading}[/bold {style}]", border_style=style)
        )
    return True
