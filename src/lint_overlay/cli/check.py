"""``lint-overlay check``: run every enabled analyzer once and print the overlay."""

from pathlib import Path
from typing import Optional

import typer

from ..analyzers import eslint_factory, tsc_factory
from ..core.aggregator import count_by_severity
from ..exceptions import AnalysisError
from ..models import Diagnostic, describe_error, global_diagnostic
from ..render import render_console
from . import app
from ._common import console, init_logging, resolve_config


@app.command()
def check(
    path: Path = typer.Argument(Path("."), file_okay=False, help="Project directory"),
    root_dir: Optional[str] = typer.Option(None, "--root-dir", help="Directory to lint"),
    ts: Optional[bool] = typer.Option(None, "--ts/--no-ts", help="Run the TypeScript checker"),
    tsconfig: Optional[str] = typer.Option(None, "--tsconfig", help="tsconfig to use"),
    config: Optional[Path] = typer.Option(None, "-c", "--config", help="Config file"),
    verbose: bool = typer.Option(False, "-v", "--verbose", help="Verbose logging"),
) -> None:
    """Analyze the project once. Exits 1 when any error is reported."""
    init_logging(verbose)
    settings = resolve_config(path, config=config, root_dir=root_dir, ts=ts, tsconfig=tsconfig)

    diagnostics: list[Diagnostic] = []
    with console.status("[cyan]Analyzing..."):
        if settings.ts:
            engine = tsc_factory(settings)()
            try:
                diagnostics.extend(engine.check())
            except AnalysisError as exc:
                diagnostics.append(global_diagnostic(engine.source, str(exc)))
        if settings.eslint:
            diagnostics.extend(_run_eslint(settings))

    if not render_console(diagnostics, console):
        console.print("[green]No problems found[/green]")

    counts = count_by_severity(diagnostics)
    console.print(f"[bold]{counts['error']}[/bold] error(s), [bold]{counts['warning']}[/bold] warning(s)")
    if counts["error"]:
        raise typer.Exit(1)


def _run_eslint(settings) -> list[Diagnostic]:
    factory = eslint_factory(settings)
    try:
        engine = factory()
    except AnalysisError as exc:
        return [global_diagnostic("ESLint", f"Init failed: {describe_error(exc)}")]
    try:
        results = engine.lint(None)
    except AnalysisError as exc:
        return [global_diagnostic(engine.source, f"Lint crashed: {describe_error(exc)}")]
    return [d for diags in results.values() for d in diags]
