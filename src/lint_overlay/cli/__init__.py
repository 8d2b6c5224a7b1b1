"""CLI entry point; registers all subcommands."""

import typer

app = typer.Typer(
    name="lint-overlay",
    help="lint-overlay - live ESLint and TypeScript diagnostics for your dev server",
    add_completion=False,
    rich_markup_mode="rich",
)


# Import subcommands to register them
from .check import check as _check  # noqa: F401, E402
from .serve import serve as _serve  # noqa: F401, E402


def main() -> None:
    app()
