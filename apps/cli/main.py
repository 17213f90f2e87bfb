"""Typer CLI entrypoint for shapefill."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Annotated

import typer

from apps.cli.io import record_payload, shape_summary, write_payload_atomic
from core.orchestrator.pipeline import NaturalLanguageProcessor
from core.shapes.shape_loader import build_processor, load_shape_book
from core.templates.tokenizer import tokenize
from core.utils.errors import EmptyInputError

app = typer.Typer(help="Template-based slot filling CLI", rich_markup_mode=None)

ShapesOption = Annotated[
    Path,
    typer.Option(
        ...,
        "--shapes",
        exists=True,
        dir_okay=False,
        file_okay=True,
        help="Shape book YAML declaring shapes, field kinds and templates.",
    ),
]


@app.callback()
def cli_callback() -> None:
    """CLI root callback to keep subcommands explicit."""


@app.command("tokenize")
def tokenize_command(text: Annotated[str, typer.Argument()]) -> None:
    """Print the literal/placeholder tokens of TEXT as JSON."""

    try:
        tokens = tokenize(text)
    except EmptyInputError as exc:
        typer.echo(f"ERROR: {exc}")
        raise typer.Exit(code=1) from exc

    payload = [{"placeholder": token.is_placeholder, "text": token.text} for token in tokens]
    typer.echo(json.dumps(payload, ensure_ascii=False))


@app.command("check")
def check_command(shapes: ShapesOption) -> None:
    """Load a shape book and compile every template."""

    processor = _load_processor_or_exit(shapes)
    for shape in processor.shapes:
        summary = shape_summary(shape)
        typer.echo(
            f"{summary['name']}: {len(summary['fields'])} fields, "
            f"{summary['templates']} templates"
        )
    typer.echo("OK")


@app.command("parse")
def parse_command(
    text: Annotated[str, typer.Argument()],
    shapes: ShapesOption,
    out: Annotated[
        Path | None,
        typer.Option("--out", help="Also write the result to this JSON or YAML file."),
    ] = None,
    force: Annotated[
        bool, typer.Option("--force", help="Overwrite --out when it already exists.")
    ] = False,
) -> None:
    """Classify TEXT and print the filled record as JSON."""

    if out is not None and out.exists() and not force:
        typer.echo(f"ERROR: output already exists: {out}. Use --force to overwrite.")
        raise typer.Exit(code=1)

    processor = _load_processor_or_exit(shapes)
    payload = record_payload(processor.process(text))

    if out is not None:
        write_payload_atomic(out, payload)
    typer.echo(json.dumps(payload, ensure_ascii=False, sort_keys=True))


def _load_processor_or_exit(path: Path) -> NaturalLanguageProcessor:
    try:
        return build_processor(load_shape_book(path))
    except ValueError as exc:
        typer.echo(f"ERROR: {exc}")
        raise typer.Exit(code=1) from exc


def main() -> None:
    app()


if __name__ == "__main__":
    main()
