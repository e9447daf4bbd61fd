"""Typer CLI entrypoint for iterate-sql."""

from __future__ import annotations

import json
import time
from dataclasses import dataclass
from typing import List

import typer
from rich import box
from rich.console import Console
from rich.table import Table

from .errors import ConfigurationError, IterateError
from .logging_conf import configure_logging, get_logger
from .record import Record
from .registry import DocumentIterator, IteratorRegistry, default_registry

app = typer.Typer(
    help="Iterate GeoJSON documents stored in SQL databases.",
    no_args_is_help=True,
    rich_markup_mode=None,
)

console = Console()


@dataclass
class AppState:
    registry: IteratorRegistry


def build_state(verbose: bool) -> AppState:
    configure_logging(verbose=verbose)
    return AppState(registry=default_registry())


def _get_state(ctx: typer.Context) -> AppState:
    state = ctx.obj
    if not isinstance(state, AppState):
        state = build_state(verbose=False)
        ctx.obj = state
    return state


def _open_iterator(state: AppState, uri: str) -> DocumentIterator:
    try:
        return state.registry.new_iterator(uri)
    except ConfigurationError as exc:
        raise typer.BadParameter(exc.message, param_hint="URI") from exc


def _render_count_table(records: int, errors: int, seen: int, elapsed: float) -> Table:
    table = Table(title="Iteration summary", box=box.SIMPLE_HEAVY)
    table.add_column("Records", justify="right", style="green")
    table.add_column("Errors", justify="right", style="red")
    table.add_column("Rows seen", justify="right")
    table.add_column("Elapsed (s)", justify="right")
    table.add_row(str(records), str(errors), str(seen), f"{elapsed:.3f}")
    return table


@app.callback()
def main(
    ctx: typer.Context,
    verbose: bool = typer.Option(False, "--verbose", help="Enable debug logging.", is_flag=True),
) -> None:
    ctx.obj = build_state(verbose)


@app.command("count", help="Count the records produced for one or more sources.")
def count(
    ctx: typer.Context,
    uri: str = typer.Argument(..., help="Iterator URI, e.g. sql://sqlite3?processes=4"),
    sources: List[str] = typer.Argument(..., help="Databases to read."),
) -> None:
    state = _get_state(ctx)
    iterator = _open_iterator(state, uri)
    totals = {"records": 0, "errors": 0}

    def _tally(record: Record | None, error: IterateError | None) -> bool:
        if error is not None:
            totals["errors"] += 1
            console.print(str(error), style="red", markup=False)
        if record is not None:
            with record:
                totals["records"] += 1
        return True

    started = time.monotonic()
    try:
        iterator.walk(_tally, *sources)
    finally:
        iterator.close()
    elapsed = time.monotonic() - started

    console.print(_render_count_table(totals["records"], totals["errors"], iterator.seen(), elapsed))
    if totals["errors"]:
        raise typer.Exit(code=1)


@app.command("emit", help="Write the body of every record to stdout.")
def emit(
    ctx: typer.Context,
    uri: str = typer.Argument(..., help="Iterator URI, e.g. sql://sqlite3"),
    sources: List[str] = typer.Argument(..., help="Databases to read."),
    as_json: bool = typer.Option(False, "--json", help="Emit records as a JSON array.", is_flag=True),
    as_geojson: bool = typer.Option(
        False, "--geojson", help="Emit records as a GeoJSON FeatureCollection.", is_flag=True
    ),
) -> None:
    if as_json and as_geojson:
        raise typer.BadParameter("--json and --geojson are mutually exclusive")

    state = _get_state(ctx)
    iterator = _open_iterator(state, uri)
    logger = get_logger(component="emit")

    if as_geojson:
        opening, closing = '{"type":"FeatureCollection","features":[', "]}"
    elif as_json:
        opening, closing = "[", "]"
    else:
        opening = closing = None

    failed = 0
    emitted = 0
    if opening is not None:
        typer.echo(opening, nl=False)
    try:
        for record, error in iterator.iterate(*sources):
            if error is not None:
                failed += 1
                logger.error("record_failed", **error.to_dict())
                continue
            with record:
                body = record.read().decode("utf-8")
            if opening is not None:
                # Compact each body so the wrapper stays valid JSON
                try:
                    body = json.dumps(json.loads(body), separators=(",", ":"), ensure_ascii=False)
                except ValueError as exc:
                    failed += 1
                    logger.error("record_not_json", error=str(exc))
                    continue
                if emitted:
                    typer.echo(",", nl=False)
                typer.echo(body, nl=False)
            else:
                typer.echo(body)
            emitted += 1
    finally:
        iterator.close()
    if closing is not None:
        typer.echo(closing)

    if failed:
        raise typer.Exit(code=1)


def cli() -> None:
    app()


if __name__ == "__main__":  # pragma: no cover
    cli()
