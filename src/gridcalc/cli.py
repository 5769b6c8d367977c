"""Command-line interface for gridcalc."""

from __future__ import annotations

import uuid
from pathlib import Path

import click

from gridcalc import __version__

PROMPT = "> "

REPL_HELP = """\
Commands:
  set X Y TEXT   store TEXT at column X, row Y (TEXT starting with = is a formula)
  get X Y        show the displayed value of a cell
  raw X Y        show the raw text of a cell
  show           print the whole sheet
  help           show this message
  quit           leave"""


def _load_sheet(project_dir: Path | None):
    """Build a sheet configured from *project_dir*, enabling event logging there."""
    from gridcalc.config import load_config
    from gridcalc.logging.events import EventType, emit_info, set_project_dir
    from gridcalc.sheet import Sheet

    if project_dir is None:
        return Sheet()
    try:
        config = load_config(project_dir)
    except ValueError as e:
        raise click.ClickException(str(e))
    session_id = uuid.uuid4().hex
    set_project_dir(project_dir, session_id=session_id)
    emit_info(EventType.session_started, "Session started", {"session_id": session_id})
    return Sheet(config=config)


def _parse_coords(x: str, y: str) -> tuple[int, int]:
    try:
        cx, cy = int(x), int(y)
    except ValueError:
        raise click.UsageError(f"Coordinates must be integers, got {x!r} {y!r}")
    if cx < 0 or cy < 0:
        raise click.UsageError(f"Coordinates must be non-negative, got {cx} {cy}")
    return cx, cy


def _parse_cell_option(item: str) -> tuple[int, int, str]:
    if "=" not in item or "," not in item.split("=", 1)[0]:
        raise click.UsageError(f"Invalid --cell format: {item!r}. Use X,Y=TEXT.")
    coords, text = item.split("=", 1)
    x, y = coords.split(",", 1)
    cx, cy = _parse_coords(x.strip(), y.strip())
    return cx, cy, text


@click.group()
@click.version_option(version=__version__, prog_name="gridcalc")
@click.option(
    "--project-dir",
    default=None,
    type=click.Path(file_okay=False, path_type=Path),
    help="Directory with gridcalc.yaml; events are logged under its logs/.",
)
@click.pass_context
def main(ctx: click.Context, project_dir: Path | None) -> None:
    """gridcalc -- a small formula engine over a growable grid of cells."""
    ctx.obj = project_dir


# ---------------------------------------------------------------------------
# Eval
# ---------------------------------------------------------------------------


@main.command("eval")
@click.argument("formula")
def eval_cmd(formula: str) -> None:
    """Evaluate FORMULA and print its value (the leading = is optional)."""
    from gridcalc.formulas import ENGINE_ERRORS, evaluate_formula, format_value, parse_formula
    from gridcalc.sheet import FORMULA_MARKER, is_formula

    body = formula[len(FORMULA_MARKER):] if is_formula(formula) else formula
    try:
        value = evaluate_formula(parse_formula(body))
    except ENGINE_ERRORS as e:
        raise click.ClickException(str(e))
    click.echo(format_value(value))


# ---------------------------------------------------------------------------
# Show
# ---------------------------------------------------------------------------


@main.command()
@click.option("--cell", "cells", multiple=True, help="Set a cell as X,Y=TEXT. Repeatable.")
@click.option("--frame", "as_frame", is_flag=True, help="Print as a table instead of CSV-like text.")
@click.pass_obj
def show(project_dir: Path | None, cells: tuple[str, ...], as_frame: bool) -> None:
    """Build a sheet from --cell options and print it."""
    sheet = _load_sheet(project_dir)
    for item in cells:
        x, y, text = _parse_cell_option(item)
        sheet.set(x, y, text)
    if as_frame:
        click.echo(sheet.to_frame())
    else:
        click.echo(sheet.render(), nl=False)


# ---------------------------------------------------------------------------
# Repl
# ---------------------------------------------------------------------------


@main.command()
@click.pass_obj
def repl(project_dir: Path | None) -> None:
    """Interactive session: set cells and display the sheet."""
    sheet = _load_sheet(project_dir)
    stream = click.get_text_stream("stdin")
    while True:
        click.echo(PROMPT, nl=False)
        line = stream.readline()
        if not line:
            click.echo()
            break
        line = line.strip()
        if not line:
            continue
        if line in ("quit", "exit"):
            break
        try:
            output = _run_command(sheet, line)
        except click.UsageError as e:
            output = f"error: {e.message}"
        if output:
            click.echo(output)


def _run_command(sheet, line: str) -> str:
    """Execute one REPL command against *sheet* and return its output."""
    command, _, rest = line.partition(" ")
    if command == "help":
        return REPL_HELP
    if command == "show":
        return sheet.render().rstrip("\n")
    if command == "set":
        parts = rest.split(" ", 2)
        if len(parts) < 2:
            raise click.UsageError("usage: set X Y TEXT")
        x, y = _parse_coords(parts[0], parts[1])
        sheet.set(x, y, parts[2] if len(parts) == 3 else "")
        return ""
    if command in ("get", "raw"):
        parts = rest.split()
        if len(parts) != 2:
            raise click.UsageError(f"usage: {command} X Y")
        x, y = _parse_coords(parts[0], parts[1])
        return sheet.display_cell(x, y) if command == "get" else sheet.raw_text(x, y)
    raise click.UsageError(f"unknown command {command!r}; type help")
