"""
Main entry point for the Notatio Sinistra command line.
"""

import logging
import sys
from pathlib import Path
from typing import Optional

import click

from notatio_sinistra import __version__
from notatio_sinistra.adapters import load_score
from notatio_sinistra.config import get_config
from notatio_sinistra.core.command_executor import CommandExecutor
from notatio_sinistra.core.command_parser import CommandParser
from notatio_sinistra.core.notation import Score, iter_measure_context
from notatio_sinistra.core.sinistra import transform_to_sinistra
from notatio_sinistra.errors import NotatioError
from notatio_sinistra.export import EXPORT_FORMATS, export_score

logger = logging.getLogger(__name__)


def _export(score: Score, output: str, fmt: Optional[str], ltr: bool, measures_per_line: Optional[int]) -> Path:
    """Transform (unless ltr) and export with the configured defaults."""
    config = get_config()
    if not ltr:
        score = transform_to_sinistra(score)

    options = config.render.to_options()
    if measures_per_line is not None:
        options.measures_per_line = measures_per_line

    return export_score(
        score,
        output,
        fmt or config.export.default_format,
        render_options=options,
        png_scale=config.export.png_scale,
        lines_per_page=config.export.pdf_lines_per_page,
    )


def _fail(message: str) -> None:
    click.echo(f"ERROR: {message}", err=True)
    sys.exit(1)


# ── CLI group ──────────────────────────────────────────────────────────────────

@click.group(context_settings={"help_option_names": ["-h", "--help"]})
@click.version_option(version=__version__, prog_name="notatio-sinistra")
@click.option("--verbose", "-v", is_flag=True, help="Log debug output to stderr.")
def cli(verbose: bool) -> None:
    """Notatio Sinistra - mirror sheet music for right-to-left reading."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )


# ── convert subcommand ─────────────────────────────────────────────────────────

@cli.command()
@click.argument("source", type=click.Path(dir_okay=False))
@click.option("--output", "-o", required=True, metavar="PATH", help="Destination file.")
@click.option(
    "--format", "fmt",
    type=click.Choice(EXPORT_FORMATS, case_sensitive=False),
    default=None,
    help="Output format. Defaults to the configured format.",
)
@click.option("--ltr", is_flag=True, help="Keep left-to-right orientation.")
@click.option(
    "--measures-per-line",
    type=click.IntRange(min=1),
    default=None,
    help="Measures on each line of the rendered score.",
)
def convert(source: str, output: str, fmt: Optional[str], ltr: bool, measures_per_line: Optional[int]) -> None:
    """
    Convert a MusicXML or MIDI file to Sinistra notation.

    \b
    Examples:
      notatio-sinistra convert song.musicxml -o song.svg
      notatio-sinistra convert song.mid -o song.pdf --format pdf
    """
    try:
        score = load_score(source)
        path = _export(score, output, fmt, ltr, measures_per_line)
    except OSError as exc:
        _fail(str(exc))
    except NotatioError as exc:
        _fail(str(exc))
    else:
        get_config().add_recent_file(str(Path(source).resolve()))
        click.echo(f"Wrote {path}")


# ── info subcommand ────────────────────────────────────────────────────────────

@cli.command()
@click.argument("source", type=click.Path(dir_okay=False))
def info(source: str) -> None:
    """Summarise the staves and measures of a source file."""
    try:
        score = load_score(source)
    except OSError as exc:
        _fail(str(exc))
    except NotatioError as exc:
        _fail(str(exc))

    click.echo(f"Title    : {score.title or '(untitled)'}")
    if score.composer:
        click.echo(f"Composer : {score.composer}")
    click.echo(f"Time     : {score.time_signature}")
    click.echo(f"Key      : {score.key_signature}")
    if score.tempo:
        click.echo(f"Tempo    : {score.tempo:g} BPM")
    click.echo(f"Staves   : {score.num_staves}")

    for index, staff in enumerate(score.staves, 1):
        elements = sum(len(m.elements) for m in staff.measures)
        clefs = {context.clef.value for _, context in iter_measure_context(staff, score)}
        click.echo(
            f"  Staff {index}: {len(staff.measures)} measures, {elements} elements, "
            f"clef {staff.clef.value}"
            + (f" (also {', '.join(sorted(clefs - {staff.clef.value}))})" if len(clefs) > 1 else "")
        )


# ── enter subcommand ───────────────────────────────────────────────────────────

@cli.command()
@click.argument("script", type=click.File("r"))
@click.option("--output", "-o", required=True, metavar="PATH", help="Destination file.")
@click.option("--title", default=None, help="Score title.")
@click.option(
    "--format", "fmt",
    type=click.Choice(EXPORT_FORMATS, case_sensitive=False),
    default=None,
    help="Output format. Defaults to the configured format.",
)
@click.option("--ltr", is_flag=True, help="Keep left-to-right orientation.")
def enter(script, output: str, title: Optional[str], fmt: Optional[str], ltr: bool) -> None:
    """
    Build a score from a manual entry script and export it.

    SCRIPT holds one command per line ("C4 q", "r h", "|", "clef: bass");
    use - to read from stdin.
    """
    parser = CommandParser()
    elements = parser.parse(script.read())
    for error in parser.errors:
        click.echo(f"  WARNING: line {error.line}: {error}", err=True)

    score = CommandExecutor().create_score_from_elements(elements, title)

    try:
        path = _export(score, output, fmt, ltr, None)
    except OSError as exc:
        _fail(str(exc))
    except NotatioError as exc:
        _fail(str(exc))
    else:
        click.echo(f"Wrote {path}")


def main():
    """Main entry point for the application."""
    cli()


if __name__ == "__main__":
    main()
