"""beamgroup CLI entry point."""

import sys
from pathlib import Path

import click

from beamgroup import __version__
from beamgroup.config import load_settings
from beamgroup.errors import TimingError
from beamgroup.logging_utils import configure_logging
from beamgroup.persistence import load_sheet, save_sheet
from beamgroup.steps import BeamGroupStep
from beamgroup.timing import get_duration


def _load_or_exit(sheet_file: str):
    try:
        return load_sheet(sheet_file)
    except (OSError, ValueError) as exc:
        click.echo(f"  ERROR: Could not read sheet document — {exc}", err=True)
        sys.exit(1)


# ── CLI group ──────────────────────────────────────────────────────────────────

@click.group(context_settings={"help_option_names": ["-h", "--help"]})
@click.version_option(version=__version__, prog_name="beamgroup")
@click.option(
    "--log-level",
    default=None,
    metavar="LEVEL",
    help="Logging level (DEBUG, INFO, WARNING...). Defaults to $BEAMGROUP_LOG_LEVEL or WARNING.",
)
@click.option("--log-json", is_flag=True, default=False, help="Emit logs as JSON records.")
def main(log_level: str | None, log_json: bool) -> None:
    """beamgroup — beam grouping and split repair for recognized score measures."""
    configure_logging(log_level, log_json or None)


# ── process subcommand ─────────────────────────────────────────────────────────

@main.command()
@click.argument("sheet_file", type=click.Path(exists=True, dir_okay=False, readable=True))
@click.option(
    "--output",
    "-o",
    default=None,
    metavar="PATH",
    help="Destination sheet document. Defaults to <sheet>.groups.json.",
)
@click.option(
    "--max-split-loops",
    type=click.IntRange(min=0),
    default=None,
    help="Maximum number of group splits per measure. Defaults to 10.",
)
@click.option(
    "--max-chord-dy",
    type=click.FloatRange(min=0, min_open=True),
    default=None,
    metavar="FRAC",
    help="Maximum chord/beam vertical gap, in interline fractions. Defaults to 0.5.",
)
@click.option(
    "--timing",
    is_flag=True,
    default=False,
    help="Propagate time offsets in groups whose first chord is already timed.",
)
def process(
    sheet_file: str,
    output: str | None,
    max_split_loops: int | None,
    max_chord_dy: float | None,
    timing: bool,
) -> None:
    """
    Build beam groups for every measure of a sheet document, and repair them.

    SHEET_FILE is a JSON sheet document with the detected chords, beams,
    stems and heads of each measure.

    \b
    Examples:
      beamgroup process sheet.json
      beamgroup process sheet.json -o grouped.json --max-chord-dy 0.4
      beamgroup --log-level DEBUG process sheet.json --timing
    """
    try:
        settings = load_settings().with_overrides(max_split_loops, max_chord_dy)
    except ValueError as exc:
        click.echo(f"  ERROR: Invalid settings — {exc}", err=True)
        sys.exit(1)

    sheet_path = Path(sheet_file)
    resolved_output = output if output is not None else str(sheet_path.with_suffix(".groups.json"))

    click.echo(f"beamgroup v{__version__}")
    click.echo(f"  Sheet  : {sheet_file}")
    click.echo(f"  Limits : {settings.max_split_loops} splits  |  max dy {settings.max_chord_dy}")
    click.echo()

    click.echo("[1/3] Loading sheet document...")
    stacks, interline = _load_or_exit(sheet_file)

    click.echo("[2/3] Building and repairing beam groups...")
    step = BeamGroupStep(settings)
    report = step.run(stacks)

    for stack in stacks:
        for measure in stack.measures:
            click.echo(f"      Stack {stack.id} {measure}: {len(measure.groups)} group(s)")
            for group in measure.groups:
                flag = "  multi-staff" if group.multi_staff else ""
                click.echo(f"        #{group.id:<3} beams {sorted(group.beams)}{flag}")

    if timing:
        for stack in stacks:
            if stack.id not in report.failed:
                step.compute_timing(stack)

    click.echo(f"[3/3] Writing sheet document → '{resolved_output}'...")
    try:
        save_sheet(resolved_output, stacks, interline)
    except OSError as exc:
        click.echo(f"  ERROR: Could not write output file — {exc}", err=True)
        sys.exit(1)

    click.echo()
    if not report.ok:
        for stack_id, message in report.failed.items():
            click.echo(f"  ERROR: stack {stack_id}: {message}", err=True)
        sys.exit(1)

    click.echo(f"Done!  {report.splits} split(s) performed.")


# ── show subcommand ────────────────────────────────────────────────────────────

@main.command()
@click.argument("sheet_file", type=click.Path(exists=True, dir_okay=False, readable=True))
def show(sheet_file: str) -> None:
    """
    Print the persisted beam groups of a sheet document.

    \b
    Examples:
      beamgroup show sheet.groups.json
    """
    stacks, _interline = _load_or_exit(sheet_file)

    for stack in stacks:
        for measure in stack.measures:
            click.echo(f"Stack {stack.id} {measure}")
            for group in measure.groups:
                chords = [chord.id for chord in group.chords()]
                try:
                    duration = str(get_duration(group))
                except TimingError:
                    duration = "-"
                click.echo(
                    f"  #{group.id:<3} beams {sorted(group.beams)}  chords {chords}  "
                    f"multi-staff {'yes' if group.multi_staff else 'no'}  duration {duration}"
                )
