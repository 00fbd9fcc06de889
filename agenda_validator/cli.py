"""
Command-line entry point: validate-agenda-metadata.

Exit codes:
    0  every file is valid
    1  usage error (bad options, missing PR title, no files, unknown step)
    2  validation failure
"""
import logging
from typing import List, Optional

import click
import typer
from typer.core import TyperCommand

from .config import load_environment
from .exceptions import MetadataFileError
from .models import validate_schema
from .pipeline import ALL_STEPS, AgendaMetadataValidator, FileVerdict, ValidationStep, load_metadata_file, parse_steps
from .signature import get_signature_message
from .version import __version__

EXIT_OK = 0
EXIT_USAGE = 1
EXIT_INVALID = 2

STEP_HELP = ", ".join([step.value for step in ValidationStep] + [ALL_STEPS])


class ValidateCommand(TyperCommand):
    """Command whose argument parsing errors exit with the usage code."""

    def make_context(self, info_name, args, parent=None, **extra):
        try:
            return super().make_context(info_name, args, parent=parent, **extra)
        except click.UsageError as e:
            e.exit_code = EXIT_USAGE
            raise


app = typer.Typer(
    add_completion=False,
    context_settings={"help_option_names": ["-h", "--help"]},
    help="Validate DAO agenda metadata files submitted in a pull request.",
)


def _version_callback(value: bool) -> None:
    if value:
        typer.echo(__version__)
        raise typer.Exit()


def _usage_error(message: str) -> typer.Exit:
    typer.echo(f"❌ {message}", err=True)
    return typer.Exit(code=EXIT_USAGE)


def _print_verdict(verdict: FileVerdict) -> None:
    if verdict.error:
        typer.echo(f"❌ {verdict.file_path} error: {verdict.error}", err=True)
        return
    for outcome in verdict.outcomes:
        if outcome.passed:
            typer.echo(f"✅ {outcome.step.value} validation passed")
        else:
            typer.echo(f"❌ {outcome.step.value} validation failed: {outcome.reason}", err=True)
    if verdict.valid:
        steps = ", ".join(outcome.step.value for outcome in verdict.outcomes)
        typer.echo(f"✅ {verdict.file_path} is valid ({steps} validations passed).")
    else:
        typer.echo(f"❌ {verdict.file_path} is invalid.", err=True)


def _print_messages(files: List[str]) -> int:
    exit_code = EXIT_OK
    for file_path in files:
        try:
            result = validate_schema(load_metadata_file(file_path))
        except MetadataFileError as e:
            typer.echo(f"❌ {e}", err=True)
            exit_code = EXIT_INVALID
            continue
        if not result.success:
            typer.echo(f"❌ {file_path}: " + "; ".join(result.errors), err=True)
            exit_code = EXIT_INVALID
            continue
        metadata = result.metadata
        typer.echo(get_signature_message(
            metadata.id, metadata.transaction, metadata.signature_timestamp, metadata.is_update
        ))
    return exit_code


@app.command(cls=ValidateCommand)
def main(
    files: Optional[List[str]] = typer.Argument(None, help="Agenda metadata files (data/agendas/<network>/agenda-<id>.json)"),
    pr_title: Optional[str] = typer.Option(None, "--pr-title", envvar="PR_TITLE", help="PR title to check the files against"),
    check: str = typer.Option(ALL_STEPS, "--check", help=f"Comma-separated steps to run: {STEP_HELP}"),
    allow_multiple: bool = typer.Option(False, "--allow-multiple", help="Validate several files in one run"),
    print_message: bool = typer.Option(False, "--print-message", help="Print the message the creator must sign and exit"),
    log_level: str = typer.Option("WARNING", "--log-level", envvar="AGENDA_VALIDATOR_LOG_LEVEL", help="Logging level"),
    version: Optional[bool] = typer.Option(None, "--version", callback=_version_callback, is_eager=True, help="Show the version and exit"),
) -> None:
    """Validate agenda metadata files."""
    load_environment()
    logging.basicConfig(level=getattr(logging, log_level.upper(), logging.WARNING),
                        format="%(levelname)s %(name)s: %(message)s")

    if not files:
        raise _usage_error("At least one file path is required.")

    if print_message:
        raise typer.Exit(code=_print_messages(files))

    if not pr_title:
        raise _usage_error("PR title is required. Use --pr-title option or set PR_TITLE environment variable.")

    try:
        steps = parse_steps(check)
    except ValueError as e:
        raise _usage_error(str(e))

    typer.echo(f"🚀 Starting validation with steps: {', '.join(step.value for step in steps)}")
    verdicts = AgendaMetadataValidator().validate_files(files, pr_title, steps, allow_multiple=allow_multiple)
    for verdict in verdicts:
        _print_verdict(verdict)

    if not all(verdict.valid for verdict in verdicts):
        raise typer.Exit(code=EXIT_INVALID)
