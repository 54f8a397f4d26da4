# src/export_completion/cli.py
"""export-completion command line interface.

Entry point for the batch job's completion hook and for inspecting or
updating the status table by hand.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import TYPE_CHECKING, Literal

import typer
from dynaconf.vendor.ruamel.yaml.parser import ParserError as YamlParserError
from dynaconf.vendor.ruamel.yaml.scanner import ScannerError as YamlScannerError
from pydantic import ValidationError

from export_completion import __version__
from export_completion.contracts.enums import JobExitStatus
from export_completion.core.config import load_settings

if TYPE_CHECKING:
    from export_completion.core.config import CompletionSettings

__all__ = ["app"]

app = typer.Typer(
    name="export-completion",
    help="Run-completion tracking and success signalling for exports.",
    no_args_is_help=True,
)


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        typer.echo(f"export-completion version {__version__}")
        raise typer.Exit()


def _load_dotenv(env_file: Path | None = None) -> bool:
    """Load environment variables from .env file.

    Raises:
        typer.Exit: If explicit env_file path doesn't exist.
    """
    from dotenv import load_dotenv

    if env_file is not None:
        if not env_file.exists():
            typer.secho(f"Error: .env file not found: {env_file}", fg=typer.colors.RED, err=True)
            raise typer.Exit(1)
        return load_dotenv(env_file, override=False)

    return load_dotenv(override=False)  # Don't override existing env vars


@app.callback()
def main(
    version: bool | None = typer.Option(
        None,
        "--version",
        "-V",
        callback=version_callback,
        is_eager=True,
        help="Show version and exit.",
    ),
    no_dotenv: bool = typer.Option(False, "--no-dotenv", help="Skip loading .env file."),
    env_file: Path | None = typer.Option(
        None,
        "--env-file",
        help="Path to .env file (skips automatic search).",
        exists=False,  # Existence checked in _load_dotenv for a better message
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging."),
    json_logs: bool = typer.Option(False, "--json-logs", help="Output structured JSON logs."),
) -> None:
    """Run-completion tracking and success signalling for exports."""
    from export_completion.core.logging import configure_logging

    configure_logging(json_output=json_logs, level="DEBUG" if verbose else "INFO")

    if not no_dotenv:
        _load_dotenv(env_file=env_file)
    elif env_file is not None:
        typer.secho("Warning: --env-file ignored because --no-dotenv is set.", fg=typer.colors.YELLOW, err=True)


def _load_settings_or_exit(settings: str) -> CompletionSettings:
    settings_path = Path(settings).expanduser()
    try:
        return load_settings(settings_path)
    except (YamlParserError, YamlScannerError) as e:
        typer.echo(f"YAML syntax error in {settings}: {e.problem}", err=True)
        raise typer.Exit(1) from None
    except FileNotFoundError:
        typer.echo(f"Error: Settings file not found: {settings}", err=True)
        raise typer.Exit(1) from None
    except ValidationError as e:
        typer.echo("Configuration errors:", err=True)
        for error in e.errors():
            loc = ".".join(str(x) for x in error["loc"])
            typer.echo(f"  - {loc}: {error['msg']}", err=True)
        raise typer.Exit(1) from None


def _report_error(e: Exception, output_format: str, action: str) -> None:
    if output_format == "json":
        typer.echo(json.dumps({"event": "error", "error": str(e), "error_type": type(e).__name__}), err=True)
    else:
        typer.echo(f"Error during {action}: {e}", err=True)


SETTINGS_OPTION = typer.Option(..., "--settings", "-s", help="Path to settings YAML file.")
FORMAT_OPTION = typer.Option(
    "console",
    "--format",
    "-f",
    help="Output format: 'console' (human-readable) or 'json' (structured JSON).",
)


@app.command()
def complete(
    settings: str = SETTINGS_OPTION,
    exit_status: JobExitStatus = typer.Option(
        ...,
        "--exit-status",
        "-e",
        case_sensitive=False,
        help="Exit status of the batch job that ran the export.",
    ),
    output_format: Literal["console", "json"] = FORMAT_OPTION,
) -> None:
    """Handle the end of the export job: set status and emit signals."""
    from export_completion.cli_helpers import build_components
    from export_completion.core.logging import bind_run_context, clear_run_context

    config = _load_settings_or_exit(settings)

    try:
        components = build_components(config)
    except Exception as e:
        typer.echo(f"Error building components: {e}", err=True)
        raise typer.Exit(1) from None

    bind_run_context(components.context.run_id, components.context.collection_name)
    try:
        outcome = components.orchestrator.after_job(exit_status)
    except Exception as e:
        _report_error(e, output_format, "completion handling")
        raise typer.Exit(1) from None
    finally:
        components.close()
        clear_run_context()

    if output_format == "json":
        typer.echo(json.dumps(outcome.to_dict()))
    else:
        typer.echo(f"Job exit status: {outcome.exit_status.value}")
        if outcome.legacy_mode:
            typer.echo("Legacy mode: full run success indicator posted")
        if outcome.collection_status is not None:
            typer.echo(f"Collection status: {outcome.collection_status.value}")
        if outcome.sending_status is not None:
            typer.echo(f"Run sending status: {outcome.sending_status.value}")
        for kind in outcome.indicators_posted:
            typer.echo(f"Posted {kind.value} success indicator")

    if not outcome.job_succeeded:
        raise typer.Exit(1)


@app.command()
def status(
    settings: str = SETTINGS_OPTION,
    output_format: Literal["console", "json"] = FORMAT_OPTION,
) -> None:
    """Show the collection's status record and the run's in-flight counts."""
    from export_completion.cli_helpers import run_context
    from export_completion.engine.run import RunCompletionEvaluator
    from export_completion.store.dynamodb import DynamoDBStatusStore

    config = _load_settings_or_exit(settings)
    context = run_context(config)
    store = DynamoDBStatusStore.from_settings(config.status_store)

    try:
        record = store.get(context.run_id, context.collection_name)
        exporting = store.count_exporting(context.run_id)
        pending = store.count_pending_send(context.run_id)
        complete = RunCompletionEvaluator(store).run_is_complete(context.run_id)
    except Exception as e:
        _report_error(e, output_format, "status lookup")
        raise typer.Exit(1) from None

    summary = {
        "run_id": context.run_id,
        "collection_name": context.collection_name,
        "status": record.status,
        "files_exported": record.files_exported,
        "files_sent": record.files_sent,
        "exporting_count": exporting,
        "pending_send_count": pending,
        "run_complete": complete,
    }
    if output_format == "json":
        typer.echo(json.dumps(summary))
        return
    for key, value in summary.items():
        typer.echo(f"{key}: {'unknown' if value is None else value}")


@app.command("record-sent")
def record_sent(
    settings: str = SETTINGS_OPTION,
    file_name: str = typer.Option(..., "--file", help="Name of the file that was delivered."),
) -> None:
    """Record one delivered file against the current collection."""
    from export_completion.cli_helpers import run_context
    from export_completion.store.dynamodb import DynamoDBStatusStore

    config = _load_settings_or_exit(settings)
    context = run_context(config)
    store = DynamoDBStatusStore.from_settings(config.status_store)

    try:
        files_sent = store.increment_files_sent(context.run_id, context.collection_name)
    except Exception as e:
        typer.echo(f"Error recording sent file {file_name}: {e}", err=True)
        raise typer.Exit(1) from None

    typer.echo(f"Recorded {file_name}: {files_sent} files sent for {context.collection_name}")
