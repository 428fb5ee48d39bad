"""Run command implementation.

Runs the admission pipeline over a directory and turns the outcome
into an exit code.
"""

import logging
from pathlib import Path
from typing import Annotated

import typer
from rich.table import Table

from checkitall.admission.aggregate import RunOutcome
from checkitall.admission.filter import Filter, load_filter
from checkitall.admission.pipeline import AdmissionPipeline
from checkitall.admission.policy import OutcomeCategory, Policy
from checkitall.analyzer.base import Analyzer, AnalyzerError
from checkitall.analyzer.ddan import DDANClient
from checkitall.cli.types import ExitCode, FileErrorChoice, resolve_config
from checkitall.core.config import AppConfig, resolve_client_uuid
from checkitall.core.errors import ConfigError, RunAbortedError
from checkitall.utils.formatting import console, print_error, print_success, print_warning

logger = logging.getLogger(__name__)


def create_analyzer(config: AppConfig) -> Analyzer:
    """Create the analyzer client for a run.

    Raises:
        ConfigError: If the analyzer settings are incomplete.
    """
    try:
        return DDANClient(config.analyzer, resolve_client_uuid(config.analyzer))
    except AnalyzerError as e:
        raise ConfigError(str(e)) from e


def run_command(
    folder: Annotated[
        Path | None,
        typer.Argument(
            envvar="CIA_FOLDER",
            help="Directory to check (default: 'folder' from config).",
            show_default=False,
        ),
    ] = None,
    config_path: Annotated[
        Path | None,
        typer.Option("--config", "-c", envvar="CIA_CONFIG", help="Config file (cia.toml)."),
    ] = None,
    filter_path: Annotated[
        Path | None,
        typer.Option("--filter", envvar="CIA_FILTER", help="Filter rules file."),
    ] = None,
    skip: Annotated[
        list[str] | None,
        typer.Option("--skip", "-s", help="Path prefix or glob to skip (repeatable)."),
    ] = None,
    url: Annotated[
        str | None,
        typer.Option("--url", envvar="CIA_ANALYZER_URL", help="Analyzer base URL."),
    ] = None,
    api_key: Annotated[
        str | None,
        typer.Option("--api-key", envvar="CIA_API_KEY", help="Analyzer API key."),
    ] = None,
    prescan_jobs: Annotated[
        int | None,
        typer.Option("--prescan-jobs", min=1, help="Number of filter workers."),
    ] = None,
    submit_jobs: Annotated[
        int | None,
        typer.Option("--submit-jobs", "-j", min=1, help="Number of submit workers."),
    ] = None,
    max_file_size: Annotated[
        int | None,
        typer.Option("--max-file-size", min=0, help="Size ceiling in bytes."),
    ] = None,
    poll_interval: Annotated[
        float | None,
        typer.Option("--poll-interval", min=0.0, help="Base poll interval in seconds."),
    ] = None,
    on_file_error: Annotated[
        FileErrorChoice | None,
        typer.Option(
            "--on-file-error",
            help="What an unreadable file does: abort the run or reject the file.",
            case_sensitive=False,
        ),
    ] = None,
) -> None:
    """Check every file under FOLDER and fail if any is inadmissible.

    Exit codes: 0 all files admissible, 1 inadmissible files found,
    2 configuration error, 3 run aborted.

    Examples:
        cia run ./release                   # Check a directory
        cia run --filter filter.toml ./dist # Only submit files the filter selects
        cia run -j 20 --skip ./dist/docs .  # 20 submit workers, skip docs
    """
    try:
        config = resolve_config(config_path)
        config = apply_overrides(
            config,
            filter_path=filter_path,
            skip=skip,
            url=url,
            api_key=api_key,
            prescan_jobs=prescan_jobs,
            submit_jobs=submit_jobs,
            max_file_size=max_file_size,
            poll_interval=poll_interval,
            on_file_error=on_file_error.value if on_file_error else None,
        )
        target = str(folder) if folder is not None else config.folder
        if not target:
            raise ConfigError("No folder given (argument, CIA_FOLDER or 'folder' in config)")
        rules = load_filter(Path(config.filter)) if config.filter else None
        analyzer = create_analyzer(config)
    except ConfigError as e:
        print_error(str(e))
        raise typer.Exit(code=ExitCode.CONFIG_ERROR) from e

    if config.analyzer.ignore_tls_errors:
        print_warning("TLS certificate verification is disabled")

    outcome = _run_pipeline(analyzer, config, rules, target)

    _print_summary(outcome, config.policy)
    if not outcome.success:
        print_error(outcome.message)
        raise typer.Exit(code=ExitCode.INADMISSIBLE)
    print_success(outcome.message)


def apply_overrides(
    config: AppConfig,
    *,
    filter_path: Path | None = None,
    skip: list[str] | None = None,
    url: str | None = None,
    api_key: str | None = None,
    prescan_jobs: int | None = None,
    submit_jobs: int | None = None,
    max_file_size: int | None = None,
    poll_interval: float | None = None,
    on_file_error: str | None = None,
) -> AppConfig:
    """Return a copy of the config with command-line values applied.

    Values left as None keep the configured setting; --skip entries are
    appended to the configured skip list.
    """
    analyzer = {k: v for k, v in {"url": url, "api_key": api_key}.items() if v is not None}
    pipeline: dict[str, object] = {
        k: v
        for k, v in {
            "prescan_jobs": prescan_jobs,
            "submit_jobs": submit_jobs,
            "max_file_size": max_file_size,
            "on_file_error": on_file_error,
        }.items()
        if v is not None
    }
    update: dict[str, object] = {
        "analyzer": config.analyzer.model_copy(update=analyzer),
        "pipeline": config.pipeline.model_copy(update=pipeline),
    }
    if poll_interval is not None:
        update["poll"] = config.poll.model_copy(update={"interval": poll_interval})
    if filter_path is not None:
        update["filter"] = str(filter_path)
    if skip:
        update["skip"] = [*config.skip, *skip]
    return config.model_copy(update=update)


def _run_pipeline(
    analyzer: Analyzer,
    config: AppConfig,
    rules: Filter | None,
    folder: str,
) -> RunOutcome:
    pipeline = AdmissionPipeline.from_config(analyzer, config, rules)
    try:
        return pipeline.run(folder, config.skip)
    except RunAbortedError as e:
        print_error(f"Run aborted: {e.cause}")
        raise typer.Exit(code=ExitCode.ABORTED) from e


def _print_summary(outcome: RunOutcome, policy: Policy) -> None:
    """Display the per-category outcome and its decision as a Rich table."""
    if outcome.categories:
        table = Table(title="Admission Summary", header_style="bold_header", border_style="border")
        table.add_column("Outcome", style="bold")
        table.add_column("Files", justify="right")
        table.add_column("Decision")
        for category in OutcomeCategory:
            count = outcome.categories.get(category)
            if count:
                decision = "[admit]admit[/]" if policy.admits(category) else "[reject]reject[/]"
                table.add_row(category.value, str(count), decision)
        console.print(table)

    console.print(
        f"[dim]{outcome.submitted} submitted, {outcome.ignored} ignored, "
        f"{outcome.skipped} skipped, {outcome.admitted} admitted, "
        f"{outcome.rejected} rejected[/dim]"
    )
