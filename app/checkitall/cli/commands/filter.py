"""Filter inspection commands.

Shows which files a filter would submit for analysis, without talking
to the analyzer.
"""

import json
from dataclasses import dataclass
from pathlib import Path
from typing import Annotated

import typer
from rich.table import Table

from checkitall.admission.filter import Filter, load_filter
from checkitall.cli.types import ExitCode, OutputFormat, resolve_config
from checkitall.core.errors import ConfigError, MimeResolutionError
from checkitall.filesystem.models import FileDescriptor
from checkitall.filesystem.walker import DirectoryWalker
from checkitall.utils.formatting import console, format_size, print_error, print_info

app = typer.Typer(
    help="Inspect filter rules.",
    invoke_without_command=True,
    no_args_is_help=True,
)


@dataclass(frozen=True, slots=True)
class FilterDecision:
    """Filter outcome for one file.

    Attributes:
        path: File path.
        size: File size in bytes.
        mime: MIME type, or None if it could not be resolved.
        submit: Whether the filter submits the file (None on error).
        error: Error message if evaluation failed.
    """

    path: str
    size: int
    mime: str | None
    submit: bool | None
    error: str | None = None

    def to_dict(self) -> dict[str, object]:
        """Convert to a JSON-serializable dictionary."""
        return {
            "path": self.path,
            "size": self.size,
            "mime": self.mime,
            "submit": self.submit,
            "error": self.error,
        }


def evaluate_file(rules: Filter, file: FileDescriptor) -> FilterDecision:
    """Evaluate the filter for one file, capturing MIME errors.

    Args:
        rules: Filter to apply.
        file: Candidate file.

    Returns:
        FilterDecision for the file.
    """
    try:
        submit = rules.evaluate(file)
    except MimeResolutionError as e:
        return FilterDecision(path=file.path, size=file.size, mime=None, submit=None, error=str(e))

    try:
        mime: str | None = file.mime()
    except MimeResolutionError:
        mime = None
    return FilterDecision(path=file.path, size=file.size, mime=mime, submit=submit)


def collect_files(paths: list[Path]) -> list[FileDescriptor]:
    """Expand the given paths into file descriptors.

    Directories are walked; regular files are taken as they are.

    Raises:
        OSError: If a path cannot be read.
    """
    files: list[FileDescriptor] = []
    for path in paths:
        if path.is_dir():
            files.extend(DirectoryWalker(str(path)).walk())
        else:
            files.append(FileDescriptor(path=str(path), size=path.stat().st_size))
    return files


@app.command()
def check(
    paths: Annotated[
        list[Path],
        typer.Argument(help="Files or directories to evaluate."),
    ],
    config_path: Annotated[
        Path | None,
        typer.Option("--config", "-c", envvar="CIA_CONFIG", help="Config file (cia.toml)."),
    ] = None,
    filter_path: Annotated[
        Path | None,
        typer.Option("--filter", envvar="CIA_FILTER", help="Filter rules file."),
    ] = None,
    output_format: Annotated[
        OutputFormat,
        typer.Option(
            "--format",
            "-f",
            help="Output format.",
            case_sensitive=False,
        ),
    ] = OutputFormat.TABLE,
) -> None:
    """Show which files the filter would submit."""
    try:
        if filter_path is None:
            filter_path = _configured_filter(config_path)
        rules = load_filter(filter_path) if filter_path else Filter.submit_all()
    except ConfigError as e:
        print_error(str(e))
        raise typer.Exit(code=ExitCode.CONFIG_ERROR) from e

    if filter_path is None:
        print_info("No filter configured: every file is submitted.")

    try:
        files = collect_files(paths)
    except OSError as e:
        print_error(str(e))
        raise typer.Exit(code=ExitCode.ABORTED) from e

    decisions = [evaluate_file(rules, f) for f in files]

    if output_format == OutputFormat.JSON:
        console.print_json(json.dumps([d.to_dict() for d in decisions]))
    else:
        _print_table(decisions)

    if any(d.error for d in decisions):
        raise typer.Exit(code=ExitCode.ABORTED)


def _configured_filter(config_path: Path | None) -> Path | None:
    config = resolve_config(config_path)
    return Path(config.filter) if config.filter else None


def _print_table(decisions: list[FilterDecision]) -> None:
    """Display filter decisions as a Rich table."""
    table = Table(title="Filter Decisions", header_style="bold_header", border_style="border")
    table.add_column("Decision", width=8)
    table.add_column("Path", style="bold")
    table.add_column("MIME", style="muted")
    table.add_column("Size", justify="right", style="info")

    for d in decisions:
        if d.error:
            decision = "[error]error[/]"
        elif d.submit:
            decision = "[admit]submit[/]"
        else:
            decision = "[ignore]ignore[/]"
        table.add_row(decision, d.path, d.mime or d.error or "-", format_size(d.size))

    console.print(table)
    submitted = sum(1 for d in decisions if d.submit)
    console.print(f"\n[dim]{submitted} of {len(decisions)} files would be submitted[/dim]")
