"""CLI interface for computepkg using Typer framework."""

import json as jsonlib
import logging
from pathlib import Path
from typing import Annotated, List, NoReturn, Optional

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.table import Table

from computepkg import __description__, __version__
from computepkg.config import ComputePkgConfig, load_config
from computepkg.diagnostics import ErrorCollector, ErrorContext
from computepkg.errors import ManifestError, PackageError, RemediationError
from computepkg.manifest import default_package_path, load_manifest
from computepkg.validation import (
    ContentDigest,
    DenyEntries,
    ManifestName,
    MaxEntrySize,
    PackageValidator,
    ValidationOutcome,
    chain,
)

logger = logging.getLogger(__name__)

REMEDIATION = (
    "Run `fastly compute build` to produce a Compute package, alternatively use the "
    "--package flag to reference a package outside of the current project."
)

app = typer.Typer(
    name="computepkg",
    help=__description__,
    add_completion=False,
    rich_markup_mode="rich"
)

console = Console()


def version_callback(value: bool) -> None:
    """Show version information and exit."""
    if value:
        console.print(f"computepkg version {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: Annotated[
        bool,
        typer.Option("--version", "-V", callback=version_callback, is_eager=True, help="Show version and exit")
    ] = False,
) -> None:
    """computepkg - Validate Compute package archives."""


def _configure_logging(level: int) -> None:
    logging.basicConfig(
        level=level,
        format="%(message)s",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
        force=True,
    )


def _resolve_package_path(package: Path | None, config: ComputePkgConfig) -> Path:
    """Use the explicit path, or derive the default from the project manifest.

    Raises:
        RemediationError: If no path was given and the project name can't be read
    """
    if package is None:
        try:
            manifest = load_manifest(config.manifest.filename)
        except ManifestError as e:
            raise RemediationError(f"failed to read project name: {e}", REMEDIATION) from e
        package = default_package_path(manifest.name, config.package.dir, config.package.suffix)

    return package.absolute()


def _record_failure(error: Exception, config: ComputePkgConfig, context: ErrorContext) -> None:
    """Write the failure to the error log when diagnostics are enabled."""
    if not config.diagnostics.enabled:
        return

    collector = ErrorCollector(Path(config.diagnostics.dir), "validate", config.diagnostics.max_runs)
    collector.collect_error(error, context)
    try:
        collector.flush_to_filesystem()
    except OSError as e:
        logger.warning(f"Failed to write error log to {config.diagnostics.dir}: {e}")


def _fail(error: RemediationError) -> NoReturn:
    console.print(f"[red]Error:[/red] {escape(str(error))}", soft_wrap=True)
    console.print(f"[dim]{escape(error.remediation)}[/dim]", soft_wrap=True)
    raise typer.Exit(1)


def _output_outcome_table(outcome: ValidationOutcome, required: list[str]) -> None:
    table = Table(title="Package Validation")
    table.add_column("Field", style="cyan")
    table.add_column("Value", style="white")

    status_color = "green" if outcome.ok else "red"
    table.add_row("Status", f"[{status_color}]{outcome.status.value.upper()}[/{status_color}]")
    table.add_row("Entries Read", str(outcome.entries_read))
    table.add_row("Required Files", ", ".join(required) or "-")
    table.add_row("Found", ", ".join(outcome.observed) or "-")
    if outcome.digest:
        table.add_row("SHA-256", outcome.digest)

    console.print(table)


@app.command()
def validate(
    package: Annotated[
        Optional[Path],
        typer.Option("--package", "-p", help="Path to a package tar.gz (default: derived from fastly.toml)")
    ] = None,
    config: Annotated[
        Optional[Path],
        typer.Option("--config", "-c", help="Configuration file path (default: search for .computepkg.json)")
    ] = None,
    require: Annotated[
        Optional[List[str]],
        typer.Option("--require", "-r", help="Required entry name (repeatable, replaces the configured list)")
    ] = None,
    deny: Annotated[
        Optional[List[str]],
        typer.Option("--deny", help="Entry name that must not be in the package (repeatable)")
    ] = None,
    max_entry_size: Annotated[
        Optional[int],
        typer.Option("--max-entry-size", min=0, help="Reject entries larger than this many bytes")
    ] = None,
    expect_name: Annotated[
        Optional[str],
        typer.Option("--expect-name", help="Project name the packaged fastly.toml must declare")
    ] = None,
    digest: Annotated[
        bool,
        typer.Option("--digest", help="Compute a SHA-256 over the package entries")
    ] = False,
    format: Annotated[
        str,
        typer.Option("--format", "-f", help="Output format: table, json (default: table)")
    ] = "table",
    verbose: Annotated[
        bool,
        typer.Option("--verbose", "-v", help="Enable debug logging")
    ] = False,
) -> None:
    """Validate a Compute package."""
    valid_formats = ["table", "json"]
    if format not in valid_formats:
        console.print(f"[red]Error:[/red] Invalid format '{format}'. Must be one of: {', '.join(valid_formats)}")
        raise typer.Exit(1)

    try:
        pkg_config = load_config(config)
    except ValueError as e:
        console.print(f"[red]Error:[/red] {escape(str(e))}", soft_wrap=True)
        raise typer.Exit(1)

    _configure_logging(logging.DEBUG if verbose else pkg_config.logging.level.to_logging())

    try:
        path = _resolve_package_path(package, pkg_config)
    except RemediationError as e:
        _record_failure(e, pkg_config, ErrorContext(operation="validate", component="manifest"))
        _fail(e)

    required = list(require) if require else list(pkg_config.package.required_files)
    denied = [*pkg_config.validation.deny, *(deny or [])]
    size_limit = max_entry_size if max_entry_size is not None else pkg_config.validation.max_entry_size
    digest_hook = ContentDigest() if digest else None

    try:
        # The digest taps each body before any other validator reads it.
        entry_validator = chain(
            digest_hook,
            DenyEntries(denied) if denied else None,
            MaxEntrySize(size_limit) if size_limit is not None else None,
            ManifestName(expect_name, pkg_config.manifest.filename) if expect_name else None,
        )
        validator = PackageValidator(required, entry_validator)
    except ValueError as e:
        console.print(f"[red]Error:[/red] {escape(str(e))}", soft_wrap=True)
        raise typer.Exit(1)

    outcome = validator.validate(path)
    if digest_hook is not None and outcome.ok:
        outcome.digest = digest_hook.hexdigest()

    if format == "json":
        typer.echo(jsonlib.dumps(outcome.to_dict(), indent=2))
        if not outcome.ok:
            _record_failure(outcome.error, pkg_config, ErrorContext.from_package_error(outcome.error))
            raise typer.Exit(outcome.exit_code)
        return

    if not outcome.ok:
        error: PackageError = outcome.error
        _record_failure(error, pkg_config, ErrorContext.from_package_error(error))
        _fail(RemediationError(f"failed to validate package: {error}", REMEDIATION))

    if verbose or digest:
        _output_outcome_table(outcome, required)

    console.print(f"[green]✓[/green] Validated package {escape(str(path))}", soft_wrap=True)


if __name__ == "__main__":
    app()
