"""Command-line interface for releasepack."""

import asyncio
import logging
import sys
from pathlib import Path

import click
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.table import Table

from .config import ReleasePackConfig, create_sample_config, load_config, load_trackers
from .core.confirmation import AutoApprove, AutoReject, InteractiveConfirmation
from .core.orchestrator import ReleaseProcessor, scan_input_directory
from .error_handling import ConfigurationError, ReleasePackError, check_dependencies, graceful_exit
from .models import ReleaseOutcome, ReleaseState
from .organize.relocate import archive_working_directories
from .release.parser import parse_release_directory

console = Console()

FORCE_TYPE_CHOICES = ["cd", "bd", "dvd"]


def setup_logging(
    *,
    verbose: bool = False,
    config: ReleasePackConfig | None = None,
) -> None:
    """Set up logging configuration."""
    level = logging.DEBUG if verbose else logging.INFO

    # Clean up existing handlers first to prevent resource leaks
    cleanup_logging()

    # Configure RichHandler to show path only at DEBUG level
    show_path = level == logging.DEBUG
    handlers: list[logging.Handler] = [
        RichHandler(console=console, rich_tracebacks=True, show_path=show_path),
    ]

    # Add file handler if config is available
    if config and config.log_dir:
        config.log_dir.mkdir(parents=True, exist_ok=True)
        log_file = config.log_dir / "releasepack.log"
        file_handler = logging.FileHandler(log_file)
        file_handler.setFormatter(
            logging.Formatter(
                "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
            ),
        )
        handlers.append(file_handler)

    logging.basicConfig(
        level=level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=handlers,
        force=True,  # Force reconfiguration of root logger
    )


def cleanup_logging() -> None:
    """Clean up logging handlers to prevent ResourceWarnings."""
    root_logger = logging.getLogger()
    for handler in root_logger.handlers[:]:
        if isinstance(handler, logging.FileHandler):
            handler.close()
            root_logger.removeHandler(handler)


@click.group()
@click.option(
    "--config",
    "-c",
    type=click.Path(exists=True, path_type=Path),
    help="Configuration file path",
)
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose logging")
@click.pass_context
def cli(ctx: click.Context, config: Path | None, verbose: bool) -> None:
    """releasepack - Verify, transcode and package music releases for trackers."""
    try:
        ctx.ensure_object(dict)
        loaded_config = load_config(config)
        ctx.obj["config"] = loaded_config
        ctx.obj["verbose"] = verbose

        # Setup logging with the loaded config for file logging
        setup_logging(verbose=verbose, config=loaded_config)
    except (OSError, ValueError, RuntimeError) as e:
        config_error = ConfigurationError(
            f"Failed to load configuration: {e}",
            config_path=config,
            solution="Run 'releasepack config validate' to check your configuration file",
        )
        console.print(f"[red]Configuration Error:[/red] {escape(str(config_error))}")
        sys.exit(1)


@cli.group("config")
@click.pass_context
def config_cmd(ctx: click.Context) -> None:
    """Configuration management commands."""


@config_cmd.command("show")
@click.pass_context
def config_show(ctx: click.Context) -> None:
    """Show current configuration."""
    config: ReleasePackConfig = ctx.obj["config"]

    table = Table()
    table.add_column("Setting")
    table.add_column("Value")

    table.add_row("Base Directory", str(config.base_dir))
    table.add_row("Input Directory", str(config.input_dir))
    table.add_row("Output Directory", str(config.output_dir))
    table.add_row("Torrent Directory", str(config.torrent_dir))
    table.add_row("Spectrograms Directory", str(config.spectrograms_dir))
    table.add_row("Log Directory", str(config.log_dir))
    table.add_row("Concurrency Limit", str(config.concurrency_limit))
    table.add_row("Spectrograms", "Enabled" if config.spectrograms else "Disabled")
    table.add_row("Log Checker", escape(config.hbcl_cmd))
    table.add_row("Trackers", ", ".join(config.trackers) or "Not configured")

    console.print(table)


@config_cmd.command("validate")
@click.pass_context
def config_validate(ctx: click.Context) -> None:
    """Validate current configuration."""
    config: ReleasePackConfig = ctx.obj["config"]

    console.print("[bold]Configuration Validation[/bold]")

    errors = []

    for name, path in [
        ("Input", config.input_dir),
        ("Output", config.output_dir),
        ("Torrent", config.torrent_dir),
        ("Spectrograms", config.spectrograms_dir),
        ("Log", config.log_dir),
    ]:
        try:
            path.mkdir(parents=True, exist_ok=True)
            console.print(f"[green]✓[/green] {name} directory: {path}")
        except OSError as e:
            console.print(f"[red]✗[/red] {name} directory: {e}")
            errors.append(f"{name} directory: {e}")

    if not config.trackers:
        console.print("[red]✗[/red] No trackers configured")
        errors.append("No trackers configured")
    elif not any(tracker.default for tracker in config.trackers.values()):
        console.print("[yellow]⚠[/yellow] No tracker is marked default; pass --tracker when processing")
    else:
        console.print(f"[green]✓[/green] {len(config.trackers)} tracker(s) configured")

    for dependency in check_dependencies(config):
        console.print(f"[yellow]⚠[/yellow] {escape(dependency.message)}")

    if errors:
        console.print(f"\n[red]Found {len(errors)} configuration errors[/red]")
        sys.exit(1)
    else:
        console.print("\n[green]Configuration is valid[/green]")


@config_cmd.command("init")
@click.option(
    "--path",
    "-p",
    type=click.Path(path_type=Path),
    default=Path.home() / ".config" / "releasepack" / "config.toml",
    help="Path for the configuration file",
)
def config_init(path: Path) -> None:
    """Create a sample configuration file."""
    try:
        create_sample_config(path)
        console.print(f"[green]Created sample configuration at {path}[/green]")
        console.print("Please edit the configuration file with your settings.")
    except OSError as e:
        console.print(f"[red]Error creating configuration: {e}[/red]")
        sys.exit(1)


@cli.command()
@click.argument("release", required=False, type=click.Path(exists=True, file_okay=False, path_type=Path))
@click.option("--tracker", "-t", "trackers", multiple=True, help="Tracker to package for (repeatable)")
@click.option("--no-move", is_flag=True, help="Leave the source release in place")
@click.option(
    "--force-type",
    type=click.Choice(FORCE_TYPE_CHOICES, case_sensitive=False),
    help="Disc type for releases without disc folders",
)
@click.option("--yes", "-y", is_flag=True, help="Continue releases with verification warnings")
@click.option("--no-confirm", is_flag=True, help="Skip releases with verification warnings")
@click.pass_context
def process(
    ctx: click.Context,
    release: Path | None,
    trackers: tuple[str, ...],
    no_move: bool,
    force_type: str | None,
    yes: bool,
    no_confirm: bool,
) -> None:
    """Process one release, or every release in the input directory."""
    config: ReleasePackConfig = ctx.obj["config"]

    if yes and no_confirm:
        raise click.UsageError("--yes and --no-confirm are mutually exclusive")

    missing = check_dependencies(config)
    if missing:
        console.print("[red bold]🚫 Missing Dependencies[/red bold]")
        for dependency in missing:
            dependency.display_to_user()
        sys.exit(1)

    try:
        selected = load_trackers(config, trackers)
    except ReleasePackError as e:
        e.display_to_user()
        sys.exit(1)

    if not selected:
        console.print("[yellow]No trackers selected; torrents will not be created[/yellow]")

    config.ensure_directories()

    if release is not None:
        releases = [release.resolve()]
    else:
        releases = scan_input_directory(config.input_dir)
        if not releases:
            console.print(f"[yellow]No releases found in {config.input_dir}[/yellow]")
            return
        console.print(f"Found {len(releases)} release(s) to process")

    if yes:
        confirmation = AutoApprove()
    elif no_confirm:
        confirmation = AutoReject()
    else:
        confirmation = InteractiveConfirmation()

    processor = ReleaseProcessor(
        config,
        selected,
        confirmation=confirmation,
        no_move=no_move,
        force_type=force_type.lower() if force_type else None,
        console=console,
    )
    outcomes = asyncio.run(processor.run_batch(releases))

    console.print(format_outcome_table(outcomes))
    if any(outcome.failed for outcome in outcomes):
        graceful_exit(1)


@cli.command()
@click.argument("release", type=click.Path(exists=True, file_okay=False, path_type=Path))
@click.option(
    "--force-type",
    type=click.Choice(FORCE_TYPE_CHOICES, case_sensitive=False),
    help="Disc type for releases without disc folders",
)
def inspect(release: Path, force_type: str | None) -> None:
    """Show how a release directory is classified."""
    try:
        descriptor = parse_release_directory(release.resolve(), force_type.lower() if force_type else None)
    except ReleasePackError as e:
        e.display_to_user()
        sys.exit(1)

    table = Table(title=escape(descriptor.basename))
    table.add_column("Property")
    table.add_column("Value")
    table.add_row("Format tag", escape(descriptor.format_tag))
    table.add_row("Format", escape(descriptor.format_label))
    table.add_row("24-bit", "Yes" if descriptor.is_24bit else "No")
    table.add_row("MP3", "Yes" if descriptor.has_mp3 else "No")
    table.add_row("Media prefix", descriptor.media_prefix or "-")
    console.print(table)

    discs = Table(title="Discs")
    discs.add_column("Name")
    discs.add_column("Type")
    discs.add_column("Path")
    for disc in descriptor.discs:
        discs.add_row(escape(disc.name), disc.type.value, escape(disc.relative_path or "."))
    console.print(discs)


@cli.command("trackers")
@click.pass_context
def list_trackers(ctx: click.Context) -> None:
    """List configured trackers."""
    config: ReleasePackConfig = ctx.obj["config"]

    if not config.trackers:
        console.print("[yellow]No trackers configured[/yellow]")
        console.print("Run 'releasepack config init' to create a sample configuration.")
        return

    table = Table()
    table.add_column("Name")
    table.add_column("Default")
    table.add_column("Source")
    table.add_column("320")
    table.add_column("Extra discs")
    table.add_column("Excludes")

    for tracker in config.trackers.values():
        extras = [
            label
            for label, enabled in (
                ("BD", tracker.output_bluray),
                ("DVD", tracker.output_dvd),
                ("Photobook", tracker.output_photobook),
            )
            if enabled
        ]
        table.add_row(
            tracker.name,
            "[green]Yes[/green]" if tracker.default else "No",
            escape(tracker.source or "-"),
            "No" if tracker.no320 else "Yes",
            ", ".join(extras) or "-",
            escape(", ".join(tracker.exclude_file_patterns) or "-"),
        )

    console.print(table)


@cli.command()
@click.pass_context
def check(ctx: click.Context) -> None:
    """Check that the external tools are available."""
    config: ReleasePackConfig = ctx.obj["config"]

    missing = check_dependencies(config)
    if not missing:
        console.print("[green]✓ All external tools are available[/green]")
        return

    console.print("[red bold]🚫 Missing Dependencies[/red bold]")
    for dependency in missing:
        dependency.display_to_user()
    sys.exit(1)


@cli.command()
@click.option("--yes", "-y", is_flag=True, help="Archive without asking")
@click.pass_context
def archive(ctx: click.Context, yes: bool) -> None:
    """Move all working directories into a dated archive folder."""
    config: ReleasePackConfig = ctx.obj["config"]

    if not yes and not click.confirm(
        f"Move the contents of the working directories under {config.base_dir} into an archive?",
    ):
        return

    report = archive_working_directories(config)
    console.print(f"[bold]Archiving to:[/bold] [cyan]{report.archive_dir}[/cyan]\n")
    for name, count in report.moved.items():
        if count:
            console.print(f"  [green]✓[/green] {name.title()}: Moved {count} item(s)")
        else:
            console.print(f"  [dim]{name.title()}: No files to archive[/dim]")
        for failed in report.failed.get(name, []):
            console.print(f"  [yellow]⚠[/yellow] Failed to move {escape(failed)}")

    if report.failed:
        sys.exit(1)
    console.print(f"\n[green]Archive completed: {report.archive_dir}[/green]")


def get_state_color(state: ReleaseState) -> str:
    """Get color code for state display."""
    state_colors = {
        ReleaseState.COMPLETED: "green",
        ReleaseState.SKIPPED: "yellow",
        ReleaseState.FAILED: "red",
    }
    return state_colors.get(state, "white")


def format_outcome_table(outcomes: list[ReleaseOutcome]) -> Table:
    """Format batch outcomes into a summary table."""
    table = Table(title="Summary")
    table.add_column("Release")
    table.add_column("Status")
    table.add_column("Renditions")
    table.add_column("Torrents", justify="right")
    table.add_column("Error")

    for outcome in outcomes:
        state = outcome.result.state
        color = get_state_color(state)
        table.add_row(
            escape(outcome.release_dir.name),
            f"[{color}]{state.value.title()}[/{color}]",
            ", ".join(name for name, _ in outcome.result.variants()) or "-",
            str(len(outcome.torrents)),
            escape(outcome.error or ""),
        )

    return table


def main() -> None:
    """Entry point for the CLI."""
    cli()


if __name__ == "__main__":
    main()
