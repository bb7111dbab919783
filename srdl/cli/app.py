"""
Defines the command-line interface for the application using Typer.
"""

import asyncio
import logging
import os
import shutil
from pathlib import Path

import typer
from rich.console import Console
from rich.logging import RichHandler

from srdl import __version__
from srdl.api.client import SpeedrunAPIClient
from srdl.core.download_manager import DownloadManager
from srdl.exceptions import PipelineCancelledError, SrdlError
from srdl.models.config import PIPELINE_MODES
from srdl.pipeline import CancellationSignal, interrupt_handler
from srdl.pipeline.cancellation import CANCELLED_EXIT_CODE
from srdl.storage.config_manager import ConfigManager
from srdl.utils.path import parse_run_id
from srdl.utils.structured_logger import create_event_logger

from .formatters import (
    format_error_with_suggestions,
    print_config,
    print_summary_panel,
    print_validation_table,
)
from .progress_manager import StatusDisplay

console = Console()

logging.basicConfig(
    level="INFO",
    format="%(message)s",
    datefmt="[%X]",
    handlers=[
        RichHandler(
            console=console,
            rich_tracebacks=True,
            show_path=False,
            show_level=False,
            markup=True,
        )
    ],
)
log = logging.getLogger("srdl")

app = typer.Typer(
    name="srdl",
    help=(
        "Download a speedrun.com run's video and re-encode it with ffmpeg. Use"
        " 'srdl <command> --help' for more info."
    ),
    rich_markup_mode="rich",
    pretty_exceptions_show_locals=False,
    add_completion=False,
)


def get_config_dir() -> Path:
    if os.name == "nt":
        base_dir = Path(os.getenv("APPDATA", "~\\AppData\\Roaming"))
    else:
        base_dir = Path(os.getenv("XDG_CONFIG_HOME", "~/.config"))
    return base_dir.expanduser() / "srdl"


CONFIG_DIR = get_config_dir()
CONFIG_FILE = CONFIG_DIR / "config.ini"


@app.callback(invoke_without_command=True)
def main_callback(
    ctx: typer.Context,
    verbose: int = typer.Option(
        0,
        "--verbose",
        "-v",
        count=True,
        help="Increase logging verbosity (-vv for debug).",
    ),
    version: bool = typer.Option(
        False, "--version", help="Show version and exit.", is_eager=True
    ),
    show_config: bool = typer.Option(
        False, "--show-config", help="Display the current configuration."
    ),
):
    """Speedrun VOD Downloader CLI"""
    if version:
        console.print(f"[bold]srdl[/bold] version [cyan]{__version__}[/cyan]")
        raise typer.Exit()

    log_level = "INFO"
    if verbose >= 2:
        log_level = "DEBUG"
    logging.getLogger("srdl").setLevel(log_level)

    if show_config:
        if not CONFIG_FILE.is_file():
            console.print(
                "[red]✗ Config file not found.[/] Run [cyan]srdl init[/cyan] first."
            )
            raise typer.Exit(code=1)
        config_manager = ConfigManager(CONFIG_FILE)
        config = config_manager.load_config()
        print_config(CONFIG_FILE, {k: getattr(config, k) for k in config.get_ini_keys()})
        raise typer.Exit()

    if ctx.invoked_subcommand is None:
        console.print(ctx.get_help())


@app.command()
def init(
    force: bool = typer.Option(
        False, "--force", "-f", help="Overwrite an existing config without asking."
    ),
):
    """Write a configuration file with every setting at its default."""
    if (
        CONFIG_FILE.exists()
        and not force
        and not typer.confirm("Configuration file already exists. Overwrite it?")
    ):
        raise typer.Abort()

    config_manager = ConfigManager(CONFIG_FILE)
    config_manager.save_new_config()
    console.print(f"\n[bold green]✓ Configuration saved to '{CONFIG_FILE}'[/bold green]")
    console.print("Ready to download! Try: [cyan]srdl download <RUN URL>[/cyan]")


@app.command(name="download")
def download_command(
    url: str = typer.Argument(..., help="A speedrun.com run URL or bare run id."),
    mode: str | None = typer.Option(
        None,
        "-m",
        "--mode",
        help=(
            "'pipe' streams yt-dlp straight into ffmpeg; 'two-step' downloads to"
            " a file first, then encodes it."
        ),
    ),
    output_dir: str | None = typer.Option(
        None, "-o", "--output-dir", help="Directory the encoded file is written to."
    ),
    encoder: str | None = typer.Option(
        None,
        "-e",
        "--encoder",
        help="ffmpeg video encoder (default depends on the platform).",
    ),
    keep_download: bool | None = typer.Option(
        None,
        "--keep-download/--no-keep-download",
        help="Keep the intermediate file in two-step mode.",
    ),
    verify_output: bool | None = typer.Option(
        None,
        "--verify/--no-verify",
        help="Check the encoded file with mutagen after the run.",
    ),
    json_log: bool | None = typer.Option(
        None,
        "--json-log/--no-json-log",
        help="Write pipeline events as JSON lines to the config's logs directory.",
    ),
    dry_run: bool = typer.Option(
        False,
        "--dry-run",
        help="Print the commands that would run without spawning anything.",
    ),
):
    """Download and encode a speedrun.com run."""
    run_id = parse_run_id(url)
    if run_id is None:
        console.print(f"[red]✗ '{url}' is not a valid run URL or id.[/red]")
        raise typer.Exit(code=1)

    if mode is not None and mode not in PIPELINE_MODES:
        console.print(
            f"[red]✗ Unknown mode '{mode}'.[/red] "
            f"Choose one of: {', '.join(PIPELINE_MODES)}"
        )
        raise typer.Exit(code=1)

    cli_options = {
        key: value
        for key, value in {
            "source_url": url,
            "mode": mode,
            "output_dir": output_dir,
            "encoder": encoder,
            "keep_download": keep_download,
            "verify_output": verify_output,
            "json_log": json_log,
        }.items()
        if value is not None
    }
    cli_options["dry_run"] = dry_run

    try:
        config = ConfigManager(CONFIG_FILE).load_config(cli_options)
    except SrdlError as e:
        console.print(format_error_with_suggestions(e))
        raise typer.Exit(code=1) from e

    base_logger, events = create_event_logger(
        CONFIG_DIR / "logs" if config.json_log else None, enable_json=config.json_log
    )
    base_logger.set_session_context(run_id=run_id, mode=config.mode)
    cancel = CancellationSignal()
    manager: DownloadManager | None = None

    async def _download_async():
        nonlocal manager
        async with SpeedrunAPIClient() as api_client:
            run = await api_client.fetch_run(run_id)

        console.print(f"[bold cyan]🎬 Downloading[/bold cyan] {run.description}")
        async with StatusDisplay(console=console, dry_run=config.dry_run) as display:
            manager = DownloadManager(config, cancel, display, events)
            return await manager.process(run)

    try:
        with interrupt_handler(cancel, config.grace_period):
            report = asyncio.run(_download_async())
    except PipelineCancelledError as e:
        console.print("\n[yellow]⚠️  Download cancelled by user.[/yellow]")
        raise typer.Exit(code=CANCELLED_EXIT_CODE) from e
    except SrdlError as e:
        console.print(format_error_with_suggestions(e))
        raise typer.Exit(code=1) from e
    finally:
        if manager is not None and manager.report is not None and not config.dry_run:
            manager.save_session_history(manager.report)
        if base_logger.json_log_path:
            log.debug(f"Pipeline events written to '{base_logger.json_log_path}'.")
        base_logger.close()

    print_summary_panel(report)


@app.command()
def validate():
    """Validate the current configuration."""
    try:
        config_manager = ConfigManager(CONFIG_FILE)
        config = config_manager.load_config()
        print_validation_table(config)
    except SrdlError as e:
        console.print(f"[red]✗ Configuration is invalid: {e}[/red]")
        raise typer.Exit(code=1) from e


@app.command()
def diagnose():
    """Diagnose common configuration, tool and connectivity issues."""
    console.print("\n[bold cyan]Running diagnostics...[/bold cyan]\n")
    issues_found = False
    if CONFIG_FILE.is_file():
        console.print(f"[green]✓[/] Config file exists at: [dim]{CONFIG_FILE}[/dim]")
    else:
        console.print(
            "[yellow]![/] No config file, using defaults. "
            "Run [cyan]srdl init[/cyan] to create one."
        )

    try:
        config = ConfigManager(CONFIG_FILE).load_config()
        console.print("[green]✓[/] Configuration is valid and can be loaded.")
    except SrdlError as e:
        console.print(f"[red]✗ Configuration validation failed: {e}[/red]")
        raise typer.Exit(code=1) from e

    for name, executable in (("yt-dlp", config.ytdlp_path), ("ffmpeg", config.ffmpeg_path)):
        found = shutil.which(executable)
        if found:
            console.print(f"[green]✓[/] {name} found at: [dim]{found}[/dim]")
        else:
            console.print(f"[red]✗ {name} not found[/] (looked for '{executable}').")
            issues_found = True

    console.print(f"[green]✓[/] Video encoder: {config.resolved_encoder}")
    console.print("\n[dim]Testing connectivity to speedrun.com...[/dim]")

    async def test_connection():
        import aiohttp

        try:
            timeout = aiohttp.ClientTimeout(total=10)
            async with (
                aiohttp.ClientSession(timeout=timeout) as session,
                session.get(SpeedrunAPIClient.BASE_URL) as resp,
            ):
                if resp.status == 200:
                    console.print("[green]✓[/] Successfully connected to speedrun.com.")
                    return True
                console.print(
                    "[red]✗ Could not connect to speedrun.com "
                    f"(Status: {resp.status}).[/red]"
                )
                return False
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            console.print(f"[red]✗ Connection test failed: {e}[/red]")
            return False

    if not asyncio.run(test_connection()):
        issues_found = True
    console.print()
    if not issues_found:
        console.print(
            "[bold green]✓ All checks passed! Your setup looks good.[/bold green]\n"
        )
    else:
        console.print(
            "[bold red]✗ Some issues were found. "
            "Please review the messages above.[/bold red]\n"
        )
        raise typer.Exit(code=1)
