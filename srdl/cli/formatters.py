"""
Functions for formatting and displaying data in the console using Rich.
"""

from pathlib import Path
from typing import Any

from rich import box
from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from srdl.models.config import DownloadConfig
from srdl.models.stats import DownloadReport
from srdl.utils.formatting import format_duration, format_size


def format_error_with_suggestions(
    error: Exception, context: dict | None = None
) -> Panel:
    """Formats an error with actionable suggestions into a Rich Panel."""
    error_type = type(error).__name__
    error_msg = str(error)

    suggestions_map = {
        "SpawnError": [
            "• Make sure yt-dlp and ffmpeg are installed and on your PATH.",
            "• Set `ytdlp_path` / `ffmpeg_path` in the config to absolute paths.",
            "• Run `srdl diagnose` to check your tools.",
        ],
        "StageFailedError": [
            "• Run the command with -vv to see the tool's last status line.",
            "• yt-dlp failures are often fixed by updating it (`yt-dlp -U`).",
            "• An ffmpeg failure may mean the encoder is unavailable here; "
            "try `--encoder libx265`.",
        ],
        "PipelineIOError": [
            "• The stream between yt-dlp and ffmpeg broke unexpectedly.",
            "• Check free disk space in the output directory.",
            "• Try `--mode two-step` to download to a file first.",
        ],
        "MetadataError": [
            "• Check that the URL points to a single run.",
            "• The run may have no video attached.",
        ],
        "ConfigurationError": [
            "• Check the values in your config file (`srdl --show-config`).",
            "• Run `srdl init --force` to write a fresh default config.",
        ],
        "OutputNotFoundError": [
            "• yt-dlp may have picked an unexpected container extension.",
            "• Re-run with -vv and look at the download stage's output.",
        ],
        "FileIntegrityError": [
            "• The encoded file looks truncated or empty.",
            "• Re-run the download; use `--no-verify` to keep the file anyway.",
        ],
        "ClientResponseError": [
            "• A network connection issue occurred.",
            "• The speedrun.com API might be temporarily unavailable.",
            "• Please try again in a few minutes.",
        ],
        "TimeoutError": [
            "• The speedrun.com API did not answer in time.",
            "• Check your internet connection.",
        ],
    }

    suggestions = suggestions_map.get(
        error_type, ["• Run the command with -vv for detailed logs."]
    )

    error_text = Text()
    error_text.append(f"{error_type}: ", style="bold red")
    error_text.append(error_msg)

    suggestion_text = Text("\n".join(suggestions))

    content = Table.grid(padding=(1, 0))
    content.add_row(error_text)
    content.add_row()
    content.add_row(Text("Suggestions", style="bold yellow"))
    content.add_row(suggestion_text)

    if context:
        content.add_row()
        content.add_row(Text(f"Context: {context}", style="dim"))

    return Panel(
        content,
        title="[bold red]An Error Occurred[/bold red]",
        border_style="red",
        expand=False,
    )


def print_config(config_path: Path, config_data: dict[str, Any]):
    """Displays the current configuration."""
    console = Console()
    content = ""
    for key, value in sorted(config_data.items()):
        content += f"{key} = {value}\n"

    console.print(
        Panel(
            content.strip(),
            title=f"Configuration ([dim]{config_path}[/dim])",
            border_style="cyan",
        )
    )


def print_validation_table(config: DownloadConfig):
    """Displays a summary of the current settings."""
    console = Console()
    table = Table(show_header=False, box=None, padding=(0, 2))
    table.add_column(style="bold cyan")
    table.add_column()

    encoder = config.resolved_encoder
    if not config.encoder:
        encoder += " [dim](platform default)[/dim]"

    table.add_row("Mode:", f"[green]{config.mode}[/green]")
    table.add_row("Output Directory:", f"[dim]{config.output_dir}[/dim]")
    table.add_row("Encoder:", encoder)
    table.add_row("Video Filter:", config.video_filter)
    table.add_row("Fragments:", str(config.fragments))
    table.add_row("Poll Interval:", f"{config.poll_interval_ms} ms")
    table.add_row("Grace Period:", f"{config.grace_period_ms} ms")
    table.add_row("Relay Buffer:", f"{config.relay_buffer_kb} KB")
    table.add_row(
        "Verify Output:", "✓ Enabled" if config.verify_output else "✗ Disabled"
    )

    console.print(
        Panel(
            table,
            title="[bold green]✓ Validated Settings[/bold green]",
            border_style="green",
        )
    )


def print_summary_panel(report: DownloadReport):
    """Displays the final summary of a download session."""
    console = Console()

    stats_table = Table(show_header=False, box=None, padding=(0, 2))
    stats_table.add_column(style="bold cyan", justify="right", width=16)
    stats_table.add_column(style="white", justify="left")

    stats_table.add_row("Run:", f"[bold]{report.run_id}[/bold]")
    stats_table.add_row("Mode:", report.mode)
    if report.output_path:
        stats_table.add_row("Output:", f"[green]{report.output_path}[/green]")
    if report.intermediate_path:
        stats_table.add_row("Download:", f"[dim]{report.intermediate_path}[/dim]")

    if not report.dry_run:
        stats_table.add_row("", "")  # Spacer
        stats_table.add_row("File Size:", f"[cyan]{format_size(report.output_size)}[/cyan]")
        if report.bytes_relayed:
            stats_table.add_row(
                "Streamed:", f"[cyan]{format_size(report.bytes_relayed)}[/cyan]"
            )
            if report.duration_s > 0:
                speed = int(report.bytes_relayed / report.duration_s)
                stats_table.add_row(
                    "Avg. Speed:", f"[magenta]{format_size(speed)}/s[/magenta]"
                )
        stats_table.add_row(
            "Time Elapsed:", f"[blue]{format_duration(report.duration_s)}[/blue]"
        )

    if report.dry_run:
        title = "🔍 [bold]Dry Run Summary[/bold]"
        border_color = "yellow"
    else:
        title = "🎬 [bold]Download Complete![/bold]"
        border_color = "green"

    console.print()
    console.print(
        Panel(
            stats_table,
            title=title,
            border_style=border_color,
            box=box.DOUBLE,
            expand=False,
            padding=(1, 2),
        )
    )
    console.print()
