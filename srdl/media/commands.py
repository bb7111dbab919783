"""
Builds the yt-dlp and ffmpeg stages for a run from the configuration.
"""

from pathlib import Path

from srdl.models.config import DownloadConfig
from srdl.models.run import RunInfo
from srdl.pipeline import Stage, StreamMode

DOWNLOAD_STAGE = "yt-dlp"
ENCODE_STAGE = "ffmpeg"
STDIO_TARGET = "-"

# Extra flags some hardware encoders need to favour speed over compression.
ENCODER_EXTRA_ARGS = {
    "hevc_videotoolbox": ("-prio_speed", "true"),
}


class StageCommandResolver:
    """Turns a run and the configuration into concrete `Stage` invocations."""

    def __init__(self, config: DownloadConfig):
        self.config = config

    @property
    def output_dir(self) -> Path:
        return Path(self.config.output_dir)

    def output_path(self, run: RunInfo) -> Path:
        return self.output_dir / f"{run.filename_stem}.mp4"

    def download_path(self, run: RunInfo) -> Path:
        """Base path the two-step download writes to (yt-dlp may add an extension)."""
        return self.output_dir / f"dl-{run.filename_stem}"

    def _download_args(self, run: RunInfo, target: str) -> list[str]:
        return [
            run.vod_uri,
            "-f",
            self.config.format_selector,
            "-S",
            self.config.format_sort,
            "-N",
            str(self.config.fragments),
            "--progress",
            "--newline",
            "-q",
            "-o",
            target,
        ]

    def _encode_args(self, source: str, destination: Path, stats: bool) -> list[str]:
        encoder = self.config.resolved_encoder
        args = ["-hide_banner", "-loglevel", "error"]
        if stats:
            args.append("-stats")
        args += [
            "-i",
            source,
            "-c:v",
            encoder,
            "-filter:v",
            self.config.video_filter,
            "-c:a",
            self.config.audio_codec,
            *ENCODER_EXTRA_ARGS.get(encoder, ()),
            "-y",
            str(destination),
        ]
        return args

    def piped_stages(self, run: RunInfo) -> tuple[Stage, Stage]:
        """yt-dlp streaming to stdout, relayed into ffmpeg reading stdin."""
        download = Stage(
            name=DOWNLOAD_STAGE,
            executable=self.config.ytdlp_path,
            args=self._download_args(run, STDIO_TARGET),
            stdin=StreamMode.DEVNULL,
            stdout=StreamMode.PIPE,
            stderr=StreamMode.PIPE,
        )
        encode = Stage(
            name=ENCODE_STAGE,
            executable=self.config.ffmpeg_path,
            args=self._encode_args("pipe:0", self.output_path(run), stats=False),
            stdin=StreamMode.PIPE,
        )
        return download, encode

    def download_stage(self, run: RunInfo) -> Stage:
        """yt-dlp writing to an intermediate file."""
        return Stage(
            name=DOWNLOAD_STAGE,
            executable=self.config.ytdlp_path,
            args=self._download_args(run, str(self.download_path(run))),
            stdin=StreamMode.DEVNULL,
            stderr=StreamMode.PIPE,
        )

    def encode_stage(self, run: RunInfo, source: Path) -> Stage:
        """ffmpeg encoding an intermediate file, with its stats line drained."""
        return Stage(
            name=ENCODE_STAGE,
            executable=self.config.ffmpeg_path,
            args=self._encode_args(str(source), self.output_path(run), stats=True),
            stdin=StreamMode.DEVNULL,
            stderr=StreamMode.PIPE,
        )
