"""
Pydantic model for application configuration.
Provides robust validation for all settings.
"""

import sys

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

# Hardware HEVC encoder per host platform; anything else falls back to software.
ENCODER_MAP = {
    "darwin": "hevc_videotoolbox",
    "win32": "hevc_nvenc",
}
SOFTWARE_ENCODER = "libx265"

PIPELINE_MODES = ("pipe", "two-step")


def default_encoder(platform: str | None = None) -> str:
    """Returns the encoder used on `platform` (defaults to the running host)."""
    return ENCODER_MAP.get(platform or sys.platform, SOFTWARE_ENCODER)


class DownloadConfig(BaseModel):
    """A validated configuration model for the application."""

    model_config = ConfigDict(validate_assignment=True, str_strip_whitespace=True)

    # Pipeline Settings
    mode: str = "pipe"
    output_dir: str = "."
    keep_download: bool = True
    verify_output: bool = True
    dry_run: bool = False

    # Tools
    ytdlp_path: str = "yt-dlp"
    ffmpeg_path: str = "ffmpeg"

    # Download Stage
    format_selector: str = "b"
    format_sort: str = "filesize:1G"
    fragments: int = 8

    # Encode Stage
    encoder: str = ""
    video_filter: str = "fps=30, scale=1280:-1"
    audio_codec: str = "copy"

    # Supervision
    poll_interval_ms: int = 100
    grace_period_ms: int = 1000
    relay_buffer_kb: int = 64
    json_log: bool = False

    # Internal fields not loaded from INI file
    config_path: str = Field(..., repr=False)
    source_url: str = Field(default="", repr=False)

    @field_validator("mode")
    @classmethod
    def validate_mode(cls, v: str) -> str:
        v = v.lower()
        if v not in PIPELINE_MODES:
            raise ValueError(f"Mode must be one of: {', '.join(PIPELINE_MODES)}.")
        return v

    @field_validator("fragments")
    @classmethod
    def validate_fragments(cls, v: int) -> int:
        """Ensures a reasonable number of concurrent fragment downloads."""
        if v < 1 or v > 32:
            raise ValueError("Fragments must be between 1 and 32.")
        return v

    @field_validator("poll_interval_ms")
    @classmethod
    def validate_poll_interval(cls, v: int) -> int:
        if v < 10 or v > 1000:
            raise ValueError("Poll interval must be between 10 and 1000 ms.")
        return v

    @field_validator("grace_period_ms")
    @classmethod
    def validate_grace_period(cls, v: int) -> int:
        if v < 100 or v > 10000:
            raise ValueError("Grace period must be between 100 and 10000 ms.")
        return v

    @field_validator("relay_buffer_kb")
    @classmethod
    def validate_relay_buffer(cls, v: int) -> int:
        if v < 4 or v > 4096:
            raise ValueError("Relay buffer must be between 4 and 4096 KB.")
        return v

    @field_validator("ytdlp_path", "ffmpeg_path", "format_selector", "audio_codec")
    @classmethod
    def validate_not_empty(cls, v: str) -> str:
        if not v:
            raise ValueError("Value cannot be empty.")
        return v

    @model_validator(mode="after")
    def validate_grace_covers_polling(self) -> "DownloadConfig":
        """The forced exit must leave the supervisor at least one poll to react."""
        if self.grace_period_ms <= self.poll_interval_ms:
            raise ValueError(
                "grace_period_ms must be longer than poll_interval_ms so child "
                "processes can be killed before the forced exit."
            )
        return self

    @property
    def resolved_encoder(self) -> str:
        return self.encoder or default_encoder()

    @property
    def poll_interval(self) -> float:
        return self.poll_interval_ms / 1000

    @property
    def grace_period(self) -> float:
        return self.grace_period_ms / 1000

    @property
    def relay_buffer_size(self) -> int:
        return self.relay_buffer_kb * 1024

    @classmethod
    def get_ini_keys(cls) -> set[str]:
        """Returns a set of all keys that are expected in the INI file."""
        internal_fields = {"config_path", "source_url", "dry_run"}
        return {key for key in cls.model_fields if key not in internal_fields}
