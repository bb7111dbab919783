"""
Utilities for handling file paths and run URL parsing.
"""

import re
from pathlib import Path

from pathvalidate import sanitize_filename

from srdl.exceptions import OutputNotFoundError

# yt-dlp appends the container extension when it merges formats.
DOWNLOAD_EXTENSIONS = ("mkv", "mp4", "webm")

_RUN_ID = re.compile(r"^[\w-]+$")


def parse_run_id(url: str) -> str | None:
    """
    Extracts the run ID from a speedrun.com run URL or returns a bare ID as-is.

    'https://www.speedrun.com/sms/run/y8dwozoj' -> 'y8dwozoj'
    """
    candidate = url.strip().split("?", 1)[0].split("#", 1)[0].rstrip("/")
    candidate = candidate.rsplit("/", 1)[-1]
    if candidate and _RUN_ID.match(candidate):
        return candidate
    return None


def sanitize_stem(stem: str) -> str:
    """Makes a filename stem safe on every platform."""
    return sanitize_filename(stem, platform="universal", replacement_text="_")


def create_dir(directory_path: Path) -> None:
    """Creates a directory if it does not already exist."""
    directory_path.mkdir(parents=True, exist_ok=True)


def locate_download(base_path: Path) -> Path:
    """
    Finds the file the download stage wrote for `base_path`.

    Raises:
        OutputNotFoundError: If neither the bare path nor a known container
        extension exists.
    """
    if base_path.is_file():
        return base_path
    for ext in DOWNLOAD_EXTENSIONS:
        candidate = base_path.with_name(f"{base_path.name}.{ext}")
        if candidate.is_file():
            return candidate
    raise OutputNotFoundError(f"{base_path}: Output file not found")
