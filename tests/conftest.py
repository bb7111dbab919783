"""
Shared fixtures: child stages are small Python programs run with the current
interpreter, so the suite needs neither yt-dlp nor ffmpeg.
"""

import asyncio
import sys

import pytest

from srdl.models.config import DownloadConfig
from srdl.models.run import RunInfo
from srdl.pipeline import CancellationSignal


@pytest.fixture(autouse=True)
def _reset_event_loop_policy():
    """Ensure subprocess support on Windows."""
    if sys.platform == "win32":
        asyncio.set_event_loop_policy(asyncio.WindowsProactorEventLoopPolicy())
    yield


@pytest.fixture
def cancel() -> CancellationSignal:
    return CancellationSignal()


@pytest.fixture
def config(tmp_path) -> DownloadConfig:
    return DownloadConfig(
        config_path=str(tmp_path / "config"),
        output_dir=str(tmp_path / "out"),
        encoder="libx265",
    )


@pytest.fixture
def run_info() -> RunInfo:
    return RunInfo(
        run_id="y8dwozoj",
        vod_uri="https://www.twitch.tv/videos/123456789",
        player="Runner",
        game="sms",
        game_name="Super Mario Sunshine",
        category="Any%",
    )
