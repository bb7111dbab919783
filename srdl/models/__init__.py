"""
Data Models Layer.

This package contains the Pydantic configuration model and the dataclasses
describing a run's metadata and a download session's outcome.
"""

from .config import DownloadConfig
from .run import RunInfo
from .stats import DownloadReport

__all__ = ["DownloadConfig", "DownloadReport", "RunInfo"]
