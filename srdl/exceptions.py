"""
Defines custom exceptions for the application to allow for more specific error handling.
"""


class SrdlError(Exception):
    """Base exception for all application-specific errors."""


class ConfigurationError(SrdlError):
    """Raised for issues related to configuration loading or validation."""


class MetadataError(SrdlError):
    """Raised when a run's metadata is missing a required field."""


class SpawnError(SrdlError):
    """Raised when a stage's executable cannot be launched."""

    def __init__(self, stage: str, reason: str):
        super().__init__(f"Could not start '{stage}': {reason}")
        self.stage = stage
        self.reason = reason


class StageFailedError(SrdlError):
    """Raised when a pipeline stage exits with a non-zero status."""

    def __init__(self, stage: str, exit_code: int):
        super().__init__(f"Stage '{stage}' exited with code {exit_code}.")
        self.stage = stage
        self.exit_code = exit_code


class PipelineIOError(SrdlError):
    """
    Raised when relaying data between stages fails for a reason other than
    cancellation, or when a process cannot be signalled.
    """


class PipelineCancelledError(SrdlError):
    """Raised when a run was aborted by the user."""


class OutputNotFoundError(SrdlError):
    """Raised when the download stage finished but its output file is missing."""


class FileIntegrityError(SrdlError):
    """Raised when an encoded file fails a post-encode integrity check."""
