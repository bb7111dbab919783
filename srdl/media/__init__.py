"""
Media Processing Layer.

This package builds the external tool invocations for a run and validates
the files they produce.
"""

from .commands import StageCommandResolver
from .integrity import FileIntegrityChecker

__all__ = ["FileIntegrityChecker", "StageCommandResolver"]
