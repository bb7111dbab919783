"""
Provides methods for checking the integrity of encoded media files.
"""

import logging

from mutagen import MutagenError
from mutagen.mp4 import MP4, MP4StreamInfoError

log = logging.getLogger(__name__)


class FileIntegrityChecker:
    """A collection of static methods for validating media file integrity."""

    @staticmethod
    def check_mp4(filepath: str) -> bool:
        """
        Performs a basic integrity check on an MP4 file.

        Checks if the file can be opened by mutagen and has a positive duration,
        which catches encodes cut short by a truncated input stream.

        Args:
            filepath: Path to the MP4 file.

        Returns:
            True if the file appears to be a valid MP4 file, False otherwise.
        """
        try:
            video = MP4(filepath)
            if video.info and video.info.length > 0:
                return True
            log.warning(
                f"MP4 integrity check failed for '{filepath}': No valid stream info."
            )
            return False
        except MP4StreamInfoError:
            log.warning(
                f"MP4 integrity check failed for '{filepath}': Missing movie header."
            )
            return False
        except MutagenError as e:
            log.debug(f"MP4 check failed for '{filepath}' with unexpected error: {e}")
            return False
