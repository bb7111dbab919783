"""srdl: download and re-encode speedrun.com VODs through a supervised process pipeline."""

__version__ = "0.3.0"
