"""
speedrun.com API Layer.

This package handles all communication with the speedrun.com REST API.
"""

from .client import SpeedrunAPIClient, parse_run

__all__ = ["SpeedrunAPIClient", "parse_run"]
