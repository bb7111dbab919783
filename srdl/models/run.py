"""
Data model for a speedrun and the fields the download pipeline needs from it.
"""

from dataclasses import dataclass

from srdl.utils.formatting import slug
from srdl.utils.path import sanitize_stem


@dataclass(frozen=True)
class RunInfo:
    """The subset of a speedrun.com run record used to fetch and name a VOD."""

    run_id: str
    vod_uri: str
    player: str
    game: str
    game_name: str
    category: str

    @property
    def filename_stem(self) -> str:
        """Destination stem, e.g. 'Player-sms-any-y8dwozoj'."""
        stem = f"{self.player}-{self.game}-{slug(self.category)}-{self.run_id}"
        return sanitize_stem(stem)

    @property
    def description(self) -> str:
        """Human-readable description with Rich markup for the console."""
        return (
            f"[green]{self.player}[/green] - [yellow]{self.game_name}[/yellow]"
            f" - [blue]{self.category}[/blue]"
        )
