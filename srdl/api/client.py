"""
Async client for the speedrun.com REST API (v1).
"""

import logging
import time
from typing import Any, Dict, Optional

import aiohttp

from srdl.exceptions import MetadataError
from srdl.models.run import RunInfo

log = logging.getLogger(__name__)


def _field(payload: Dict[str, Any], *path: Any) -> Any:
    """Walks `path` through nested dicts/lists, returning None on any miss."""
    node: Any = payload
    for key in path:
        try:
            node = node[key]
        except (KeyError, IndexError, TypeError):
            return None
    return node


def _required(payload: Dict[str, Any], label: str, *path: Any) -> str:
    value = _field(payload, *path)
    if not isinstance(value, str) or not value:
        dotted = ".".join(map(str, path))
        raise MetadataError(f"Run metadata has no {label} ({dotted}).")
    return value


def parse_run(payload: Dict[str, Any], run_id: str) -> RunInfo:
    """
    Extracts the fields the pipeline needs from a `runs/{id}` response embedded
    with players, game and category.

    Raises:
        MetadataError: If the run has no video or a required field is missing.
    """
    data = payload.get("data") or {}

    # Guest players carry a plain 'name' instead of a 'names' object.
    player = _field(data, "players", "data", 0, "names", "international") or _field(
        data, "players", "data", 0, "name"
    )
    if not player:
        raise MetadataError("Run metadata has no player name.")

    game_name = _field(data, "game", "data", "names", "twitch") or _field(
        data, "game", "data", "names", "international"
    )

    return RunInfo(
        run_id=data.get("id") or run_id,
        vod_uri=_required(data, "video link", "videos", "links", 0, "uri"),
        player=player,
        game=_required(data, "game abbreviation", "game", "data", "abbreviation"),
        game_name=game_name or "Unknown Game",
        category=_required(data, "category name", "category", "data", "name"),
    )


class SpeedrunAPIClient:
    """Minimal async client for the endpoints the downloader uses."""

    BASE_URL = "https://www.speedrun.com/api/v1/"

    def __init__(self, timeout: float = 30):
        self._timeout = timeout
        self._session: Optional[aiohttp.ClientSession] = None

    async def _initialize_session(self) -> None:
        """Ensures an active aiohttp session is available."""
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(
                headers={
                    "User-Agent": "srdl (+https://www.speedrun.com/api)",
                    "Accept": "application/json",
                },
                timeout=aiohttp.ClientTimeout(total=self._timeout, connect=10),
            )

    async def close(self) -> None:
        """Gracefully closes the aiohttp session."""
        if self._session and not self._session.closed:
            await self._session.close()

    async def __aenter__(self) -> "SpeedrunAPIClient":
        await self._initialize_session()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    async def api_call(self, endpoint: str, **params: Any) -> Dict[str, Any]:
        """Makes a GET request and returns the decoded JSON body."""
        await self._initialize_session()
        start_time = time.monotonic()
        try:
            async with self._session.get(self.BASE_URL + endpoint, params=params) as r:
                if r.status == 404:
                    raise MetadataError(f"speedrun.com has no resource '{endpoint}'.")
                r.raise_for_status()
                body = await r.json()
        except Exception as e:
            log.debug(f"API call to {endpoint} failed: {e}")
            raise

        duration_ms = (time.monotonic() - start_time) * 1000
        log.debug(f"API call to {endpoint} took {duration_ms:.0f} ms")
        return body

    async def fetch_run(self, run_id: str) -> RunInfo:
        payload = await self.api_call(
            f"runs/{run_id}", embed="players,game,category"
        )
        return parse_run(payload, run_id)
