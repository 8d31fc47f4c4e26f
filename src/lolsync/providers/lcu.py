from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, AsyncIterator, Dict, List, Optional

from ..api_client import ApiClient, ApiConfig
from ..errors import LockfileNotFound, MalformedMatch
from ..logging_utils import log_json
from ..models import CanonicalMatch, DateWindow, PlayerIdentity
from ..normalize import from_lcu
from .base import MatchProvider


MATCH_HISTORY_PATH = "/lol-match-history/v1/products/lol/current-summoner/matches"
LCU_HOST = "127.0.0.1"


@dataclass(frozen=True)
class LcuCredentials:
    port: int
    password: str
    protocol: str = "https"
    host: str = LCU_HOST

    @property
    def base_url(self) -> str:
        return f"{self.protocol}://{self.host}:{self.port}"


def read_lockfile(path: str) -> LcuCredentials:
    """Parse the League client lockfile (``name:pid:port:password:protocol``)."""
    try:
        content = Path(path).read_text(encoding="utf-8").strip()
    except OSError as exc:
        raise LockfileNotFound(path) from exc
    parts = content.split(":")
    if len(parts) < 4:
        raise LockfileNotFound(path)
    protocol = parts[4] if len(parts) > 4 and parts[4] else "https"
    return LcuCredentials(port=int(parts[2]), password=parts[3], protocol=protocol)


class LcuMatchProvider(MatchProvider):
    """Match history of the summoner logged into the local League client."""

    name = "lcu"

    def __init__(
        self,
        api: ApiClient,
        platform_id: str = "EUN1",
        count: int = 50,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        super().__init__(logger)
        self.api = api
        self.platform_id = platform_id
        self.count = count

    @classmethod
    def from_config(cls, section: Dict[str, Any], lockfile: str, logger=None, **client_kwargs) -> "LcuMatchProvider":
        creds = read_lockfile(lockfile)
        cfg = ApiConfig(
            base_url=creds.base_url,
            timeout_seconds=section.get("timeout_seconds", 10),
            max_attempts=section.get("max_attempts", 3),
        )
        # The client serves a self-signed certificate
        api = ApiClient(cfg, auth=("riot", creds.password), verify=False, logger=logger, **client_kwargs)
        log_json(logger or logging.getLogger(__name__), "lcu_found", port=creds.port)
        return cls(
            api,
            platform_id=section.get("platform_id", "EUN1"),
            count=section.get("count", 50),
            logger=logger,
        )

    async def close(self) -> None:
        await self.api.close()

    async def fetch_match_history(self) -> List[CanonicalMatch]:
        payload = await self.api.get_json(MATCH_HISTORY_PATH, params={"begIndex": 0, "endIndex": self.count})
        games = ((payload or {}).get("games") or {}).get("games") or []
        matches = []
        for game in games:
            try:
                matches.append(from_lcu(game, self.platform_id))
            except MalformedMatch as exc:
                log_json(self._logger, "lcu_game_skipped", level=logging.WARNING, error=str(exc))
        log_json(self._logger, "lcu_history_fetched", games=len(games))
        return matches

    async def iter_matches_in_window(
        self, identity: PlayerIdentity, window: DateWindow
    ) -> AsyncIterator[CanonicalMatch]:
        # The client only serves the logged-in summoner; identity is applied
        # later when the reconciler looks for the player in each game.
        matches = await self.fetch_match_history()
        for match in self._filter_window(matches, window):
            yield match
