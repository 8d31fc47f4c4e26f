from __future__ import annotations

import logging
from typing import Any, AsyncIterator, Dict, List, Optional, Set
from urllib.parse import quote

import httpx

from ..api_client import ApiClient, ApiConfig
from ..errors import MalformedMatch, RetriesExhausted, UpstreamRequestFailed
from ..logging_utils import log_json
from ..models import CanonicalMatch, DateWindow, PlayerIdentity
from ..normalize import from_riot
from .base import MatchProvider


MATCH_IDS_PATH = "/lol/match/v5/matches/by-puuid/{puuid}/ids"
MATCH_PATH = "/lol/match/v5/matches/{match_id}"
ACCOUNT_PATH = "/riot/account/v1/accounts/by-riot-id/{game_name}/{tag_line}"


class RiotMatchProvider(MatchProvider):
    """Match-v5 history: paged id listing plus one detail request per id."""

    name = "riot"

    def __init__(
        self,
        api: ApiClient,
        page_size: int = 100,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        super().__init__(logger)
        self.api = api
        self.page_size = page_size
        self._puuid_cache: Dict[str, str] = {}

    @classmethod
    def from_config(cls, section: Dict[str, Any], api_key: str, logger=None, **client_kwargs) -> "RiotMatchProvider":
        api = ApiClient(
            ApiConfig.from_section(section),
            headers={"X-Riot-Token": api_key},
            logger=logger,
            **client_kwargs,
        )
        return cls(api, page_size=section.get("page_size", 100), logger=logger)

    async def close(self) -> None:
        await self.api.close()

    async def resolve_puuid(self, identity: PlayerIdentity) -> str:
        if identity.puuid:
            return identity.puuid
        riot_id = identity.riot_id
        if riot_id is None:
            raise ValueError("a PUUID or a Riot ID is required to list matches")
        if riot_id not in self._puuid_cache:
            path = ACCOUNT_PATH.format(
                game_name=quote(identity.game_name, safe=""),
                tag_line=quote(identity.tag_line, safe=""),
            )
            account = await self.api.get_json(path)
            self._puuid_cache[riot_id] = account["puuid"]
            log_json(self._logger, "puuid_resolved", riot_id=riot_id)
        return self._puuid_cache[riot_id]

    async def get_match_ids(self, puuid: str, start: int = 0, count: int = 20) -> List[str]:
        path = MATCH_IDS_PATH.format(puuid=puuid)
        return await self.api.get_json(path, params={"start": start, "count": count})

    async def get_match(self, match_id: str) -> CanonicalMatch:
        detail = await self.api.get_json(MATCH_PATH.format(match_id=match_id))
        return from_riot(detail)

    async def iter_matches_in_window(
        self, identity: PlayerIdentity, window: DateWindow
    ) -> AsyncIterator[CanonicalMatch]:
        puuid = await self.resolve_puuid(identity)
        start = 0
        # Offsets shift when a game ends mid-scan, repeating ids across pages
        seen: Set[str] = set()
        while True:
            # A failure here is fatal: without ids there is nothing to page through
            match_ids = await self.get_match_ids(puuid, start=start, count=self.page_size)
            reached_older = False
            kept = 0
            # Classify the whole page before deciding to stop, so an in-range
            # record listed after an older one is not lost.
            for match_id in match_ids:
                if match_id in seen:
                    log_json(self._logger, "match_repeated", level=logging.DEBUG, match_id=match_id)
                    continue
                seen.add(match_id)
                try:
                    match = await self.get_match(match_id)
                except (UpstreamRequestFailed, RetriesExhausted, MalformedMatch, httpx.HTTPError) as exc:
                    log_json(
                        self._logger,
                        "match_fetch_failed",
                        level=logging.WARNING,
                        match_id=match_id,
                        error=str(exc),
                    )
                    continue
                if window.is_older(match.end_time):
                    reached_older = True
                    continue
                if window.is_newer(match.end_time):
                    continue
                kept += 1
                yield match
            log_json(
                self._logger,
                "scan_page",
                start=start,
                ids=len(match_ids),
                kept=kept,
                reached_older=reached_older,
            )
            if len(match_ids) < self.page_size or reached_older:
                return
            start += self.page_size
