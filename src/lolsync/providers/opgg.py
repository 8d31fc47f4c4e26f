from __future__ import annotations

import json
import logging
from contextlib import AsyncExitStack
from typing import Any, AsyncIterator, Dict, List, Optional

from mcp import ClientSession
from mcp.client.streamable_http import streamablehttp_client

from ..errors import MalformedMatch, UpstreamRequestFailed
from ..logging_utils import log_json
from ..models import CanonicalMatch, DateWindow, PlayerIdentity
from ..normalize import from_opgg
from .base import MatchProvider


DEFAULT_URL = "https://mcp-api.op.gg/mcp"
LIST_MATCHES_TOOL = "lol_list_summoner_matches"


class OpggMatchProvider(MatchProvider):
    """Recent games from the OP.GG MCP server.

    One tool call returns fully hydrated games, so there is no pagination and
    no per-match detail request; the window is applied after the fact.
    """

    name = "opgg"

    def __init__(
        self,
        region: str,
        url: str = DEFAULT_URL,
        session: Optional[Any] = None,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        super().__init__(logger)
        self.region = region
        self.url = url
        self._session = session
        self._stack: Optional[AsyncExitStack] = None

    @classmethod
    def from_config(cls, section: Dict[str, Any], logger=None) -> "OpggMatchProvider":
        return cls(region=section["region"], url=section.get("url", DEFAULT_URL), logger=logger)

    async def connect(self) -> None:
        if self._session is not None:
            return
        log_json(self._logger, "mcp_connect", url=self.url)
        stack = AsyncExitStack()
        try:
            read, write, _ = await stack.enter_async_context(streamablehttp_client(self.url))
            session = await stack.enter_async_context(ClientSession(read, write))
            await session.initialize()
        except BaseException:
            await stack.aclose()
            raise
        self._stack = stack
        self._session = session

    async def close(self) -> None:
        if self._stack is not None:
            await self._stack.aclose()
            self._stack = None
        self._session = None

    async def fetch_match_history(self, identity: PlayerIdentity) -> List[CanonicalMatch]:
        await self.connect()
        result = await self._session.call_tool(
            LIST_MATCHES_TOOL,
            {
                "game_name": identity.game_name,
                "tag_line": identity.tag_line,
                "region": self.region,
            },
        )
        content = getattr(result, "content", None) or []
        if getattr(result, "isError", False) or not content or content[0].type != "text":
            raise UpstreamRequestFailed(None, "invalid response from OP.GG MCP", _content_text(content))

        try:
            payload = json.loads(content[0].text)
            games = payload["data"]["game_history"]
        except (ValueError, KeyError, TypeError) as exc:
            raise UpstreamRequestFailed(None, f"unreadable OP.GG payload: {exc}", content[0].text) from exc
        champions = (payload.get("metadata_maps") or {}).get("champion_ids") or {}

        matches = []
        for game in games:
            try:
                matches.append(from_opgg(game, champions))
            except MalformedMatch as exc:
                log_json(self._logger, "opgg_game_skipped", level=logging.WARNING, error=str(exc))
        log_json(self._logger, "opgg_history_fetched", riot_id=identity.riot_id, games=len(games))
        return matches

    async def iter_matches_in_window(
        self, identity: PlayerIdentity, window: DateWindow
    ) -> AsyncIterator[CanonicalMatch]:
        matches = await self.fetch_match_history(identity)
        for match in self._filter_window(matches, window):
            yield match


def _content_text(content: List[Any]) -> Optional[str]:
    if content and getattr(content[0], "text", None):
        return content[0].text
    return None
