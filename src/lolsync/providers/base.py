from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import AsyncIterator, Iterable, List, Optional

from ..logging_utils import log_json
from ..models import CanonicalMatch, DateWindow, PlayerIdentity


class MatchProvider(ABC):
    """Source of canonical matches for one player.

    Implementations yield matches newest-first and only those whose end time
    falls inside the requested window.
    """

    name = "base"

    def __init__(self, logger: Optional[logging.Logger] = None) -> None:
        self._logger = logger or logging.getLogger(__name__)

    @abstractmethod
    def iter_matches_in_window(
        self, identity: PlayerIdentity, window: DateWindow
    ) -> AsyncIterator[CanonicalMatch]:
        ...

    async def list_matches_in_window(
        self, identity: PlayerIdentity, window: DateWindow
    ) -> List[CanonicalMatch]:
        return [match async for match in self.iter_matches_in_window(identity, window)]

    async def close(self) -> None:
        return None

    def _filter_window(self, matches: Iterable[CanonicalMatch], window: DateWindow) -> List[CanonicalMatch]:
        kept = [m for m in matches if window.contains(m.end_time)]
        log_json(
            self._logger,
            "window_filtered",
            provider=self.name,
            kept=len(kept),
            start=window.start.isoformat(),
            end=window.end.isoformat(),
        )
        return kept
