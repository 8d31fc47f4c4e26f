from __future__ import annotations

import asyncio
import logging
from typing import Any, Awaitable, Callable, Iterable, Optional, Sequence, Set

import httpx

from .errors import CreationFailed, ParticipantNotFound
from .logging_utils import log_json
from .models import CanonicalMatch, Participant, PlayerIdentity, SyncReport, TimeEntry, TimeEntryRequest
from .utils import format_duration, format_kda


MARKER_PREFIX = "[Match:"


def marker_for(match_id: str) -> str:
    return f"{MARKER_PREFIX}{match_id}]"


def is_match_synced(match_id: str, existing: Iterable[TimeEntry]) -> bool:
    marker = marker_for(match_id)
    return any(marker in entry.description for entry in existing)


def count_marked(existing: Iterable[TimeEntry]) -> int:
    return sum(1 for entry in existing if MARKER_PREFIX in entry.description)


def find_player(match: CanonicalMatch, identity: PlayerIdentity) -> Participant:
    for participant in match.participants:
        if identity.matches(participant):
            return participant
    raise ParticipantNotFound(match.match_id)


def build_description(match: CanonicalMatch, player: Participant) -> str:
    result = "Win" if player.win else "Loss"
    emoji = "✅" if player.win else "❌"
    kda = format_kda(player.kills, player.deaths, player.assists)
    hours, minutes = format_duration(match.duration_seconds)
    return (
        f"{emoji} {player.champion_name} - {result} ({kda}) | {match.queue_name} | "
        f"{hours}h {minutes}m {marker_for(match.match_id)}"
    )


def build_entry(match: CanonicalMatch, player: Participant, project_id: Optional[str] = None) -> TimeEntryRequest:
    return TimeEntryRequest(
        start=match.start_time,
        end=match.end_time,
        description=build_description(match, player),
        billable=False,
        project_id=project_id,
    )


class SyncReconciler:
    """Create one time entry per match that has no marker in the destination yet.

    Matches are handled one at a time in the order given. A failure on one
    match is counted and the next match is processed as usual.
    """

    def __init__(
        self,
        destination: Any,
        identity: PlayerIdentity,
        project_id: Optional[str] = None,
        create_delay: float = 0.0,
        throttle_cooldown: float = 0.2,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self.destination = destination
        self.identity = identity
        self.project_id = project_id
        self.create_delay = create_delay
        self.throttle_cooldown = throttle_cooldown
        self._sleep = sleep
        self._logger = logger or logging.getLogger(__name__)

    async def reconcile(
        self,
        matches: Sequence[CanonicalMatch],
        existing: Sequence[TimeEntry],
        report: Optional[SyncReport] = None,
    ) -> SyncReport:
        report = report or SyncReport()
        report.matches_found = len(matches)
        report.existing_marked = count_marked(existing)
        # ids created during this run; a repeated match must not be created twice
        created: Set[str] = set()
        for match in matches:
            await self._process(match, existing, created, report)
        log_json(self._logger, "reconcile_done", **report.as_dict())
        return report

    async def _process(
        self,
        match: CanonicalMatch,
        existing: Sequence[TimeEntry],
        created: Set[str],
        report: SyncReport,
    ) -> None:
        if match.match_id in created or is_match_synced(match.match_id, existing):
            report.skipped += 1
            log_json(self._logger, "match_skipped", level=logging.DEBUG, match_id=match.match_id)
            return

        try:
            player = find_player(match, self.identity)
        except ParticipantNotFound as exc:
            report.record_failure(match.match_id, str(exc))
            log_json(self._logger, "participant_not_found", level=logging.WARNING, match_id=match.match_id)
            return

        entry = build_entry(match, player, self.project_id)
        try:
            await self.destination.create_time_entry(entry)
        except CreationFailed as exc:
            report.record_failure(match.match_id, str(exc))
            log_json(
                self._logger,
                "entry_create_failed",
                level=logging.WARNING,
                match_id=match.match_id,
                **exc.as_dict(),
            )
            if exc.throttled:
                await self._sleep(self.throttle_cooldown)
            return
        except httpx.HTTPError as exc:
            report.record_failure(match.match_id, str(exc))
            log_json(
                self._logger,
                "entry_create_failed",
                level=logging.WARNING,
                match_id=match.match_id,
                error=str(exc),
            )
            return

        report.synced += 1
        created.add(match.match_id)
        log_json(self._logger, "match_synced", match_id=match.match_id, description=entry.description)
        if self.create_delay > 0:
            await self._sleep(self.create_delay)
