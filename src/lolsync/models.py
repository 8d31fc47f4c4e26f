from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional, Tuple

from .utils import to_iso_z


@dataclass(frozen=True)
class Participant:
    player_id: str
    display_name: str
    champion_name: str
    win: bool
    kills: int = 0
    deaths: int = 0
    assists: int = 0
    minions: int = 0
    gold: int = 0
    champion_id: Optional[int] = None
    team_id: Optional[int] = None


@dataclass(frozen=True)
class CanonicalMatch:
    match_id: str
    queue_id: int
    game_mode: str
    queue_name: str
    end_time: datetime
    duration_seconds: int
    participants: Tuple[Participant, ...] = ()

    @property
    def start_time(self) -> datetime:
        return self.end_time - timedelta(seconds=self.duration_seconds)

    @property
    def marker(self) -> str:
        return f"[Match:{self.match_id}]"


@dataclass(frozen=True)
class PlayerIdentity:
    """The player whose games are synced.

    Providers key participants either by PUUID or by Riot ID (``name#tag``);
    ``matches`` accepts either form.
    """

    puuid: Optional[str] = None
    game_name: Optional[str] = None
    tag_line: Optional[str] = None

    @property
    def riot_id(self) -> Optional[str]:
        if not self.game_name or not self.tag_line:
            return None
        return f"{self.game_name}#{self.tag_line}"

    def matches(self, participant: Participant) -> bool:
        if self.puuid and participant.player_id == self.puuid:
            return True
        riot_id = self.riot_id
        if riot_id is None:
            return False
        riot_id = riot_id.lower()
        return participant.display_name.lower() == riot_id or participant.player_id == riot_id


@dataclass(frozen=True)
class DateWindow:
    start: datetime
    end: datetime

    def __post_init__(self) -> None:
        if self.start > self.end:
            raise ValueError("window start must not be after window end")

    @classmethod
    def last_days(cls, days: int, now: Optional[datetime] = None) -> "DateWindow":
        end = now or datetime.now(timezone.utc)
        return cls(start=end - timedelta(days=days), end=end)

    def is_older(self, ts: datetime) -> bool:
        return ts < self.start

    def is_newer(self, ts: datetime) -> bool:
        return ts > self.end

    def contains(self, ts: datetime) -> bool:
        return not self.is_older(ts) and not self.is_newer(ts)

    def padded(self, before: timedelta) -> "DateWindow":
        return DateWindow(start=self.start - before, end=self.end)


@dataclass(frozen=True)
class TimeEntry:
    id: str
    description: str
    start: Optional[str] = None
    end: Optional[str] = None

    @classmethod
    def from_api(cls, payload: Dict[str, Any]) -> "TimeEntry":
        interval = payload.get("timeInterval") or {}
        return cls(
            id=str(payload.get("id", "")),
            description=payload.get("description") or "",
            start=interval.get("start"),
            end=interval.get("end"),
        )


@dataclass(frozen=True)
class TimeEntryRequest:
    start: datetime
    end: datetime
    description: str
    billable: bool = False
    project_id: Optional[str] = None

    def to_payload(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "start": to_iso_z(self.start),
            "end": to_iso_z(self.end),
            "billable": self.billable,
            "description": self.description,
        }
        if self.project_id:
            payload["projectId"] = self.project_id
        return payload


@dataclass
class SyncReport:
    synced: int = 0
    skipped: int = 0
    failed: int = 0
    matches_found: int = 0
    existing_marked: int = 0
    failures: List[Tuple[str, str]] = field(default_factory=list)

    @property
    def total_marked(self) -> int:
        return self.existing_marked + self.synced

    def record_failure(self, match_id: str, reason: str) -> None:
        self.failed += 1
        self.failures.append((match_id, reason))

    def as_dict(self) -> Dict[str, Any]:
        return {
            "matches_found": self.matches_found,
            "synced": self.synced,
            "skipped": self.skipped,
            "failed": self.failed,
            "total_marked": self.total_marked,
        }
