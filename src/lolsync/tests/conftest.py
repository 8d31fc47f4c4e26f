"""Shared test fixtures for the lolsync test suite.

Provides a fake clock for the rate limiter, Riot match-v5 shaped sample
records, an in-memory Riot API behind ``httpx.MockTransport`` and an in-memory
Clockify destination.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional

import httpx
import pytest

from lolsync.api_client import ApiClient, ApiConfig, RateLimiter
from lolsync.config import Config
from lolsync.errors import CreationFailed
from lolsync.models import PlayerIdentity, TimeEntry


NOW = datetime(2026, 10, 19, 12, 0, tzinfo=timezone.utc)
PUUID = "me-puuid"


# ---------------------------------------------------------------------------
# Time
# ---------------------------------------------------------------------------

class FakeClock:
    """Monotonic clock that only moves when something sleeps on it."""

    def __init__(self, start: float = 1000.0) -> None:
        self.now = start
        self.sleeps: List[float] = []

    def __call__(self) -> float:
        return self.now

    async def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds


@pytest.fixture()
def fake_clock() -> FakeClock:
    return FakeClock()


@pytest.fixture()
def now() -> datetime:
    return NOW


@pytest.fixture()
def identity() -> PlayerIdentity:
    return PlayerIdentity(puuid=PUUID, game_name="Me", tag_line="EUW")


# ---------------------------------------------------------------------------
# Riot match-v5 samples
# ---------------------------------------------------------------------------

def riot_participant(puuid: str, name: str, champion: str, win: bool, **stats: Any) -> Dict[str, Any]:
    base = {
        "puuid": puuid,
        "riotIdGameName": name,
        "riotIdTagline": "EUW",
        "summonerName": name,
        "championName": champion,
        "championId": 103,
        "teamId": 100 if win else 200,
        "win": win,
        "kills": 7,
        "deaths": 2,
        "assists": 9,
        "totalMinionsKilled": 180,
        "goldEarned": 12000,
    }
    base.update(stats)
    return base


def riot_detail(
    match_id: str,
    end: datetime,
    duration: int = 1800,
    win: bool = True,
    queue_id: int = 420,
    puuid: str = PUUID,
) -> Dict[str, Any]:
    return {
        "metadata": {"matchId": match_id, "participants": [puuid, "other-puuid"]},
        "info": {
            "gameDuration": duration,
            "gameEndTimestamp": int(end.timestamp() * 1000),
            "gameMode": "CLASSIC",
            "gameType": "MATCHED_GAME",
            "queueId": queue_id,
            "participants": [
                riot_participant(puuid, "Me", "Ahri", win),
                riot_participant("other-puuid", "Someone", "Zed", not win, kills=1),
            ],
        },
    }


@pytest.fixture()
def make_riot_detail():
    return riot_detail


class FakeRiotApi:
    """In-memory match-v5 API; records every request path it serves."""

    def __init__(self, details: List[Dict[str, Any]], puuid: str = PUUID) -> None:
        self.details = {d["metadata"]["matchId"]: d for d in details}
        self.order = [d["metadata"]["matchId"] for d in details]
        self.puuid = puuid
        self.requests: List[httpx.Request] = []
        self.failing: Dict[str, int] = {}

    @property
    def id_page_starts(self) -> List[int]:
        return [
            int(r.url.params["start"])
            for r in self.requests
            if r.url.path.endswith("/ids")
        ]

    @property
    def detail_requests(self) -> List[str]:
        return [
            r.url.path.rsplit("/", 1)[-1]
            for r in self.requests
            if "/matches/" in r.url.path and not r.url.path.endswith("/ids")
        ]

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path
        if path == f"/lol/match/v5/matches/by-puuid/{self.puuid}/ids":
            start = int(request.url.params.get("start", 0))
            count = int(request.url.params.get("count", 20))
            return httpx.Response(200, json=self.order[start:start + count])
        if path.startswith("/riot/account/v1/accounts/by-riot-id/"):
            return httpx.Response(200, json={"puuid": self.puuid, "gameName": "Me", "tagLine": "EUW"})
        if path.startswith("/lol/match/v5/matches/"):
            match_id = path.rsplit("/", 1)[-1]
            if match_id in self.failing:
                return httpx.Response(self.failing[match_id], json={"status": {"message": "boom"}})
            detail = self.details.get(match_id)
            if detail is None:
                return httpx.Response(404, json={"status": {"message": "Data not found"}})
            return httpx.Response(200, json=detail)
        return httpx.Response(404, json={})


@pytest.fixture()
def fake_riot_api():
    return FakeRiotApi


@pytest.fixture()
def make_api_client(fake_clock):
    """Build an ApiClient on a MockTransport whose waits advance the fake clock."""

    def _make(handler, **overrides) -> ApiClient:
        defaults = {
            "base_url": "https://europe.api.riotgames.com",
            "timeout_seconds": 5,
            "max_attempts": 3,
            "backoff_base_seconds": 2.0,
        }
        defaults.update(overrides)
        limiter = RateLimiter(clock=fake_clock, sleep=fake_clock.sleep)
        return ApiClient(
            ApiConfig(**defaults),
            headers={"X-Riot-Token": "test-key"},
            limiter=limiter,
            sleep=fake_clock.sleep,
            transport=httpx.MockTransport(handler),
        )

    return _make


# ---------------------------------------------------------------------------
# Clockify
# ---------------------------------------------------------------------------

class FakeClockify:
    """In-memory destination with the ClockifyClient surface used by a sync."""

    def __init__(self, entries: Optional[List[TimeEntry]] = None) -> None:
        self.entries: List[TimeEntry] = list(entries or [])
        self.created: List[Any] = []
        self.fail_with: Dict[str, int] = {}
        self.project_id = "proj-1"
        self.initialized = False
        self.closed = False

    async def initialize(self) -> None:
        self.initialized = True

    async def list_time_entries(self, start, end) -> List[TimeEntry]:
        return list(self.entries)

    async def create_time_entry(self, request) -> TimeEntry:
        for match_id, status in self.fail_with.items():
            if f"[Match:{match_id}]" in request.description:
                raise CreationFailed(status, "Too Many Requests" if status == 429 else "Bad Request", {})
        self.created.append(request)
        entry = TimeEntry(id=f"te-{len(self.created)}", description=request.description)
        self.entries.append(entry)
        return entry

    async def close(self) -> None:
        self.closed = True


@pytest.fixture()
def fake_clockify():
    return FakeClockify


# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------

@pytest.fixture()
def sample_config() -> Config:
    return Config({
        "sync": {"days": 7, "provider": "riot"},
        "player": {"puuid": PUUID, "game_name": "Me", "tag_line": "EUW"},
        "riot": {
            "base_url": "https://europe.api.riotgames.com",
            "page_size": 100,
            "max_attempts": 3,
        },
        "opgg": {"region": "euw"},
        "lcu": {"platform_id": "EUW1"},
        "clockify": {
            "project_name": "League of Legends",
            "api_delay_ms": 0,
            "throttle_cooldown_ms": 200,
        },
    })


@pytest.fixture()
def days_ago(now):
    def _days_ago(days: float) -> datetime:
        return now - timedelta(days=days)

    return _days_ago
