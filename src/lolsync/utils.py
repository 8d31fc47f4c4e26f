from datetime import datetime, timezone
from typing import Tuple


def from_epoch_ms(value: int) -> datetime:
    return datetime.fromtimestamp(value / 1000, tz=timezone.utc)


def parse_iso(value: str) -> datetime:
    # fromisoformat only accepts a trailing "Z" from 3.11 on
    if value.endswith("Z"):
        value = value[:-1] + "+00:00"
    parsed = datetime.fromisoformat(value)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def to_iso_z(value: datetime) -> str:
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")


def format_duration(seconds: int) -> Tuple[int, int]:
    """Split a game length into whole hours and minutes."""
    return seconds // 3600, (seconds % 3600) // 60


def format_kda(kills: int, deaths: int, assists: int) -> str:
    return f"{kills}/{deaths}/{assists}"
