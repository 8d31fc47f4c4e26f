from __future__ import annotations

from typing import Any, Optional


class SyncError(Exception):
    """Base class for every error raised by lolsync."""


class ConfigError(SyncError, ValueError):
    pass


class UpstreamRequestFailed(SyncError):
    def __init__(self, status: Optional[int], status_text: str, body: Any = None) -> None:
        self.status = status
        self.status_text = status_text
        self.body = body
        super().__init__(f"request failed: {status} {status_text}")

    def as_dict(self) -> dict:
        return {"status": self.status, "status_text": self.status_text, "body": self.body}


class RetriesExhausted(SyncError):
    def __init__(self, path: str, attempts: int) -> None:
        self.path = path
        self.attempts = attempts
        super().__init__(f"fetch of {path} failed after {attempts} attempts")


class ParticipantNotFound(SyncError):
    def __init__(self, match_id: str) -> None:
        self.match_id = match_id
        super().__init__(f"player not found in match {match_id}")


class CreationFailed(UpstreamRequestFailed):
    @property
    def throttled(self) -> bool:
        return self.status == 429


class MalformedMatch(SyncError, ValueError):
    pass


class LockfileNotFound(SyncError):
    def __init__(self, path: str) -> None:
        self.path = path
        super().__init__(f"League client lockfile not found at {path}; is the client running?")
