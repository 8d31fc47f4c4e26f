from __future__ import annotations

import asyncio
import logging
import time
from collections import deque
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Deque, Dict, Optional

import httpx

from .errors import RetriesExhausted, UpstreamRequestFailed
from .logging_utils import log_json


SleepFn = Callable[[float], Awaitable[Any]]


@dataclass
class ApiConfig:
    base_url: str
    timeout_seconds: float = 30
    max_attempts: int = 3
    backoff_base_seconds: float = 2.0
    rate_limits: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_section(cls, section: Dict[str, Any]) -> "ApiConfig":
        return cls(
            base_url=section["base_url"],
            timeout_seconds=section.get("timeout_seconds", 30),
            max_attempts=section.get("max_attempts", 3),
            backoff_base_seconds=section.get("backoff_base_seconds", 2.0),
            rate_limits=section.get("rate_limits") or {},
        )


class RateLimiter:
    """Two sliding-window quotas sharing one list of request timestamps.

    Defaults match a Riot development key: 20 requests per second and
    100 requests per two minutes.
    """

    def __init__(
        self,
        short_window: float = 1.0,
        short_limit: int = 20,
        long_window: float = 120.0,
        long_limit: int = 100,
        buffer: float = 0.1,
        clock: Callable[[], float] = time.monotonic,
        sleep: SleepFn = asyncio.sleep,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self.short_window = short_window
        self.short_limit = short_limit
        self.long_window = long_window
        self.long_limit = long_limit
        self.buffer = buffer
        self._clock = clock
        self._sleep = sleep
        self._lock = asyncio.Lock()
        self._timestamps: Deque[float] = deque()
        self._logger = logger or logging.getLogger(__name__)

    @classmethod
    def from_config(cls, limits: Dict[str, Any], **kwargs: Any) -> "RateLimiter":
        return cls(
            short_window=limits.get("short_window_ms", 1000) / 1000,
            short_limit=limits.get("short_limit", 20),
            long_window=limits.get("long_window_ms", 120000) / 1000,
            long_limit=limits.get("long_limit", 100),
            buffer=limits.get("buffer_ms", 100) / 1000,
            **kwargs,
        )

    @property
    def timestamps(self) -> list:
        return list(self._timestamps)

    def reset(self) -> None:
        self._timestamps.clear()

    async def wait_for_slot(self) -> None:
        while True:
            async with self._lock:
                now = self._clock()
                while self._timestamps and now - self._timestamps[0] >= self.long_window:
                    self._timestamps.popleft()

                recent = [t for t in self._timestamps if now - t < self.short_window]
                if len(recent) >= self.short_limit:
                    window, count = "short", len(recent)
                    delay = self.short_window - (now - recent[0]) + self.buffer
                elif len(self._timestamps) >= self.long_limit:
                    window, count = "long", len(self._timestamps)
                    delay = self.long_window - (now - self._timestamps[0]) + self.buffer
                else:
                    self._timestamps.append(self._clock())
                    return
            log_json(
                self._logger,
                "rate_limit_wait",
                window=window,
                count=count,
                seconds=round(delay, 3),
            )
            # Sleep outside the lock; the loop re-checks both windows on wake
            await self._sleep(delay)


def _response_body(resp: httpx.Response) -> Any:
    try:
        return resp.json()
    except ValueError:
        return resp.text


class ApiClient:
    def __init__(
        self,
        cfg: ApiConfig,
        headers: Optional[Dict[str, str]] = None,
        auth: Optional[httpx.Auth | tuple] = None,
        verify: bool = True,
        limiter: Optional[RateLimiter] = None,
        sleep: SleepFn = asyncio.sleep,
        logger: Optional[logging.Logger] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.cfg = cfg
        self._limiter = limiter or RateLimiter.from_config(cfg.rate_limits, sleep=sleep)
        self._sleep = sleep
        self._client = httpx.AsyncClient(
            base_url=cfg.base_url,
            timeout=cfg.timeout_seconds,
            headers=headers,
            auth=auth,
            verify=verify,
            transport=transport,
        )
        self._logger = logger or logging.getLogger(__name__)

    @property
    def limiter(self) -> RateLimiter:
        return self._limiter

    async def close(self) -> None:
        await self._client.aclose()

    async def get_json(
        self,
        path: str,
        params: Optional[Dict[str, Any]] = None,
        max_attempts: Optional[int] = None,
    ) -> Any:
        attempts = max_attempts or self.cfg.max_attempts
        params = params or {}
        for attempt in range(attempts):
            await self._limiter.wait_for_slot()
            log_json(
                self._logger,
                "http_request_start",
                level=logging.DEBUG,
                path=path,
                attempt=attempt + 1,
                params=params,
            )
            resp = await self._client.get(path, params=params)
            if resp.status_code == 429:
                delay = (2 ** attempt) * self.cfg.backoff_base_seconds
                log_json(
                    self._logger,
                    "http_throttled",
                    level=logging.WARNING,
                    path=path,
                    attempt=attempt + 1,
                    max_attempts=attempts,
                    delay=delay,
                )
                await self._sleep(delay)
                continue
            if not resp.is_success:
                raise UpstreamRequestFailed(resp.status_code, resp.reason_phrase, _response_body(resp))
            try:
                return resp.json()
            except ValueError:
                raise UpstreamRequestFailed(resp.status_code, "invalid JSON", resp.text) from None
        raise RetriesExhausted(path, attempts)
