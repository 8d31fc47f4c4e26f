from __future__ import annotations

import logging
from collections import Counter
from datetime import datetime, timedelta
from typing import Dict, Iterable, Optional

from .clockify import ClockifyClient, ClockifyConfig
from .config import Config, get_clockify_token
from .logging_utils import log_json
from .models import CanonicalMatch, DateWindow, SyncReport
from .providers import MatchProvider, build_provider
from .reconcile import SyncReconciler


# Entries are filtered by their start; a game ending just inside the window
# may have started before it.
ENTRY_LOOKBACK = timedelta(days=1)


def queue_breakdown(matches: Iterable[CanonicalMatch]) -> Dict[str, int]:
    return dict(Counter(m.queue_name for m in matches))


class SyncOrchestrator:
    def __init__(
        self,
        config: Config,
        logger: logging.Logger,
        provider: Optional[MatchProvider] = None,
        destination: Optional[ClockifyClient] = None,
        provider_name: Optional[str] = None,
    ) -> None:
        self.config = config
        self.logger = logger
        self.provider = provider or build_provider(config, provider_name, logger=logger)
        self.destination = destination or ClockifyClient(
            get_clockify_token(),
            ClockifyConfig.from_section(config.clockify),
            logger=logger,
        )

    async def close(self) -> None:
        try:
            await self.provider.close()
        finally:
            await self.destination.close()

    async def run_sync(self, days: Optional[int] = None, now: Optional[datetime] = None) -> SyncReport:
        days = days or self.config.sync_days
        identity = self.config.player
        await self.destination.initialize()

        window = DateWindow.last_days(days, now)
        log_json(
            self.logger,
            "sync_start",
            provider=self.provider.name,
            days=days,
            start=window.start.isoformat(),
            end=window.end.isoformat(),
        )

        matches = await self.provider.list_matches_in_window(identity, window)
        log_json(
            self.logger,
            "matches_in_window",
            count=len(matches),
            queues=queue_breakdown(matches),
        )
        report = SyncReport()
        if not matches:
            log_json(self.logger, "sync_summary", **report.as_dict())
            return report

        lookup = window.padded(ENTRY_LOOKBACK)
        existing = await self.destination.list_time_entries(lookup.start, lookup.end)
        log_json(self.logger, "existing_entries", count=len(existing))

        clockify = self.config.clockify
        reconciler = SyncReconciler(
            self.destination,
            identity,
            project_id=self.destination.project_id,
            create_delay=clockify.get("api_delay_ms", 0) / 1000,
            throttle_cooldown=clockify.get("throttle_cooldown_ms", 200) / 1000,
            logger=self.logger,
        )
        report = await reconciler.reconcile(matches, existing, report)
        log_json(self.logger, "sync_summary", **report.as_dict())
        return report
