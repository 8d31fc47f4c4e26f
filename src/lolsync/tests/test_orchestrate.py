"""End-to-end sync runs over a fake Riot API and an in-memory Clockify."""

from __future__ import annotations

import logging

from lolsync.models import CanonicalMatch, TimeEntry
from lolsync.orchestrate import SyncOrchestrator, queue_breakdown
from lolsync.providers.riot import RiotMatchProvider


def _orchestrator(sample_config, make_api_client, api, dest):
    provider = RiotMatchProvider(make_api_client(api.handler), page_size=100)
    return SyncOrchestrator(sample_config, logging.getLogger("lolsync.test"), provider=provider, destination=dest)


class TestScenario:
    async def test_five_matches_three_in_window_one_already_synced(
        self, sample_config, make_api_client, fake_riot_api, make_riot_detail, fake_clockify, days_ago, now
    ):
        api = fake_riot_api([
            make_riot_detail("EUW1_1", days_ago(1)),
            make_riot_detail("EUW1_2", days_ago(2)),
            make_riot_detail("EUW1_3", days_ago(3)),
            make_riot_detail("EUW1_4", days_ago(8)),
            make_riot_detail("EUW1_5", days_ago(9)),
        ])
        dest = fake_clockify([
            TimeEntry(id="a", description="✅ Ahri - Win (7/2/9) | Ranked Solo/Duo | 0h 30m [Match:EUW1_2]"),
            TimeEntry(id="b", description="Writing docs"),
        ])
        orchestrator = _orchestrator(sample_config, make_api_client, api, dest)
        try:
            report = await orchestrator.run_sync(now=now)
        finally:
            await orchestrator.close()

        assert dest.initialized
        assert dest.closed
        assert (report.synced, report.skipped, report.failed) == (2, 1, 0)
        assert report.matches_found == 3
        assert report.total_marked == 3
        created_ids = [c.description.rsplit("[Match:", 1)[1] for c in dest.created]
        assert created_ids == ["EUW1_1]", "EUW1_3]"]
        assert all(c.project_id == "proj-1" for c in dest.created)

    async def test_second_run_is_idempotent(
        self, sample_config, make_api_client, fake_riot_api, make_riot_detail, fake_clockify, days_ago, now
    ):
        details = [make_riot_detail(f"EUW1_{i}", days_ago(i + 0.5)) for i in range(4)]
        dest = fake_clockify()

        first = _orchestrator(sample_config, make_api_client, fake_riot_api(details), dest)
        try:
            first_report = await first.run_sync(now=now)
        finally:
            await first.close()

        second = _orchestrator(sample_config, make_api_client, fake_riot_api(details), dest)
        try:
            second_report = await second.run_sync(now=now)
        finally:
            await second.close()

        assert first_report.synced == 4
        assert second_report.synced == 0
        assert second_report.skipped == 4
        assert len(dest.created) == 4

    async def test_no_matches_skips_destination_listing(
        self, sample_config, make_api_client, fake_riot_api, make_riot_detail, fake_clockify, days_ago, now
    ):
        api = fake_riot_api([make_riot_detail("EUW1_old", days_ago(30))])

        class NoListing(fake_clockify):
            async def list_time_entries(self, start, end):
                raise AssertionError("should not list entries")

        dest = NoListing()
        orchestrator = _orchestrator(sample_config, make_api_client, api, dest)
        try:
            report = await orchestrator.run_sync(now=now)
        finally:
            await orchestrator.close()
        assert report.as_dict()["matches_found"] == 0
        assert dest.created == []

    async def test_days_override(
        self, sample_config, make_api_client, fake_riot_api, make_riot_detail, fake_clockify, days_ago, now
    ):
        api = fake_riot_api([
            make_riot_detail("EUW1_1", days_ago(1)),
            make_riot_detail("EUW1_2", days_ago(3)),
        ])
        dest = fake_clockify()
        orchestrator = _orchestrator(sample_config, make_api_client, api, dest)
        try:
            report = await orchestrator.run_sync(days=2, now=now)
        finally:
            await orchestrator.close()
        assert report.synced == 1


class TestQueueBreakdown:
    def test_counts_by_queue_name(self, now):
        def m(mid, queue):
            return CanonicalMatch(mid, 0, "CLASSIC", queue, now, 60)

        assert queue_breakdown([m("1", "ARAM"), m("2", "Ranked Flex"), m("3", "ARAM")]) == {
            "ARAM": 2,
            "Ranked Flex": 1,
        }
