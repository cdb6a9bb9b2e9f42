"""Unit tests for schedule_reminder.process.orchestrator — one reminder pass end to end."""

import asyncio
import httpx
import pytest
from datetime import date, datetime, timezone
from unittest.mock import MagicMock
from zoneinfo import ZoneInfo

from schedule_reminder.channels.factory import ChannelFactory
from schedule_reminder.engine.errors import ReminderConfigError, SourceError
from schedule_reminder.process.orchestrator import ReminderOrchestrator, RunReport
from schedule_reminder.records.models import DueItem, ReminderConfiguration
from schedule_reminder.sources.base import ReminderSource
from schedule_reminder.sources.static import StaticSource

TOKYO = ZoneInfo("Asia/Tokyo")

# 2024-01-08 09:30 in Tokyo
NOW = datetime(2024, 1, 8, 0, 30, tzinfo=timezone.utc)


def fixed_now():
    return NOW


class BrokenSource(ReminderSource):
    async def load_reminder_configs(self, master_ref):
        raise SourceError("master database unreachable", database_id=master_ref)

    async def fetch_due_items(self, config, today):
        return []


class TestReminderOrchestrator:

    @pytest.fixture(autouse=True)
    def _setup(self, config_row, item_row, recording_transport):
        self.config_row = config_row
        self.item_row = item_row
        self.recorder = recording_transport(
            lambda request: httpx.Response(500 if "fail" in str(request.url) else 204)
        )
        self.channels = ChannelFactory(transport=self.recorder.transport)

    def _orchestrator(self, config_rows, item_rows, **kwargs):
        kwargs.setdefault("now", fixed_now)
        source = StaticSource(config_rows, item_rows)
        return ReminderOrchestrator(source, self.channels, **kwargs)

    # -- end to end ---------------------------------------------------------

    @pytest.mark.asyncio
    async def test_same_day_in_tokyo(self):
        orchestrator = self._orchestrator(
            [self.config_row()],
            {"db-tasks": [self.item_row()]},
        )
        report = await orchestrator.run("master-db")

        assert report.configs_loaded == 1
        assert report.configs_processed == 1
        assert report.notifications_sent == 1
        assert report.notifications_failed == 0

        bodies = self.recorder.json_bodies()
        assert len(bodies) == 1
        assert "Submit report" in bodies[0]["content"]
        assert "(today)" in bodies[0]["content"]
        assert "2024-01-08" in bodies[0]["content"]

    @pytest.mark.asyncio
    async def test_same_day_sends_exactly_once(self):
        orchestrator = self._orchestrator(
            [self.config_row(reminder_timings=["same-day", "same-day", "1-days-before"])],
            {"db-tasks": [self.item_row(reminder_timings=["same-day", " same-day "])]},
        )
        report = await orchestrator.run("master-db")
        assert report.notifications_sent == 1
        assert len(self.recorder.requests) == 1

    @pytest.mark.asyncio
    async def test_nothing_due_today(self):
        orchestrator = self._orchestrator(
            [self.config_row()],
            {"db-tasks": [self.item_row(due=datetime(2024, 1, 9, 9, 0, tzinfo=TOKYO))]},
        )
        report = await orchestrator.run("master-db")
        assert report.configs_processed == 1
        assert report.notifications_sent == 0
        assert self.recorder.requests == []

    @pytest.mark.asyncio
    async def test_item_timings_replace_configuration_timings(self):
        orchestrator = self._orchestrator(
            [self.config_row(reminder_timings=["same-day"])],
            {"db-tasks": [
                self.item_row(
                    id="tomorrow",
                    due=datetime(2024, 1, 9, 9, 0, tzinfo=TOKYO),
                    reminder_timings=["1-days-before"],
                ),
                self.item_row(id="today-but-overridden", reminder_timings=["3-days-before"]),
            ]},
        )
        report = await orchestrator.run("master-db")
        assert report.notifications_sent == 1
        assert "(tomorrow)" in self.recorder.json_bodies()[0]["content"]

    @pytest.mark.asyncio
    async def test_business_days_use_holidays(self):
        # Due Monday 2024-01-08; Friday 2024-01-05 is a holiday, so
        # 1 business day before is Thursday 2024-01-04.
        orchestrator = self._orchestrator(
            [self.config_row(reminder_timings=["1-business-days-before"])],
            {"db-tasks": [self.item_row()]},
            holidays=[date(2024, 1, 5)],
            now=lambda: datetime(2024, 1, 4, 1, 0, tzinfo=timezone.utc),
        )
        report = await orchestrator.run("master-db")
        assert report.notifications_sent == 1

    @pytest.mark.asyncio
    async def test_today_resolved_in_configuration_timezone(self):
        # 2024-01-07 20:00 UTC is already 2024-01-08 in Tokyo but not in UTC
        def late_sunday():
            return datetime(2024, 1, 7, 20, 0, tzinfo=timezone.utc)

        orchestrator = self._orchestrator(
            [
                self.config_row(id="tokyo"),
                self.config_row(id="utc", timezone="UTC", webhook_url="https://discord.example/webhook/utc"),
            ],
            {"db-tasks": [self.item_row()]},
            now=late_sunday,
        )
        report = await orchestrator.run("master-db")
        assert report.notifications_sent == 1
        assert str(self.recorder.requests[0].url) == "https://discord.example/webhook/1"

    # -- failure isolation ---------------------------------------------------

    @pytest.mark.asyncio
    async def test_load_failure_is_fatal(self):
        orchestrator = ReminderOrchestrator(BrokenSource(), self.channels, now=fixed_now)
        with pytest.raises(ReminderConfigError) as exc_info:
            await orchestrator.run("master-db")
        assert isinstance(exc_info.value.__cause__, SourceError)

    @pytest.mark.asyncio
    async def test_failed_configuration_does_not_stop_others(self):
        orchestrator = self._orchestrator(
            [
                self.config_row(id="a", target_database_id="db-a"),
                self.config_row(id="b", target_database_id="db-b"),
            ],
            {
                "db-a": SourceError("db-a unreachable", database_id="db-a"),
                "db-b": [self.item_row()],
            },
        )
        report = await orchestrator.run("master-db")

        assert report.configs_failed == 1
        assert report.configs_processed == 1
        assert report.notifications_sent == 1
        failed = [o for o in report.outcomes if o.error]
        assert failed[0].config_id == "a"
        assert "db-a unreachable" in failed[0].error

    @pytest.mark.asyncio
    async def test_bad_timing_skips_only_that_expression(self):
        orchestrator = self._orchestrator(
            [self.config_row(reminder_timings=["garbage", "same-day"])],
            {"db-tasks": [self.item_row()]},
        )
        report = await orchestrator.run("master-db")
        assert report.timings_skipped == 1
        assert report.notifications_sent == 1

    @pytest.mark.asyncio
    async def test_send_failure_counts_as_not_sent(self):
        orchestrator = self._orchestrator(
            [
                self.config_row(id="bad", webhook_url="https://discord.example/fail"),
                self.config_row(id="good"),
            ],
            {"db-tasks": [self.item_row(), self.item_row(id="item-2", title="Second")]},
        )
        report = await orchestrator.run("master-db")

        assert report.configs_processed == 2
        assert report.configs_failed == 0
        assert report.notifications_sent == 2
        assert report.notifications_failed == 2
        assert len(self.recorder.requests) == 4

    @pytest.mark.asyncio
    async def test_channel_construction_failure_counts_as_not_sent(self):
        orchestrator = self._orchestrator(
            [
                self.config_row(id="mail", channel="email"),
                self.config_row(id="nourl", webhook_url=""),
                self.config_row(id="unknown", channel="pigeon"),
            ],
            {"db-tasks": [self.item_row()]},
        )
        report = await orchestrator.run("master-db")
        assert report.configs_processed == 3
        assert report.notifications_failed == 3
        assert report.notifications_sent == 0
        assert self.recorder.requests == []

    # -- run control ---------------------------------------------------------

    @pytest.mark.asyncio
    async def test_cancel_before_start(self):
        cancel = asyncio.Event()
        cancel.set()
        orchestrator = self._orchestrator(
            [self.config_row(id="a"), self.config_row(id="b")],
            {"db-tasks": [self.item_row()]},
        )
        report = await orchestrator.run("master-db", cancel_event=cancel)
        assert report.cancelled is True
        assert report.configs_not_started == 2
        assert report.configs_processed == 0
        assert self.recorder.requests == []

    def _tracking_source(self, config_rows, item_rows):
        fetched = self.fetched = []

        class TrackingSource(StaticSource):
            async def fetch_due_items(self, config, today):
                fetched.append(config.id)
                return await super().fetch_due_items(config, today)

        return TrackingSource(config_rows, item_rows)

    @pytest.mark.asyncio
    async def test_cancel_event_stops_remaining_configurations(self):
        cancel = asyncio.Event()

        def send_then_cancel(request):
            cancel.set()
            return httpx.Response(204)

        orchestrator = ReminderOrchestrator(
            self._tracking_source(
                [self.config_row(id="a"), self.config_row(id="b")],
                {"db-tasks": [self.item_row()]},
            ),
            ChannelFactory(transport=httpx.MockTransport(send_then_cancel)),
            now=fixed_now,
        )
        report = await orchestrator.run("master-db", cancel_event=cancel)

        assert report.cancelled is True
        assert report.configs_processed == 1
        assert report.configs_not_started == 1
        assert report.notifications_sent == 1
        assert self.fetched == ["a"]

    @pytest.mark.asyncio
    async def test_cancelling_run_aborts_in_flight_send(self):
        in_flight = asyncio.Event()
        aborted = []

        async def hang(request):
            in_flight.set()
            try:
                await asyncio.Event().wait()
            except asyncio.CancelledError:
                aborted.append(str(request.url))
                raise
            return httpx.Response(204)

        orchestrator = ReminderOrchestrator(
            self._tracking_source(
                [self.config_row(id="a"), self.config_row(id="b")],
                {"db-tasks": [self.item_row()]},
            ),
            ChannelFactory(transport=httpx.MockTransport(hang)),
            now=fixed_now,
        )
        task = asyncio.create_task(orchestrator.run("master-db"))
        await asyncio.wait_for(in_flight.wait(), timeout=2)
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task

        assert aborted == ["https://discord.example/webhook/1"]
        assert self.fetched == ["a"]

    @pytest.mark.asyncio
    async def test_concurrent_configurations(self):
        rows = [
            self.config_row(id=f"cfg-{n}", webhook_url=f"https://discord.example/webhook/{n}")
            for n in range(5)
        ]
        orchestrator = self._orchestrator(rows, {"db-tasks": [self.item_row()]}, max_concurrency=3)
        report = await orchestrator.run("master-db")
        assert report.configs_processed == 5
        assert report.notifications_sent == 5
        assert sorted(str(r.url) for r in self.recorder.requests) == sorted(r["webhook_url"] for r in rows)

    @pytest.mark.asyncio
    async def test_dry_run_sends_nothing(self):
        channels = ChannelFactory(transport=self.recorder.transport, dry_run=True)
        orchestrator = ReminderOrchestrator(
            StaticSource([self.config_row()], {"db-tasks": [self.item_row()]}),
            channels,
            now=fixed_now,
        )
        report = await orchestrator.run("master-db")
        assert report.notifications_sent == 1
        assert self.recorder.requests == []
        assert channels.dry_run_sent[0].expression == "same-day"

    @pytest.mark.asyncio
    async def test_run_log_entries(self):
        queue = MagicMock()
        orchestrator = self._orchestrator(
            [self.config_row(reminder_timings=["garbage", "same-day"])],
            {"db-tasks": [self.item_row()]},
            log_queue=queue,
        )
        report = await orchestrator.run("master-db")

        events = [call.args[0].data["event"] for call in queue.push.call_args_list]
        assert events == [
            "run_started",
            "timing_skipped",
            "notification_sent",
            "configuration_processed",
            "run_completed",
        ]
        assert all(call.args[0].data["run_id"] == report.run_id for call in queue.push.call_args_list)

    def test_report_to_dict(self):
        report = RunReport(run_id="run_1", started_at=NOW)
        data = report.to_dict()
        assert data["started_at"] == NOW.isoformat()
        assert data["finished_at"] is None
        assert data["outcomes"] == []


class TestEvaluationHelpers:

    @pytest.fixture(autouse=True)
    def _setup(self, config_row, item_row):
        self.config = ReminderConfiguration.from_row(config_row())
        self.item_row = item_row
        self.orchestrator = ReminderOrchestrator(StaticSource([]), ChannelFactory(), now=fixed_now)

    def test_calculator_cached_per_timezone(self, config_row):
        other = ReminderConfiguration.from_row(config_row(id="cfg-2"))
        utc = ReminderConfiguration.from_row(config_row(id="cfg-3", timezone="UTC"))
        calc = self.orchestrator.calculator_for(self.config)
        assert self.orchestrator.calculator_for(other) is calc
        assert self.orchestrator.calculator_for(utc) is not calc

    def test_effective_timings_order_kept(self):
        item = DueItem.from_row(self.item_row(reminder_timings=["2-days-before", "same-day", "2-days-before"]))
        assert ReminderOrchestrator.effective_timings(item, self.config) == ["2-days-before", "same-day"]

    def test_effective_timings_fall_back_to_configuration(self):
        item = DueItem.from_row(self.item_row())
        assert ReminderOrchestrator.effective_timings(item, self.config) == ["same-day"]

    def test_business_day_timing_without_calculator_skipped(self):
        item = DueItem.from_row(self.item_row(reminder_timings=["1-business-days-before", "same-day"]))
        triggered = self.orchestrator.evaluate_timings(item, self.config, date(2024, 1, 8), None)
        assert triggered == ["same-day"]
