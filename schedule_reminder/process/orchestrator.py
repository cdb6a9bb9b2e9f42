"""
Reminder Orchestrator — one evaluation pass over every enabled configuration.

Pass (per invocation, nothing persisted between runs):
    1. Load enabled configurations (fatal if this fails)
    2. Per configuration, independently:
       a. today = now() in the configuration's timezone
       b. fetch due items (on/after today)
       c. reuse the business-day calculator for that timezone
       d. effective timings = item override, else configuration default (de-duplicated)
       e. evaluate each timing; failures skip that timing only
       f. keep the timings whose reminder date is today
       g. render, resolve destination, build sender, send; failures skip that send only
    3. A failing configuration is logged and skipped
    4. Report configurations processed and notifications sent

Configurations run under a semaphore sized by max_concurrency (1 = sequential).
A set cancel_event stops new configurations from starting; sends already made
stay made. Cancelling the run task aborts in-flight HTTP calls.
"""

from __future__ import annotations

import asyncio
import logging
import time
import uuid
from dataclasses import asdict, dataclass, field
from datetime import date, datetime, timezone
from typing import Any, Callable, Dict, Iterable, List, Optional

from schedule_reminder.channels.factory import ChannelFactory, resolve_destination
from schedule_reminder.dates.business_days import BusinessDayCalculator
from schedule_reminder.dates.timing import evaluate, is_same_date
from schedule_reminder.engine.errors import (
    ChannelError,
    DeliveryError,
    ReminderConfigError,
    TimingError,
)
from schedule_reminder.engine.logging import (
    AsyncLogQueue,
    LogEntry,
    log_configuration_processed,
    log_notification,
    log_run_event,
    log_timing_skipped,
)
from schedule_reminder.records.models import DueItem, Notification, ReminderConfiguration
from schedule_reminder.rendering.template import render_message
from schedule_reminder.sources.base import ReminderSource

logger = logging.getLogger("schedule_reminder.process.orchestrator")


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class ConfigOutcome:
    """What happened to one configuration during a run."""

    config_id: str
    name: str
    items: int = 0
    triggered: int = 0
    sent: int = 0
    failed: int = 0
    timings_skipped: int = 0
    error: Optional[str] = None


@dataclass
class RunReport:
    """Aggregate result of one run. Only successful sends count as sent."""

    run_id: str
    started_at: datetime
    finished_at: Optional[datetime] = None
    configs_loaded: int = 0
    configs_processed: int = 0
    configs_failed: int = 0
    configs_not_started: int = 0
    notifications_sent: int = 0
    notifications_failed: int = 0
    timings_skipped: int = 0
    cancelled: bool = False
    outcomes: List[ConfigOutcome] = field(default_factory=list)

    def record(self, outcome: ConfigOutcome) -> None:
        self.outcomes.append(outcome)
        if outcome.error is None:
            self.configs_processed += 1
        else:
            self.configs_failed += 1
        self.notifications_sent += outcome.sent
        self.notifications_failed += outcome.failed
        self.timings_skipped += outcome.timings_skipped

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["started_at"] = self.started_at.isoformat()
        data["finished_at"] = self.finished_at.isoformat() if self.finished_at else None
        return data


class ReminderOrchestrator:
    """
    Turns (due date, timing, today) triples into sent reminders.

    Args:
        source: Configuration / due-item source.
        channels: Factory building the sender for each configuration.
        holidays: Dates excluded from business-day arithmetic.
        max_concurrency: Configurations processed at once (>= 1).
        now: Clock, injectable for tests. Must return an aware datetime.
        log_queue: Optional structured run log.
    """

    def __init__(
        self,
        source: ReminderSource,
        channels: ChannelFactory,
        holidays: Iterable[date] = (),
        max_concurrency: int = 1,
        now: Callable[[], datetime] = _utcnow,
        log_queue: Optional[AsyncLogQueue] = None,
    ):
        self._source = source
        self._channels = channels
        self._holidays = tuple(holidays)
        self._max_concurrency = max(1, max_concurrency)
        self._now = now
        self._log_queue = log_queue
        self._calculators: Dict[str, BusinessDayCalculator] = {}

    # -----------------------------------------------------------------------
    # Run
    # -----------------------------------------------------------------------

    async def run(
        self,
        master_ref: str,
        cancel_event: Optional[asyncio.Event] = None,
    ) -> RunReport:
        """
        Execute one pass.

        Raises:
            ReminderConfigError: if the configuration list cannot be loaded.
        """
        report = RunReport(run_id=f"run_{uuid.uuid4().hex[:12]}", started_at=self._now())
        self._emit(log_run_event("run_started", report.run_id, {"master_ref": master_ref}))

        try:
            configs = await self._source.load_reminder_configs(master_ref)
        except Exception as e:
            self._emit(log_run_event("run_aborted", report.run_id, {"error": str(e)}, level="ERROR"))
            raise ReminderConfigError(
                f"failed to load configurations: {e}",
                master_ref=master_ref,
            ) from e

        report.configs_loaded = len(configs)
        logger.info(f"Loaded {len(configs)} reminder configurations")

        semaphore = asyncio.Semaphore(self._max_concurrency)

        async def worker(config: ReminderConfiguration) -> None:
            async with semaphore:
                if cancel_event is not None and cancel_event.is_set():
                    report.cancelled = True
                    report.configs_not_started += 1
                    return
                outcome = await self._process_guarded(config, report.run_id)
                report.record(outcome)

        await asyncio.gather(*(worker(config) for config in configs))

        report.finished_at = self._now()
        logger.info(
            f"Run {report.run_id}: {report.configs_processed}/{report.configs_loaded} "
            f"configurations processed, {report.notifications_sent} notifications sent"
        )
        self._emit(log_run_event("run_completed", report.run_id, {
            "configs_processed": report.configs_processed,
            "configs_failed": report.configs_failed,
            "notifications_sent": report.notifications_sent,
            "notifications_failed": report.notifications_failed,
            "cancelled": report.cancelled,
        }))
        return report

    async def _process_guarded(self, config: ReminderConfiguration, run_id: str) -> ConfigOutcome:
        """process_config with failures contained to this configuration."""
        try:
            outcome = await self.process_config(config, run_id)
        except Exception as e:
            logger.error(f"Error processing config {config.name or config.id}: {e}")
            outcome = ConfigOutcome(config_id=config.id, name=config.name, error=str(e))

        self._emit(log_configuration_processed(
            run_id=run_id,
            config_id=config.id,
            config_name=config.name,
            items=outcome.items,
            sent=outcome.sent,
            failed=outcome.failed,
            error=outcome.error,
        ))
        return outcome

    # -----------------------------------------------------------------------
    # Per configuration
    # -----------------------------------------------------------------------

    async def process_config(self, config: ReminderConfiguration, run_id: str = "") -> ConfigOutcome:
        """Evaluate and send every reminder due today for one configuration."""
        logger.info(f"Processing: {config.name or config.id}")
        outcome = ConfigOutcome(config_id=config.id, name=config.name)

        today = self._now().astimezone(config.tz).date()
        items = await self._source.fetch_due_items(config, today)
        outcome.items = len(items)
        logger.info(f"  Found {len(items)} due items")

        calculator = self.calculator_for(config)

        for item in items:
            triggered = self.evaluate_timings(item, config, today, calculator, outcome, run_id)
            if not triggered:
                continue
            outcome.triggered += len(triggered)
            logger.info(
                f"    - {item.title} (Due: {item.due.astimezone(config.tz).date().isoformat()}) "
                f"-> Timings: {triggered}"
            )
            for expression in triggered:
                if await self.send_notification(item, config, expression, run_id):
                    outcome.sent += 1
                else:
                    outcome.failed += 1

        return outcome

    def calculator_for(self, config: ReminderConfiguration) -> BusinessDayCalculator:
        """One calculator per timezone, shared across configurations."""
        key = config.timezone
        if key not in self._calculators:
            self._calculators[key] = BusinessDayCalculator(self._holidays, config.tz)
        return self._calculators[key]

    @staticmethod
    def effective_timings(item: DueItem, config: ReminderConfiguration) -> List[str]:
        """Item override when non-empty, else configuration default; order kept, duplicates dropped."""
        timings = item.reminder_timings or config.reminder_timings
        return list(dict.fromkeys(timings))

    def evaluate_timings(
        self,
        item: DueItem,
        config: ReminderConfiguration,
        today: date,
        calculator: Optional[BusinessDayCalculator],
        outcome: Optional[ConfigOutcome] = None,
        run_id: str = "",
    ) -> List[str]:
        """Return the timings of `item` whose reminder date falls on `today`."""
        due = item.due.astimezone(config.tz)
        triggered: List[str] = []

        for expression in self.effective_timings(item, config):
            try:
                reminder_date = evaluate(due, expression, calculator)
            except TimingError as e:
                logger.warning(
                    f"      Failed to calculate reminder date for '{expression}' "
                    f"(config={config.id}, item={item.id}): {e.message}"
                )
                if outcome is not None:
                    outcome.timings_skipped += 1
                self._emit(log_timing_skipped(run_id, config.id, item.id, expression, e.message))
                continue

            if is_same_date(reminder_date, today):
                triggered.append(expression)

        return triggered

    # -----------------------------------------------------------------------
    # Dispatch
    # -----------------------------------------------------------------------

    async def send_notification(
        self,
        item: DueItem,
        config: ReminderConfiguration,
        expression: str,
        run_id: str = "",
    ) -> bool:
        """Render and send one notification. Returns False (logged) on any channel failure."""
        start = time.monotonic()
        notification = Notification(
            item=item,
            config=config,
            expression=expression,
            message=render_message(item, config, expression),
            destination=resolve_destination(config),
        )

        channel_name = config.channel
        try:
            channel = self._channels.create(config)
            channel_name = channel.channel_name
            await channel.send(notification)
        except ChannelError as e:
            duration_ms = (time.monotonic() - start) * 1000
            logger.error(
                f"      Error sending notification (config={config.id}, item={item.id}, "
                f"timing={expression}): {e.message}"
            )
            self._emit(log_notification(
                run_id, config.id, item.id, expression, channel_name,
                success=False,
                duration_ms=duration_ms,
                status_code=e.status_code if isinstance(e, DeliveryError) else None,
                error=e.message,
            ))
            return False

        duration_ms = (time.monotonic() - start) * 1000
        logger.info(f"      Sent {channel_name} notification")
        self._emit(log_notification(
            run_id, config.id, item.id, expression, channel_name,
            success=True,
            duration_ms=duration_ms,
        ))
        return True

    def _emit(self, entry: LogEntry) -> None:
        if self._log_queue is not None:
            self._log_queue.push(entry)
