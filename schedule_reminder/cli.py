"""
Schedule Reminder CLI — run passes and inspect timings.

Commands:
- schedule-reminder run      — One evaluation pass over the master database
- schedule-reminder timing   — Evaluate a timing expression against a due date
- schedule-reminder secrets  — Manage the encrypted credential store
- schedule-reminder init     — Create the Notion databases under a parent page
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
from datetime import date, datetime, time
from typing import List, Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from schedule_reminder.channels.factory import ChannelFactory
from schedule_reminder.dates.business_days import BusinessDayCalculator
from schedule_reminder.dates.timing import evaluate, format_days_text
from schedule_reminder.engine.config import DEFAULT_TIMEZONE, Settings, load_settings
from schedule_reminder.engine.credentials import CredentialManager
from schedule_reminder.engine.errors import ReminderError, TimingError
from schedule_reminder.engine.logging import (
    configure_logging,
    get_log_queue,
    init_logging,
    shutdown_logging,
)
from schedule_reminder.process.orchestrator import ReminderOrchestrator, RunReport
from schedule_reminder.sources.notion import NotionSource
from schedule_reminder.sources.notion_setup import (
    DEFAULT_CHANNEL_OPTIONS,
    DEFAULT_CONFIG_DB_NAME,
    DEFAULT_SCHEDULE_DB_NAME,
    DEFAULT_TIMING_OPTIONS,
    NotionSetup,
    SampleConfig,
    SetupResult,
)

logger = logging.getLogger("schedule_reminder.cli")

API_KEY_NAME = "NOTION_API_KEY"
MASTER_DB_NAME = "REMINDER_CONFIG_DB_ID"
PARENT_PAGE_NAME = "NOTION_PARENT_PAGE_ID"


def main(argv: Optional[List[str]] = None) -> int:
    """Main CLI entry point."""
    parser = argparse.ArgumentParser(
        prog="schedule-reminder",
        description="Schedule Reminder — due-date reminders from Notion databases",
    )
    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # schedule-reminder run
    run_parser = subparsers.add_parser("run", help="Run one reminder pass")
    run_parser.add_argument("--config", help="Path to reminder.yaml (default: auto-discover)")
    run_parser.add_argument("--master-db", help=f"Master database ID (default: {MASTER_DB_NAME})")
    run_parser.add_argument(
        "--dry-run", action="store_true", help="Evaluate and render, but do not send"
    )

    # schedule-reminder timing
    timing_parser = subparsers.add_parser("timing", help="Evaluate a timing expression")
    timing_parser.add_argument("expression", help="e.g. same-day, 3-days-before, 2-business-days-before")
    timing_parser.add_argument("--due", required=True, help="Due date, YYYY-MM-DD or YYYY-MM-DDTHH:MM")
    timing_parser.add_argument("--tz", default=DEFAULT_TIMEZONE, help=f"Timezone (default: {DEFAULT_TIMEZONE})")
    timing_parser.add_argument(
        "--holiday", action="append", default=[], help="Holiday date YYYY-MM-DD (repeatable)"
    )

    # schedule-reminder secrets
    secrets_parser = subparsers.add_parser("secrets", help="Manage the encrypted credential store")
    secrets_parser.add_argument("action", choices=["set", "get", "delete"])
    secrets_parser.add_argument("name", help="Credential name, e.g. NOTION_API_KEY")
    secrets_parser.add_argument("value", nargs="?", help="Value (set only)")
    secrets_parser.add_argument("--config", help="Path to reminder.yaml (default: auto-discover)")

    # schedule-reminder init
    init_parser = subparsers.add_parser("init", help="Create the Notion databases")
    init_parser.add_argument("--parent-page", help=f"Parent page ID (default: {PARENT_PAGE_NAME})")
    init_parser.add_argument("--config", help="Path to reminder.yaml (default: auto-discover)")
    init_parser.add_argument("--config-db-name", default=DEFAULT_CONFIG_DB_NAME)
    init_parser.add_argument("--schedule-db-name", default=DEFAULT_SCHEDULE_DB_NAME)
    init_parser.add_argument("--skip-schedule-db", action="store_true", help="Create only the master database")
    init_parser.add_argument(
        "--timing-options", default=",".join(DEFAULT_TIMING_OPTIONS),
        help="Comma-separated Reminder Timings options",
    )
    init_parser.add_argument(
        "--channel-options", default=",".join(DEFAULT_CHANNEL_OPTIONS),
        help="Comma-separated Notification Channel options",
    )
    init_parser.add_argument("--create-sample-config", action="store_true", help="Add one sample configuration row")
    init_parser.add_argument("--sample-name", default="Sample reminder")
    init_parser.add_argument("--sample-channel", default="Discord")
    init_parser.add_argument("--sample-timings", default="same-day,1-days-before")
    init_parser.add_argument("--sample-webhook-url", default="", help="Required with --create-sample-config")
    init_parser.add_argument("--sample-channel-token", default="")

    args = parser.parse_args(argv)

    if args.command == "run":
        return cmd_run(args)
    elif args.command == "timing":
        return cmd_timing(args)
    elif args.command == "secrets":
        return cmd_secrets(args)
    elif args.command == "init":
        return cmd_init(args)
    else:
        parser.print_help()
        return 0


def _credential_manager(settings: Settings) -> CredentialManager:
    return CredentialManager(
        store_path=settings.credentials.store_path,
        prefix=settings.credentials.prefix,
    )


# ---------------------------------------------------------------------------
# schedule-reminder run
# ---------------------------------------------------------------------------

async def run_once(
    settings: Settings,
    api_key: str,
    master_db: str,
    dry_run: bool = False,
) -> RunReport:
    """Build source, channels and orchestrator from settings and run one pass."""
    source = NotionSource(api_key, settings=settings.notion, defaults=settings.defaults)
    channels = ChannelFactory(timeout=settings.run.send_timeout, dry_run=dry_run)
    orchestrator = ReminderOrchestrator(
        source,
        channels,
        holidays=settings.run.holidays,
        max_concurrency=settings.run.max_concurrency,
        log_queue=get_log_queue(),
    )
    try:
        return await orchestrator.run(master_db)
    finally:
        await channels.close_all_clients()
        await source.aclose()


def cmd_run(args: argparse.Namespace) -> int:
    """
    One reminder pass:
    1. Load reminder.yaml and configure logging
    2. Resolve the Notion API key and master database ID
    3. Run the orchestrator and print the report
    """
    try:
        settings = load_settings(args.config)
    except ReminderError as e:
        print(f"[ERROR] {e.message}")
        return 1

    configure_logging(settings.logging.level, settings.logging.format)
    if settings.logging.file_logging:
        init_logging(log_dir=settings.logging.directory)

    credentials = _credential_manager(settings)
    try:
        api_key = credentials.get_credential(API_KEY_NAME)
        master_db = (
            args.master_db
            or settings.notion.master_database_id
            or credentials.get_credential(MASTER_DB_NAME)
        )
    except ReminderError as e:
        print(f"[ERROR] {e.message}")
        shutdown_logging()
        return 1

    try:
        report = asyncio.run(run_once(settings, api_key, master_db, dry_run=args.dry_run))
    except ReminderError as e:
        logger.error(f"Run failed: {e.message}")
        print(f"[ERROR] {e.message}")
        return 1
    except KeyboardInterrupt:
        print("\nRun interrupted.")
        return 1
    finally:
        shutdown_logging()

    print(json.dumps(report.to_dict(), indent=2, default=str))
    return 0


# ---------------------------------------------------------------------------
# schedule-reminder timing
# ---------------------------------------------------------------------------

def _parse_due(value: str, tz: ZoneInfo) -> datetime:
    if len(value) == 10:
        return datetime.combine(date.fromisoformat(value), time(), tzinfo=tz)
    parsed = datetime.fromisoformat(value)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=tz)
    return parsed


def cmd_timing(args: argparse.Namespace) -> int:
    """Print the reminder date and offset label for one expression."""
    try:
        tz = ZoneInfo(args.tz)
    except (ZoneInfoNotFoundError, ValueError):
        print(f"[ERROR] Unknown timezone: {args.tz}")
        return 1

    try:
        due = _parse_due(args.due, tz)
        holidays = [date.fromisoformat(h) for h in args.holiday]
    except ValueError as e:
        print(f"[ERROR] Invalid date: {e}")
        return 1

    calculator = BusinessDayCalculator(holidays, tz)
    try:
        reminder = evaluate(due, args.expression, calculator)
    except TimingError as e:
        print(f"[ERROR] {e.message}")
        return 1

    print(f"Due:      {due.astimezone(tz).date().isoformat()}")
    print(f"Reminder: {reminder.astimezone(tz).date().isoformat()}")
    print(f"Label:    {format_days_text(args.expression)}")
    return 0


# ---------------------------------------------------------------------------
# schedule-reminder secrets
# ---------------------------------------------------------------------------

def cmd_secrets(args: argparse.Namespace) -> int:
    """Set, show or delete one credential in the encrypted store."""
    try:
        settings = load_settings(args.config)
    except ReminderError as e:
        print(f"[ERROR] {e.message}")
        return 1

    manager = _credential_manager(settings)
    path = manager.parameter_path(args.name)

    try:
        if args.action == "set":
            if args.value is None:
                print("[ERROR] A value is required for 'set'")
                return 1
            manager.set_credential(args.name, args.value)
            print(f"[OK] Stored {path}")
            return 0

        if args.action == "get":
            value = manager.get_stored(args.name)
            if value is None:
                print(f"[ERROR] Not found: {path}")
                return 1
            print(value)
            return 0

        if manager.delete_credential(args.name):
            print(f"[OK] Deleted {path}")
            return 0
        print(f"[WARN] Not found: {path}")
        return 1
    except ReminderError as e:
        print(f"[ERROR] {e.message}")
        return 1


# ---------------------------------------------------------------------------
# schedule-reminder init
# ---------------------------------------------------------------------------

def _split_list(value: str) -> List[str]:
    return [part.strip() for part in value.split(",") if part.strip()]


async def init_workspace(
    settings: Settings,
    api_key: str,
    parent_page: str,
    args: argparse.Namespace,
    sample: Optional[SampleConfig] = None,
) -> SetupResult:
    setup = NotionSetup(api_key, settings=settings.notion)
    try:
        return await setup.initialize(
            parent_page,
            config_db_name=args.config_db_name,
            schedule_db_name=None if args.skip_schedule_db else args.schedule_db_name,
            timing_options=_split_list(args.timing_options),
            channel_options=_split_list(args.channel_options),
            sample=sample,
        )
    finally:
        await setup.aclose()


def cmd_init(args: argparse.Namespace) -> int:
    """Create the master (and schedule) databases and print their IDs."""
    try:
        settings = load_settings(args.config)
    except ReminderError as e:
        print(f"[ERROR] {e.message}")
        return 1
    configure_logging(settings.logging.level, settings.logging.format)

    if not _split_list(args.timing_options):
        print("[ERROR] --timing-options must not be empty")
        return 1
    if not _split_list(args.channel_options):
        print("[ERROR] --channel-options must not be empty")
        return 1

    sample = None
    if args.create_sample_config:
        if args.skip_schedule_db:
            print("[ERROR] --create-sample-config needs the schedule database (drop --skip-schedule-db)")
            return 1
        if not args.sample_webhook_url:
            print("[ERROR] --sample-webhook-url is required with --create-sample-config")
            return 1
        sample = SampleConfig(
            webhook_url=args.sample_webhook_url,
            name=args.sample_name,
            channel=args.sample_channel,
            reminder_timings=_split_list(args.sample_timings),
            channel_token=args.sample_channel_token,
        )

    credentials = _credential_manager(settings)
    try:
        api_key = credentials.get_credential(API_KEY_NAME)
        parent_page = args.parent_page or credentials.get_credential(PARENT_PAGE_NAME)
        result = asyncio.run(init_workspace(settings, api_key, parent_page, args, sample))
    except ReminderError as e:
        print(f"[ERROR] {e.message}")
        return 1

    print("Notion databases initialized.")
    print(f"Master DB ID:   {result.master_database_id}")
    print(f"Master DB URL:  {result.master_database_url}")
    if result.schedule_database_id:
        print(f"Schedule DB ID:  {result.schedule_database_id}")
        print(f"Schedule DB URL: {result.schedule_database_url}")
    if result.sample_page_id:
        print(f"Sample config:  {result.sample_page_id} {result.sample_page_url}")
    print(f"\nSet {MASTER_DB_NAME} (or notion.master_database_id) to the master DB ID.")
    return 0
