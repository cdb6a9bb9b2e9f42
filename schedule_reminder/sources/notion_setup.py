"""
Notion workspace bootstrap — creates the databases NotionSource reads.

    1. Master database: one row per reminder configuration, with every column
       in CONFIG_PROPERTIES plus the Enabled checkbox
    2. Schedule database (optional): title, due date, description and the
       per-item override columns
    3. Sample configuration row (optional) pointing the master database at
       the new schedule database

Both databases are created inline under a parent page the integration has
been shared with.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence

from schedule_reminder.engine.config import DEFAULT_TIMEZONE, ReminderDefaults
from schedule_reminder.engine.errors import ReminderConfigError
from schedule_reminder.sources.notion import (
    CONFIG_PROPERTIES,
    DESCRIPTION_PROPERTY,
    ENABLED_PROPERTY,
    ITEM_TEMPLATE_PROPERTY,
    ITEM_TIMINGS_PROPERTY,
    NotionAPI,
)

logger = logging.getLogger("schedule_reminder.sources.notion_setup")

DEFAULT_CONFIG_DB_NAME = "Reminder Configurations"
DEFAULT_SCHEDULE_DB_NAME = "Schedule"

DEFAULT_TIMING_OPTIONS = (
    "same-day",
    "1-days-before",
    "2-days-before",
    "3-days-before",
    "1-business-days-before",
    "2-business-days-before",
    "3-business-days-before",
    "4-business-days-before",
    "5-business-days-before",
    "1-weeks-before",
    "2-weeks-before",
)
DEFAULT_CHANNEL_OPTIONS = ("Discord", "LINE", "Slack")

# Notion property type for each master database column
CONFIG_PROPERTY_TYPES = {
    "Name": "title",
    "Target Database ID": "rich_text",
    "Reminder Timings": "multi_select",
    "Notification Channel": "select",
    "Webhook URL": "url",
    "Channel Access Token": "rich_text",
    "Recipient ID": "rich_text",
    "Message Template": "rich_text",
    "Date Property Name": "rich_text",
    "Title Property Name": "rich_text",
    "Timezone": "select",
}


def rich_text(value: str) -> List[Dict[str, Any]]:
    return [{"type": "text", "text": {"content": value}}]


def select_options(values: Sequence[str]) -> Dict[str, Any]:
    return {"options": [{"name": v} for v in values]}


def master_database_schema(
    timing_options: Sequence[str] = DEFAULT_TIMING_OPTIONS,
    channel_options: Sequence[str] = DEFAULT_CHANNEL_OPTIONS,
    timezone: str = DEFAULT_TIMEZONE,
) -> Dict[str, Dict[str, Any]]:
    """Property schema of the master database, keyed by column name."""
    options = {
        "Reminder Timings": timing_options,
        "Notification Channel": channel_options,
        "Timezone": [timezone],
    }
    schema: Dict[str, Dict[str, Any]] = {ENABLED_PROPERTY: {"checkbox": {}}}
    for column in CONFIG_PROPERTIES:
        kind = CONFIG_PROPERTY_TYPES[column]
        schema[column] = {kind: select_options(options[column]) if column in options else {}}
    return schema


def schedule_database_schema(
    timing_options: Sequence[str] = DEFAULT_TIMING_OPTIONS,
    defaults: Optional[ReminderDefaults] = None,
) -> Dict[str, Dict[str, Any]]:
    """Property schema of a schedule database, using the default title/date column names."""
    defaults = defaults or ReminderDefaults()
    return {
        defaults.title_property: {"title": {}},
        defaults.date_property: {"date": {}},
        DESCRIPTION_PROPERTY: {"rich_text": {}},
        ITEM_TIMINGS_PROPERTY: {"multi_select": select_options(timing_options)},
        ITEM_TEMPLATE_PROPERTY: {"rich_text": {}},
    }


@dataclass
class SampleConfig:
    """Values for the optional sample configuration row."""

    webhook_url: str
    name: str = "Sample reminder"
    channel: str = "Discord"
    reminder_timings: Sequence[str] = ("same-day", "1-days-before")
    channel_token: str = ""
    recipient_id: str = ""


@dataclass
class SetupResult:
    master_database_id: str
    master_database_url: str = ""
    schedule_database_id: Optional[str] = None
    schedule_database_url: Optional[str] = None
    sample_page_id: Optional[str] = None
    sample_page_url: Optional[str] = None


class NotionSetup(NotionAPI):
    """Creates the master and schedule databases under a parent page."""

    async def create_database(
        self,
        parent_page_id: str,
        title: str,
        properties: Dict[str, Dict[str, Any]],
    ) -> Dict[str, Any]:
        body = {
            "parent": {"type": "page_id", "page_id": parent_page_id},
            "title": rich_text(title),
            "is_inline": True,
            "properties": properties,
        }
        database = await self._post(
            "databases", body, f"Creating database '{title}'", parent_page_id=parent_page_id
        )
        logger.info(f"Created database '{title}' ({database.get('id')})")
        return database

    async def create_sample_config(
        self,
        master_database_id: str,
        schedule_database_id: str,
        sample: SampleConfig,
    ) -> Dict[str, Any]:
        properties: Dict[str, Any] = {
            "Name": {"title": rich_text(sample.name)},
            ENABLED_PROPERTY: {"checkbox": True},
            "Target Database ID": {"rich_text": rich_text(schedule_database_id)},
            "Reminder Timings": {"multi_select": [{"name": t} for t in sample.reminder_timings]},
            "Notification Channel": {"select": {"name": sample.channel}},
            "Webhook URL": {"url": sample.webhook_url},
        }
        if sample.channel_token:
            properties["Channel Access Token"] = {"rich_text": rich_text(sample.channel_token)}
        if sample.recipient_id:
            properties["Recipient ID"] = {"rich_text": rich_text(sample.recipient_id)}

        body = {
            "parent": {"type": "database_id", "database_id": master_database_id},
            "properties": properties,
        }
        page = await self._post(
            "pages", body, "Creating sample configuration", database_id=master_database_id
        )
        logger.info(f"Created sample configuration '{sample.name}' ({page.get('id')})")
        return page

    async def initialize(
        self,
        parent_page_id: str,
        config_db_name: str = DEFAULT_CONFIG_DB_NAME,
        schedule_db_name: Optional[str] = DEFAULT_SCHEDULE_DB_NAME,
        timing_options: Sequence[str] = DEFAULT_TIMING_OPTIONS,
        channel_options: Sequence[str] = DEFAULT_CHANNEL_OPTIONS,
        sample: Optional[SampleConfig] = None,
    ) -> SetupResult:
        """
        Create the master database, then the schedule database unless
        `schedule_db_name` is None, then the sample row if `sample` is given.

        Raises:
            ReminderConfigError: sample requested without a schedule database.
            SourceError: any Notion call failed.
        """
        if sample is not None and schedule_db_name is None:
            raise ReminderConfigError("a sample configuration needs the schedule database")

        master = await self.create_database(
            parent_page_id,
            config_db_name,
            master_database_schema(timing_options, channel_options),
        )
        result = SetupResult(master_database_id=master["id"], master_database_url=master.get("url", ""))

        if schedule_db_name is None:
            return result

        schedule = await self.create_database(
            parent_page_id,
            schedule_db_name,
            schedule_database_schema(timing_options),
        )
        result.schedule_database_id = schedule["id"]
        result.schedule_database_url = schedule.get("url", "")

        if sample is not None:
            page = await self.create_sample_config(result.master_database_id, schedule["id"], sample)
            result.sample_page_id = page["id"]
            result.sample_page_url = page.get("url", "")
        return result
