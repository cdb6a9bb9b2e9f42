"""
Notion reminder source — configurations and due items from Notion databases.

Pipeline (per query):
    1. POST /databases/{id}/query with filter + sort, bearer auth, Notion-Version
    2. Follow has_more / next_cursor until the result set is exhausted
    3. Flatten each page's properties to plain values
    4. Validate rows; invalid rows are dropped with a warning

Master (configuration) database properties:
    Name, Enabled, Target Database ID, Reminder Timings, Notification Channel,
    Webhook URL, Channel Access Token, Recipient ID, Message Template,
    Date Property Name, Title Property Name, Timezone
"""

from __future__ import annotations

import logging
from datetime import date, datetime, time, tzinfo
from typing import Any, Dict, List, Optional

import httpx

from schedule_reminder.engine.config import NotionConfig, ReminderDefaults
from schedule_reminder.engine.errors import ReminderValidationError, SourceError
from schedule_reminder.records.models import AttributeValue, DueItem, ReminderConfiguration
from schedule_reminder.sources.base import ReminderSource

logger = logging.getLogger("schedule_reminder.sources.notion")

# Master database column → ReminderConfiguration field
CONFIG_PROPERTIES = {
    "Name": "name",
    "Target Database ID": "target_database_id",
    "Reminder Timings": "reminder_timings",
    "Notification Channel": "channel",
    "Webhook URL": "webhook_url",
    "Channel Access Token": "channel_token",
    "Recipient ID": "recipient_id",
    "Message Template": "message_template",
    "Date Property Name": "date_property",
    "Title Property Name": "title_property",
    "Timezone": "timezone",
}

ENABLED_PROPERTY = "Enabled"
DESCRIPTION_PROPERTY = "Description"
ITEM_TEMPLATE_PROPERTY = "Message Template"
ITEM_TIMINGS_PROPERTY = "Reminder Timings"


# ---------------------------------------------------------------------------
# Property flattening
# ---------------------------------------------------------------------------

def plain_text(fragments: Optional[List[Dict[str, Any]]]) -> str:
    """Concatenate the plain_text of a rich-text / title fragment list."""
    return "".join(f.get("plain_text", "") for f in fragments or [])


def extract_property_value(prop: Optional[Dict[str, Any]]) -> AttributeValue:
    """
    Flatten one Notion property object to a plain attribute value.

    Unknown or empty properties flatten to None.
    """
    if not prop:
        return None
    kind = prop.get("type")
    value = prop.get(kind) if kind else None

    if kind in ("title", "rich_text"):
        return plain_text(value) or None
    if kind == "number":
        return value
    if kind in ("select", "status"):
        return value.get("name") if value else None
    if kind == "multi_select":
        return [opt.get("name", "") for opt in value or []]
    if kind == "date":
        return value.get("start") if value else None
    if kind == "people":
        return [p["name"] for p in value or [] if p.get("name")]
    if kind == "checkbox":
        return bool(value)
    if kind in ("url", "email", "phone_number"):
        return value or None
    return None


def parse_notion_date(start: str, tz: tzinfo) -> datetime:
    """
    Parse a Notion date "start" value.

    Date-only values ("2024-01-08") become midnight in `tz`; date-times without
    an offset are taken as wall-clock time in `tz`.
    """
    if len(start) == 10:
        return datetime.combine(date.fromisoformat(start), time(), tzinfo=tz)
    parsed = datetime.fromisoformat(start)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=tz)
    return parsed


def config_row_from_page(page: Dict[str, Any]) -> Dict[str, Any]:
    """Map a master-database page to a ReminderConfiguration row."""
    props = page.get("properties", {})
    row: Dict[str, Any] = {"id": page.get("id", "")}
    for column, field in CONFIG_PROPERTIES.items():
        value = extract_property_value(props.get(column))
        if field == "reminder_timings":
            row[field] = value if isinstance(value, list) else []
        else:
            row[field] = value if isinstance(value, str) else ""
    return row


def item_row_from_page(page: Dict[str, Any], config: ReminderConfiguration) -> Dict[str, Any]:
    """Map a target-database page to a DueItem row."""
    props = page.get("properties", {})
    attributes = {name: extract_property_value(prop) for name, prop in props.items()}

    title = extract_property_value(props.get(config.title_property))
    start = extract_property_value(props.get(config.date_property))
    template = extract_property_value(props.get(ITEM_TEMPLATE_PROPERTY))
    timings = extract_property_value(props.get(ITEM_TIMINGS_PROPERTY))
    description = extract_property_value(props.get(DESCRIPTION_PROPERTY))

    return {
        "id": page.get("id", ""),
        "title": title if isinstance(title, str) else "",
        "due": parse_notion_date(start, config.tz) if isinstance(start, str) else None,
        "description": description if isinstance(description, str) else "",
        "message_template": template if isinstance(template, str) else None,
        "reminder_timings": timings if isinstance(timings, list) else [],
        "url": page.get("url", ""),
        "attributes": attributes,
    }


# ---------------------------------------------------------------------------
# Source
# ---------------------------------------------------------------------------

class NotionAPI:
    """
    Thin async client for the Notion REST API.

    Bearer auth, the pinned Notion-Version header and a bounded timeout on
    every call. Non-2xx responses and transport errors become SourceError.
    """

    def __init__(
        self,
        api_key: str,
        settings: Optional[NotionConfig] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self._settings = settings or NotionConfig()
        self._client = httpx.AsyncClient(
            base_url=self._settings.api_base.rstrip("/") + "/",
            headers={
                "Authorization": f"Bearer {api_key}",
                "Notion-Version": self._settings.api_version,
                "Content-Type": "application/json",
            },
            timeout=httpx.Timeout(self._settings.timeout),
            transport=transport,
        )

    async def _post(self, path: str, payload: Dict[str, Any], what: str, **context: Any) -> Dict[str, Any]:
        try:
            response = await self._client.post(path, json=payload)
        except httpx.HTTPError as e:
            raise SourceError(f"{what} failed: {e.__class__.__name__}: {e}", **context)

        if not 200 <= response.status_code < 300:
            try:
                detail = response.json().get("message", "")
            except ValueError:
                detail = response.text[:200]
            raise SourceError(
                f"{what} returned status {response.status_code}: {detail}",
                status_code=response.status_code,
                **context,
            )
        return response.json()

    async def aclose(self) -> None:
        await self._client.aclose()


class NotionSource(NotionAPI, ReminderSource):
    """Reads reminder configurations and due items from Notion databases."""

    def __init__(
        self,
        api_key: str,
        settings: Optional[NotionConfig] = None,
        defaults: Optional[ReminderDefaults] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        super().__init__(api_key, settings=settings, transport=transport)
        self._defaults = defaults or ReminderDefaults()

    async def _query_database(
        self,
        database_id: str,
        body: Dict[str, Any],
    ) -> List[Dict[str, Any]]:
        """Query a database, following pagination to the end."""
        pages: List[Dict[str, Any]] = []
        cursor: Optional[str] = None

        while True:
            payload = dict(body, page_size=self._settings.page_size)
            if cursor:
                payload["start_cursor"] = cursor

            data = await self._post(
                f"databases/{database_id}/query",
                payload,
                f"Query of database {database_id}",
                database_id=database_id,
            )
            pages.extend(data.get("results", []))
            cursor = data.get("next_cursor")
            if not data.get("has_more") or not cursor:
                return pages

    async def load_reminder_configs(self, master_ref: str) -> List[ReminderConfiguration]:
        body = {"filter": {"property": ENABLED_PROPERTY, "checkbox": {"equals": True}}}
        pages = await self._query_database(master_ref, body)

        configs: List[ReminderConfiguration] = []
        for page in pages:
            row = config_row_from_page(page)
            try:
                configs.append(ReminderConfiguration.from_row(row, defaults=self._defaults))
            except ReminderValidationError as e:
                logger.warning(f"Skipping invalid config {row['id']}: {e.message} ({e.field})")
        return configs

    async def fetch_due_items(self, config: ReminderConfiguration, today: date) -> List[DueItem]:
        body = {
            "filter": {
                "property": config.date_property,
                "date": {"on_or_after": today.isoformat()},
            },
            "sorts": [{"property": config.date_property, "direction": "ascending"}],
        }
        pages = await self._query_database(config.target_database_id, body)

        items: List[DueItem] = []
        for page in pages:
            try:
                row = item_row_from_page(page, config)
            except ValueError as e:
                logger.warning(f"Skipping item {page.get('id')}: unreadable due date ({e})")
                continue
            try:
                items.append(DueItem.from_row(row))
            except ReminderValidationError as e:
                logger.warning(f"Skipping invalid item {row['id']}: {e.message} ({e.field})")
        return items
