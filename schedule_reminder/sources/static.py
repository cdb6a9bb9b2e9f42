"""In-memory reminder source over pre-built rows."""

from __future__ import annotations

import logging
from datetime import date
from typing import Any, Dict, List, Mapping, Optional, Sequence

from schedule_reminder.engine.config import ReminderDefaults
from schedule_reminder.engine.errors import ReminderValidationError
from schedule_reminder.records.models import DueItem, ReminderConfiguration
from schedule_reminder.sources.base import ReminderSource

logger = logging.getLogger("schedule_reminder.sources.static")


class StaticSource(ReminderSource):
    """
    Serves configuration rows and due-item rows from memory.

    Rows are validated like any remote source's rows: invalid ones are
    dropped with a warning. Config rows carry an optional "enabled" flag
    (default True). Due items are keyed by target_database_id; a key
    mapped to an Exception raises it as a fetch failure.
    """

    def __init__(
        self,
        config_rows: Sequence[Dict[str, Any]],
        item_rows: Optional[Mapping[str, Any]] = None,
        defaults: Optional[ReminderDefaults] = None,
    ):
        self._config_rows = list(config_rows)
        self._item_rows = dict(item_rows or {})
        self._defaults = defaults or ReminderDefaults()

    async def load_reminder_configs(self, master_ref: str) -> List[ReminderConfiguration]:
        configs: List[ReminderConfiguration] = []
        for row in self._config_rows:
            if not row.get("enabled", True):
                continue
            data = {k: v for k, v in row.items() if k != "enabled"}
            try:
                configs.append(ReminderConfiguration.from_row(data, defaults=self._defaults))
            except ReminderValidationError as e:
                logger.warning(f"Skipping invalid config {row.get('id')}: {e.message} ({e.field})")
        return configs

    async def fetch_due_items(self, config: ReminderConfiguration, today: date) -> List[DueItem]:
        rows = self._item_rows.get(config.target_database_id, [])
        if isinstance(rows, Exception):
            raise rows

        items: List[DueItem] = []
        for row in rows:
            try:
                item = DueItem.from_row(row)
            except ReminderValidationError as e:
                logger.warning(f"Skipping invalid item {row.get('id')}: {e.message} ({e.field})")
                continue
            if item.due.astimezone(config.tz).date() >= today:
                items.append(item)
        return items
