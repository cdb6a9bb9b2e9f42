"""
Reminder records — configuration rows, due items, and the ephemeral notification.

ReminderConfiguration: One reminder policy (target database, timings, channel, template).
DueItem: One row of a target database with a title and a due timestamp.
Notification: Rendered message + destination, built right before dispatch.

Rows are validated with the active ReminderDefaults passed as validation
context, so missing field-name overrides, template and timezone fall back to
whatever the running Settings declare:

    config = ReminderConfiguration.from_row(row, defaults=settings.defaults)
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional, Union
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    ValidationError,
    ValidationInfo,
    field_validator,
)

from schedule_reminder.engine.config import ReminderDefaults
from schedule_reminder.engine.errors import ReminderValidationError

logger = logging.getLogger("schedule_reminder.records.models")

# Values a source may put in a due item's attribute map
AttributeValue = Union[bool, int, float, str, List[str], None]


class Channel(str, Enum):
    """Closed set of channel names a configuration may select."""
    DISCORD = "discord"
    SLACK = "slack"
    LINE = "line"
    EMAIL = "email"

    @classmethod
    def lookup(cls, name: str) -> Optional["Channel"]:
        """Case-insensitive lookup; None when the name is not in the enumeration."""
        try:
            return cls(name.strip().lower())
        except ValueError:
            return None


def _defaults(info: ValidationInfo) -> ReminderDefaults:
    ctx = info.context or {}
    return ctx.get("defaults") or ReminderDefaults()


def _first_error_field(exc: ValidationError) -> Optional[str]:
    errors = exc.errors()
    if errors and errors[0].get("loc"):
        return ".".join(str(p) for p in errors[0]["loc"])
    return None


# ---------------------------------------------------------------------------
# Reminder configuration
# ---------------------------------------------------------------------------

class ReminderConfiguration(BaseModel):
    """
    A reminder policy loaded from the configuration database.

    Required after validation: target_database_id, at least one timing, channel.
    """

    model_config = ConfigDict(frozen=True)

    id: str = Field(description="Row identity in the configuration source")
    name: str = Field(default="", description="Display name")
    target_database_id: str = Field(description="Due-item collection reference")
    reminder_timings: List[str] = Field(description="Default timing expressions, in order")
    channel: str = Field(description="Channel name, matched case-insensitively")
    webhook_url: str = Field(default="")
    channel_token: str = Field(default="", description="Bearer token for token-push channels")
    recipient_id: str = Field(default="", description="Destination for token-push channels")
    message_template: str = Field(default="", validate_default=True)
    title_property: str = Field(default="", validate_default=True)
    date_property: str = Field(default="", validate_default=True)
    timezone: str = Field(default="", validate_default=True)

    @field_validator("target_database_id", "channel")
    @classmethod
    def validate_required(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("required")
        return v

    @field_validator("reminder_timings")
    @classmethod
    def validate_timings(cls, v: List[str]) -> List[str]:
        timings = [t.strip() for t in v if t and t.strip()]
        if not timings:
            raise ValueError("at least one timing required")
        return timings

    @field_validator("message_template", mode="before")
    @classmethod
    def default_template(cls, v: Optional[str], info: ValidationInfo) -> str:
        return v or _defaults(info).message_template

    @field_validator("title_property", mode="before")
    @classmethod
    def default_title_property(cls, v: Optional[str], info: ValidationInfo) -> str:
        return v or _defaults(info).title_property

    @field_validator("date_property", mode="before")
    @classmethod
    def default_date_property(cls, v: Optional[str], info: ValidationInfo) -> str:
        return v or _defaults(info).date_property

    @field_validator("timezone", mode="before")
    @classmethod
    def default_timezone(cls, v: Optional[str], info: ValidationInfo) -> str:
        fallback = _defaults(info).timezone
        if not v:
            return fallback
        try:
            ZoneInfo(v)
        except (ZoneInfoNotFoundError, ValueError):
            logger.warning(f"Unknown timezone '{v}', falling back to {fallback}")
            return fallback
        return v

    @property
    def tz(self) -> ZoneInfo:
        return ZoneInfo(self.timezone)

    @classmethod
    def from_row(
        cls,
        data: Dict[str, Any],
        defaults: Optional[ReminderDefaults] = None,
    ) -> "ReminderConfiguration":
        """
        Validate a raw row into a configuration.

        Raises:
            ReminderValidationError: carrying the first failing field.
        """
        try:
            return cls.model_validate(data, context={"defaults": defaults or ReminderDefaults()})
        except ValidationError as e:
            raise ReminderValidationError(
                f"Invalid reminder configuration: {e.errors()[0]['msg']}",
                config_id=data.get("id"),
                field=_first_error_field(e),
            )


# ---------------------------------------------------------------------------
# Due item
# ---------------------------------------------------------------------------

class DueItem(BaseModel):
    """A task with a title and a zoned due timestamp, subject of reminders."""

    model_config = ConfigDict(frozen=True)

    id: str
    title: str
    due: datetime = Field(description="Due timestamp; must carry a timezone")
    description: str = ""
    message_template: Optional[str] = Field(default=None, description="Per-item template override")
    reminder_timings: List[str] = Field(
        default_factory=list,
        description="Per-item timings; replace the configuration's set when non-empty",
    )
    url: str = Field(default="", description="Link back to the row in the source system")
    attributes: Dict[str, AttributeValue] = Field(default_factory=dict)

    @field_validator("title")
    @classmethod
    def validate_title(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("required")
        return v

    @field_validator("due")
    @classmethod
    def validate_due(cls, v: datetime) -> datetime:
        if v.tzinfo is None:
            raise ValueError("due timestamp must carry a timezone")
        return v

    @field_validator("reminder_timings")
    @classmethod
    def strip_timings(cls, v: List[str]) -> List[str]:
        return [t.strip() for t in v if t and t.strip()]

    @classmethod
    def from_row(cls, data: Dict[str, Any]) -> "DueItem":
        """
        Validate a raw row into a due item.

        Raises:
            ReminderValidationError: carrying the first failing field.
        """
        try:
            return cls.model_validate(data)
        except ValidationError as e:
            raise ReminderValidationError(
                f"Invalid due item: {e.errors()[0]['msg']}",
                item_id=data.get("id"),
                field=_first_error_field(e),
            )


def stringify_attribute(value: AttributeValue) -> Optional[str]:
    """
    Render an attribute value for template substitution.

    None → None (caller skips the placeholder); bool → "true"/"false";
    integral numbers without a fraction, other floats in their shortest
    round-tripping form; lists joined with ", ".
    """
    if value is None:
        return None
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, int):
        return str(value)
    if isinstance(value, float):
        if value.is_integer():
            return str(int(value))
        return repr(value)
    if isinstance(value, list):
        return ", ".join(str(v) for v in value)
    return str(value)


# ---------------------------------------------------------------------------
# Notification
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Notification:
    """One rendered reminder, created immediately before dispatch."""

    item: DueItem
    config: ReminderConfiguration
    expression: str
    message: str
    destination: str
