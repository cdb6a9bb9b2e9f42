"""
Schedule Reminder Configuration — Load and validate reminder.yaml at startup.

Usage:
    from schedule_reminder.engine.config import load_settings
"""

from __future__ import annotations

from datetime import date
from pathlib import Path
from typing import List, Optional

import yaml
from pydantic import BaseModel, Field, ValidationError, field_validator

from schedule_reminder.engine.errors import ReminderConfigError

CONFIG_FILENAME = "reminder.yaml"

DEFAULT_MESSAGE_TEMPLATE = "[Reminder] {title}\nDue: {due_date} ({days_text})\n{url}"
DEFAULT_TITLE_PROPERTY = "Title"
DEFAULT_DATE_PROPERTY = "Due Date"
DEFAULT_TIMEZONE = "Asia/Tokyo"


# ---------------------------------------------------------------------------
# Pydantic models for reminder.yaml
# ---------------------------------------------------------------------------

class NotionConfig(BaseModel):
    api_base: str = "https://api.notion.com/v1"
    api_version: str = "2022-06-28"
    timeout: float = 10.0
    page_size: int = Field(default=100, ge=1, le=100)
    master_database_id: Optional[str] = None


class ReminderDefaults(BaseModel):
    """
    Fallbacks applied while validating configuration rows.

    Passed as validation context to ReminderConfiguration, so a test (or a
    deployment) can swap them without touching module constants.
    """
    message_template: str = DEFAULT_MESSAGE_TEMPLATE
    title_property: str = DEFAULT_TITLE_PROPERTY
    date_property: str = DEFAULT_DATE_PROPERTY
    timezone: str = DEFAULT_TIMEZONE


class RunConfig(BaseModel):
    max_concurrency: int = Field(default=1, ge=1)
    send_timeout: float = 10.0
    holidays: List[date] = Field(default_factory=list)


class LoggingConfig(BaseModel):
    level: str = "INFO"
    format: str = "text"
    directory: str = ".reminder/logs"
    file_logging: bool = False

    @field_validator("format")
    @classmethod
    def validate_format(cls, v: str) -> str:
        if v not in ("text", "json"):
            raise ValueError(f"logging format must be text/json, got '{v}'")
        return v


class CredentialsConfig(BaseModel):
    store_path: str = ".reminder/secrets.enc"
    prefix: str = "/schedule-reminder"


class Settings(BaseModel):
    """Root model for reminder.yaml."""

    notion: NotionConfig = NotionConfig()
    defaults: ReminderDefaults = ReminderDefaults()
    run: RunConfig = RunConfig()
    logging: LoggingConfig = LoggingConfig()
    credentials: CredentialsConfig = CredentialsConfig()


# ---------------------------------------------------------------------------
# Config Loading Functions
# ---------------------------------------------------------------------------

def _find_config_file() -> Path:
    """Find reminder.yaml by walking up from CWD."""
    current = Path.cwd()
    for parent in [current, *current.parents]:
        if (parent / CONFIG_FILENAME).exists():
            return parent / CONFIG_FILENAME
    return current / CONFIG_FILENAME


def load_settings(config_path: Optional[str] = None) -> Settings:
    """
    Load and validate reminder.yaml.

    Args:
        config_path: Explicit path to reminder.yaml. If None, auto-discovers.

    Returns:
        Validated Settings instance (all defaults when the file is absent).

    Raises:
        ReminderConfigError: If the file is unreadable or fails validation.
    """
    path = Path(config_path) if config_path else _find_config_file()
    if not path.exists():
        return Settings()

    try:
        with open(path, "r", encoding="utf-8") as f:
            raw = yaml.safe_load(f) or {}
    except (OSError, yaml.YAMLError) as e:
        raise ReminderConfigError(f"Cannot read settings file {path}: {e}", path=str(path))

    # Accept both a bare document and one wrapped under "reminder:"
    data = raw.get("reminder", raw)

    try:
        return Settings(**data)
    except ValidationError as e:
        raise ReminderConfigError(
            f"Invalid settings in {path}: {e.error_count()} error(s)",
            path=str(path),
            validation_errors=e.errors(),
        )
