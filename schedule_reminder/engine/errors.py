"""
Schedule Reminder Error Hierarchy — Structured exceptions for run diagnostics.

Every error carries the entity context it was raised for (config_id, item_id,
expression, channel, ...) so that a failed run can be diagnosed from the logs
alone. Errors are serializable to JSON for the structured run log.

Hierarchy:
    ReminderError
    ├── ReminderConfigError        — Settings or configuration list unusable (fatal)
    ├── ReminderValidationError    — Configuration / due-item row failed validation
    ├── ReminderCredentialError    — Credential missing or undecryptable
    ├── SourceError                — Remote document database call failed
    ├── TimingError                — Timing expression could not be evaluated
    │   ├── UnsupportedTimingError
    │   └── CalculatorRequiredError
    └── ChannelError               — Notification channel failure
        ├── UnsupportedChannelError
        ├── ChannelNotImplementedError
        ├── ChannelConfigError
        └── DeliveryError
"""

from __future__ import annotations

import json
from datetime import datetime, timezone
from typing import Any, Dict, Optional


class ReminderError(Exception):
    """
    Base error for all reminder engine failures.
    Structured for debugging — all context serializable to JSON.
    """

    def __init__(self, message: str, **context: Any):
        self.message = message
        self.config_id: Optional[str] = context.get("config_id")
        self.item_id: Optional[str] = context.get("item_id")
        self.error_type: str = self.__class__.__name__
        self.context: Dict[str, Any] = context
        self.timestamp: str = datetime.now(timezone.utc).isoformat()
        super().__init__(message)

    def to_dict(self) -> Dict[str, Any]:
        """Serialize error to a JSON-compatible dict for the run log."""
        return {
            "error_type": self.error_type,
            "message": self.message,
            "config_id": self.config_id,
            "item_id": self.item_id,
            "timestamp": self.timestamp,
            "context": {
                k: str(v) for k, v in self.context.items()
                if k not in ("config_id", "item_id")
            },
        }

    def to_json(self) -> str:
        """Serialize to JSON string."""
        return json.dumps(self.to_dict(), default=str)

    def __repr__(self) -> str:
        parts = [f"{self.error_type}: {self.message}"]
        if self.config_id:
            parts.append(f"config_id={self.config_id}")
        if self.item_id:
            parts.append(f"item_id={self.item_id}")
        return " | ".join(parts)


class ReminderConfigError(ReminderError):
    """Settings file invalid, or the configuration list could not be loaded."""
    pass


class ReminderValidationError(ReminderError):
    """
    A configuration or due-item row failed validation.
    Row-level: the row is dropped with a warning, processing continues.
    """

    def __init__(self, message: str, **context: Any):
        self.field: Optional[str] = context.get("field")
        super().__init__(message, **context)

    def to_dict(self) -> Dict[str, Any]:
        d = super().to_dict()
        d["field"] = self.field
        return d


class ReminderCredentialError(ReminderError):
    """Credential not found in the parameter store or environment, or undecryptable."""

    def __init__(self, message: str, **context: Any):
        self.credential_name: Optional[str] = context.get("credential_name")
        super().__init__(message, **context)


class SourceError(ReminderError):
    """Configuration / due-item source call failed (HTTP status or transport)."""

    def __init__(self, message: str, **context: Any):
        self.status_code: Optional[int] = context.get("status_code")
        self.database_id: Optional[str] = context.get("database_id")
        super().__init__(message, **context)

    def to_dict(self) -> Dict[str, Any]:
        d = super().to_dict()
        d["status_code"] = self.status_code
        d["database_id"] = self.database_id
        return d


class TimingError(ReminderError):
    """A timing expression could not be turned into a reminder date."""

    def __init__(self, message: str, **context: Any):
        self.expression: Optional[str] = context.get("expression")
        super().__init__(message, **context)


class UnsupportedTimingError(TimingError):
    """Expression does not match any form of the timing grammar."""
    pass


class CalculatorRequiredError(TimingError):
    """Business-day expression evaluated without a business-day calculator."""
    pass


class ChannelError(ReminderError):
    """Notification channel construction or delivery failed."""

    def __init__(self, message: str, **context: Any):
        self.channel: Optional[str] = context.get("channel")
        super().__init__(message, **context)


class UnsupportedChannelError(ChannelError):
    """Configured channel name is not part of the channel enumeration."""
    pass


class ChannelNotImplementedError(ChannelError):
    """Channel name is recognized but no sender ships for it."""
    pass


class ChannelConfigError(ChannelError):
    """Channel is missing a required field (URL, token, destination)."""
    pass


class DeliveryError(ChannelError):
    """Send attempt failed: non-2xx response or transport error."""

    def __init__(self, message: str, **context: Any):
        self.status_code: Optional[int] = context.get("status_code")
        super().__init__(message, **context)

    def to_dict(self) -> Dict[str, Any]:
        d = super().to_dict()
        d["channel"] = self.channel
        d["status_code"] = self.status_code
        return d
