"""
Schedule Reminder Test Suite — Shared fixtures and configuration.

Run:  pytest tests/ -v
"""

from __future__ import annotations

import json
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional
from zoneinfo import ZoneInfo

import httpx
import pytest

TOKYO = ZoneInfo("Asia/Tokyo")


# ---------------------------------------------------------------------------
# Environment setup — no real credentials, no settings left over between tests
# ---------------------------------------------------------------------------

@pytest.fixture(autouse=True)
def _isolate_settings(monkeypatch):
    """Reset global singletons and credential env vars between tests."""
    import schedule_reminder.engine.logging as log_mod

    log_mod._global_queue = None
    for name in ("REMINDER_SECRET_KEY", "NOTION_API_KEY", "REMINDER_CONFIG_DB_ID", "NOTION_PARENT_PAGE_ID"):
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def project_root(tmp_path):
    """
    Create a minimal project tree with reminder.yaml.
    Returns the root Path.
    """
    root = tmp_path / "project"
    root.mkdir()
    (root / "reminder.yaml").write_text(
        "notion:\n"
        "  master_database_id: master-db\n"
        "defaults:\n"
        "  timezone: Asia/Tokyo\n"
        "run:\n"
        "  max_concurrency: 2\n"
        "  holidays:\n"
        "    - 2024-01-01\n"
        "logging:\n"
        "  level: DEBUG\n"
        "credentials:\n"
        f"  store_path: {root / 'secrets.enc'}\n",
        encoding="utf-8",
    )
    return root


# ---------------------------------------------------------------------------
# Row builders
# ---------------------------------------------------------------------------

def make_config_row(**overrides: Any) -> Dict[str, Any]:
    """A valid Discord configuration row, overridable per test."""
    row: Dict[str, Any] = {
        "id": "cfg-1",
        "name": "Team Tasks",
        "target_database_id": "db-tasks",
        "reminder_timings": ["same-day"],
        "channel": "discord",
        "webhook_url": "https://discord.example/webhook/1",
        "timezone": "Asia/Tokyo",
    }
    row.update(overrides)
    return row


def make_item_row(**overrides: Any) -> Dict[str, Any]:
    """A valid due-item row (due 2024-01-08 09:00 Tokyo), overridable per test."""
    row: Dict[str, Any] = {
        "id": "item-1",
        "title": "Submit report",
        "due": datetime(2024, 1, 8, 9, 0, tzinfo=TOKYO),
        "url": "https://notion.example/item-1",
    }
    row.update(overrides)
    return row


@pytest.fixture
def config_row():
    return make_config_row


@pytest.fixture
def item_row():
    return make_item_row


# ---------------------------------------------------------------------------
# HTTP fakes
# ---------------------------------------------------------------------------

class RecordingTransport:
    """
    httpx.MockTransport wrapper that records every request.

    `responder` maps a request to a response; default is 200 with an empty body.
    """

    def __init__(self, responder: Optional[Callable[[httpx.Request], httpx.Response]] = None):
        self.requests: List[httpx.Request] = []
        self._responder = responder or (lambda request: httpx.Response(200, text="ok"))
        self.transport = httpx.MockTransport(self._handle)

    def _handle(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return self._responder(request)

    def json_bodies(self) -> List[Dict[str, Any]]:
        return [json.loads(r.content) for r in self.requests]


@pytest.fixture
def recording_transport():
    return RecordingTransport
