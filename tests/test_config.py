"""Unit tests for schedule_reminder.engine.config — Settings, loading."""

import pytest
from datetime import date

from schedule_reminder.engine.config import (
    DEFAULT_MESSAGE_TEMPLATE,
    DEFAULT_TIMEZONE,
    LoggingConfig,
    ReminderDefaults,
    RunConfig,
    Settings,
    load_settings,
)
from schedule_reminder.engine.errors import ReminderConfigError


class TestSettings:
    """Test Settings Pydantic model."""

    def test_defaults(self):
        cfg = Settings()
        assert cfg.notion.api_version == "2022-06-28"
        assert cfg.notion.page_size == 100
        assert cfg.run.max_concurrency == 1
        assert cfg.run.holidays == []
        assert cfg.logging.format == "text"
        assert cfg.defaults.timezone == DEFAULT_TIMEZONE
        assert cfg.defaults.message_template == DEFAULT_MESSAGE_TEMPLATE

    def test_invalid_log_format(self):
        with pytest.raises(ValueError, match="text/json"):
            LoggingConfig(format="xml")

    def test_concurrency_must_be_positive(self):
        with pytest.raises(ValueError):
            RunConfig(max_concurrency=0)

    def test_holidays_parse_as_dates(self):
        cfg = RunConfig(holidays=["2024-01-01", "2024-01-08"])
        assert cfg.holidays == [date(2024, 1, 1), date(2024, 1, 8)]

    def test_default_template_mentions_every_fixed_placeholder(self):
        template = ReminderDefaults().message_template
        for placeholder in ("{title}", "{due_date}", "{days_text}", "{url}"):
            assert placeholder in template


class TestLoadSettings:

    def test_load_from_path(self, project_root):
        cfg = load_settings(str(project_root / "reminder.yaml"))
        assert cfg.notion.master_database_id == "master-db"
        assert cfg.run.max_concurrency == 2
        assert cfg.run.holidays == [date(2024, 1, 1)]
        assert cfg.logging.level == "DEBUG"

    def test_auto_discovery_walks_up(self, project_root, monkeypatch):
        nested = project_root / "a" / "b"
        nested.mkdir(parents=True)
        monkeypatch.chdir(nested)
        cfg = load_settings()
        assert cfg.notion.master_database_id == "master-db"

    def test_missing_file_gives_defaults(self, tmp_path):
        cfg = load_settings(str(tmp_path / "absent.yaml"))
        assert cfg == Settings()

    def test_wrapped_document(self, tmp_path):
        path = tmp_path / "reminder.yaml"
        path.write_text("reminder:\n  run:\n    max_concurrency: 4\n", encoding="utf-8")
        assert load_settings(str(path)).run.max_concurrency == 4

    def test_invalid_values_raise_config_error(self, tmp_path):
        path = tmp_path / "reminder.yaml"
        path.write_text("logging:\n  format: xml\n", encoding="utf-8")
        with pytest.raises(ReminderConfigError) as exc_info:
            load_settings(str(path))
        assert exc_info.value.context["path"] == str(path)

    def test_malformed_yaml_raises_config_error(self, tmp_path):
        path = tmp_path / "reminder.yaml"
        path.write_text("run: [unclosed\n", encoding="utf-8")
        with pytest.raises(ReminderConfigError):
            load_settings(str(path))
