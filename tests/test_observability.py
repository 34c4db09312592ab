"""Tests for settings and structured logging"""

import json
import logging

import pytest
from pydantic import ValidationError

from gitraf.core.config import Settings, get_settings, reset_settings
from gitraf.core.exceptions import RepositoryPathError
from gitraf.infrastructure.logging import bind_context, clear_context, get_logger, setup_logging
from gitraf.infrastructure.logging_processors import (
    add_session_context,
    sanitize_sensitive_data,
    set_log_severity,
)


class TestSettings:
    """Test environment-driven configuration"""

    def test_defaults(self):
        settings = Settings(_env_file=None)

        assert settings.pages_config_filename == "git-pages.json"
        assert settings.pages_keep_releases == 3
        assert settings.transport_command == []
        assert settings.is_development is False

    def test_environment_overrides(self, monkeypatch, tmp_path):
        monkeypatch.setenv("GITRAF_REPOSITORY_BASE_PATH", str(tmp_path))
        monkeypatch.setenv("GITRAF_TRANSPORT_COMMAND", '["docker", "exec", "-i", "ogit"]')
        monkeypatch.setenv("GITRAF_PAGES_ENABLED", "false")

        settings = Settings(_env_file=None)

        assert settings.repository_base_path == tmp_path
        assert settings.transport_command == ["docker", "exec", "-i", "ogit"]
        assert settings.pages_enabled is False

    def test_keep_releases_must_be_positive(self):
        with pytest.raises(ValidationError):
            Settings(_env_file=None, pages_keep_releases=0)

    def test_cached_accessor(self):
        reset_settings()
        try:
            assert get_settings() is get_settings()
        finally:
            reset_settings()


class TestErrors:
    """Test structured error output"""

    def test_error_response(self):
        error = RepositoryPathError("../x", "path traversal is not allowed")

        response = error.to_error_response(session_id="abc")

        assert response.code == "GRAF-403"
        assert response.session_id == "abc"
        assert response.details == {"path": "../x", "reason": "path traversal is not allowed"}


class TestLogProcessors:
    """Test custom structlog processors"""

    def test_sensitive_keys_are_redacted(self):
        event = sanitize_sensitive_data(
            None, "info", {"event": "x", "api_key": "k", "nested": {"password": "p", "ok": 1}}
        )

        assert event["api_key"] == "***REDACTED***"
        assert event["nested"] == {"password": "***REDACTED***", "ok": 1}

    def test_session_context_is_copied(self):
        clear_context()
        bind_context(session_id="s1", repository="site", unrelated="x")
        try:
            event = add_session_context(None, "info", {"event": "x"})
        finally:
            clear_context()

        assert event["session_id"] == "s1"
        assert event["repository"] == "site"
        assert "unrelated" not in event

    def test_severity(self):
        assert set_log_severity(None, "warning", {"level": "warning"})["severity"] == "WARNING"


class TestSetupLogging:
    """Logs must never reach stdout, which carries the pack protocol"""

    @pytest.fixture(autouse=True)
    def restore_logging(self):
        yield
        logging.getLogger().handlers.clear()
        clear_context()

    def test_json_logs_go_to_stderr(self, capsys):
        setup_logging(Settings(_env_file=None, log_format="json"))
        bind_context(session_id="s1", username="alice")

        get_logger("gitraf.test").info("session_started", token="secret-value")

        captured = capsys.readouterr()
        assert captured.out == ""
        record = json.loads(captured.err.strip().splitlines()[-1])
        assert record["event"] == "session_started"
        assert record["session_id"] == "s1"
        assert record["username"] == "alice"
        assert record["token"] == "***REDACTED***"
        assert record["severity"] == "INFO"
        assert record["service_name"] == "gitraf"
