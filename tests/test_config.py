from __future__ import annotations

import json
import logging

import pytest

from app.core.config import AppConfig
from app.core.logging import JsonLogFormatter, set_correlation_id


def test_from_env_defaults(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in (
        "MONGODB_URI",
        "AUTH_ENABLED",
        "REPORTING_TIMEZONE",
        "ORDER_LABEL_BASE",
        "UNIQUE_TOKEN_ATTEMPTS",
        "CORS_ALLOWED_ORIGINS",
    ):
        monkeypatch.delenv(name, raising=False)

    config = AppConfig.from_env()

    assert config.mongo.uri == "mongodb://localhost:27017"
    assert config.auth.enabled is False
    assert config.reporting.timezone == "UTC"
    assert config.reporting.unique_token_attempts == 5
    assert config.security.cors_allowed_origins == ["http://localhost:5173"]


def test_from_env_overrides(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("AUTH_ENABLED", "yes")
    monkeypatch.setenv("REPORTING_TIMEZONE", "America/Phoenix")
    monkeypatch.setenv("ORDER_LABEL_BASE", "60000")
    monkeypatch.setenv("UNIQUE_TOKEN_ATTEMPTS", "0")
    monkeypatch.setenv("CORS_ALLOWED_ORIGINS", "https://a.example, ,https://b.example")

    config = AppConfig.from_env()

    assert config.auth.enabled is True
    assert config.reporting.timezone == "America/Phoenix"
    assert config.reporting.order_label_base == 60000
    assert config.reporting.unique_token_attempts == 1
    assert config.security.cors_allowed_origins == ["https://a.example", "https://b.example"]


def test_json_log_formatter_includes_context_and_extras() -> None:
    set_correlation_id("req-9")
    record = logging.LogRecord("app", logging.INFO, __file__, 1, "document_created", None, None)
    record.collection = "clients"
    record.entity_id = "abc"

    payload = json.loads(JsonLogFormatter().format(record))

    assert payload["message"] == "document_created"
    assert payload["correlation_id"] == "req-9"
    assert payload["collection"] == "clients"
    assert payload["entity_id"] == "abc"
    assert "path" not in payload
