from __future__ import annotations

from app.core.config import (
    AppConfig,
    AuthConfig,
    LoggingConfig,
    MongoConfig,
    ReportingConfig,
    SecurityConfig,
)


def make_config(*, auth_enabled: bool = False, request_max_bytes: int = 1024) -> AppConfig:
    return AppConfig(
        mongo=MongoConfig(
            uri="mongodb://localhost:27017",
            database="test",
            server_selection_timeout_ms=100,
        ),
        auth=AuthConfig(
            enabled=auth_enabled,
            secret_key="secret",
            access_token_ttl_seconds=900,
            issuer="test",
        ),
        logging=LoggingConfig(level="INFO"),
        security=SecurityConfig(
            cors_allowed_origins=["http://localhost:3000"],
            request_max_bytes=request_max_bytes,
        ),
        reporting=ReportingConfig(
            timezone="UTC",
            order_label_base=100,
            unique_token_attempts=5,
        ),
    )
