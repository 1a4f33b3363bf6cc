"""Environment-driven settings for the CRM API."""

from __future__ import annotations

import os
from dataclasses import dataclass

_TRUTHY = frozenset({"1", "true", "yes", "on"})


def _env(name: str, default: str) -> str:
    return os.getenv(name, "").strip() or default


def _env_int(name: str, default: int) -> int:
    return int(_env(name, str(default)))


def _env_flag(name: str) -> bool:
    return _env(name, "0").lower() in _TRUTHY


def _env_list(name: str, default: str) -> list[str]:
    return [item.strip() for item in _env(name, default).split(",") if item.strip()]


@dataclass(frozen=True)
class MongoConfig:
    uri: str
    database: str
    server_selection_timeout_ms: int


@dataclass(frozen=True)
class AuthConfig:
    """Bearer token signing; ``enabled`` switches the whole gate."""

    enabled: bool
    secret_key: str
    access_token_ttl_seconds: int
    issuer: str


@dataclass(frozen=True)
class LoggingConfig:
    level: str


@dataclass(frozen=True)
class SecurityConfig:
    cors_allowed_origins: list[str]
    request_max_bytes: int


@dataclass(frozen=True)
class ReportingConfig:
    """Reporting timezone plus the knobs for label and token allocation."""

    timezone: str
    order_label_base: int
    unique_token_attempts: int


@dataclass(frozen=True)
class AppConfig:
    mongo: MongoConfig
    auth: AuthConfig
    logging: LoggingConfig
    security: SecurityConfig
    reporting: ReportingConfig

    @staticmethod
    def from_env() -> "AppConfig":
        """Read every setting from the process environment, with local defaults."""
        return AppConfig(
            mongo=MongoConfig(
                uri=_env("MONGODB_URI", "mongodb://localhost:27017"),
                database=_env("MONGODB_DB", "rebelxdb"),
                server_selection_timeout_ms=_env_int("MONGODB_TIMEOUT_MS", 3000),
            ),
            auth=AuthConfig(
                enabled=_env_flag("AUTH_ENABLED"),
                secret_key=_env("AUTH_SECRET_KEY", "dev-insecure-secret-change-me"),
                access_token_ttl_seconds=_env_int(
                    "AUTH_ACCESS_TOKEN_TTL_SECONDS", 7 * 24 * 3600
                ),
                issuer=_env("AUTH_ISSUER", "rebelx-crm"),
            ),
            logging=LoggingConfig(level=_env("LOG_LEVEL", "INFO")),
            security=SecurityConfig(
                cors_allowed_origins=_env_list(
                    "CORS_ALLOWED_ORIGINS", "http://localhost:5173"
                ),
                request_max_bytes=_env_int("REQUEST_MAX_BYTES", 1024 * 1024),
            ),
            reporting=ReportingConfig(
                timezone=_env("REPORTING_TIMEZONE", "UTC"),
                order_label_base=_env_int("ORDER_LABEL_BASE", 52747),
                unique_token_attempts=max(1, _env_int("UNIQUE_TOKEN_ATTEMPTS", 5)),
            ),
        )
