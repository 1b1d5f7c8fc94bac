# Overview: Application configuration loaded once at startup from the environment.

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Any, Mapping

from .errors import ConfigurationError


def _env_flag(name: str) -> bool:
    return os.environ.get(name, "").strip().lower() in {"1", "yes", "true", "on"}


class Config:
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-me")

    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL",
        "sqlite:///lako.sqlite3",
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # No default on purpose: create_app refuses to start without it
    JWT_SECRET_KEY = os.environ.get("JWT_SECRET_KEY")
    JWT_EXPIRES_SECONDS = os.environ.get("JWT_EXPIRES_SECONDS", "86400")

    BCRYPT_ROUNDS = os.environ.get("BCRYPT_ROUNDS", "12")

    SMTP_SERVER = os.environ.get("SMTP_SERVER")
    SMTP_PORT = os.environ.get("SMTP_PORT", "587")
    SMTP_USERNAME = os.environ.get("SMTP_USERNAME")
    SMTP_PASSWORD = os.environ.get("SMTP_PASSWORD")
    SMTP_USE_SSL = _env_flag("SMTP_USE_SSL")

    MAIL_FROM_ADDRESS = os.environ.get("MAIL_FROM_ADDRESS", "test@localhost")
    MAIL_FROM_NAME = os.environ.get("MAIL_FROM_NAME", "Lako")
    MAIL_TRANSPORT = os.environ.get("MAIL_TRANSPORT", "smtp")
    MAIL_MAX_RETRIES = os.environ.get("MAIL_MAX_RETRIES", "3")
    MAIL_RETRY_BACKOFF = os.environ.get("MAIL_RETRY_BACKOFF", "1.0")
    MAIL_WORKER_ENABLED = True

    CONFIRM_URL_BASE = os.environ.get("CONFIRM_URL_BASE", "https://lako.io/confirm/")

    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")


@dataclass(frozen=True)
class MailSettings:
    transport: str
    server: str | None
    port: int
    username: str | None
    password: str | None
    use_ssl: bool
    from_address: str
    from_name: str
    max_retries: int
    retry_backoff: float
    worker_enabled: bool
    confirm_url_base: str


@dataclass(frozen=True)
class Settings:
    """
    Validated, immutable view of the Flask config.

    Built once by create_app and handed to services explicitly; services
    never read os.environ themselves.
    """
    jwt_secret_key: str
    jwt_expires_seconds: int
    bcrypt_rounds: int
    mail: MailSettings

    @classmethod
    def from_mapping(cls, config: Mapping[str, Any]) -> "Settings":
        secret = config.get("JWT_SECRET_KEY")
        if not secret or not str(secret).strip():
            raise ConfigurationError("JWT_SECRET_KEY must be set")

        rounds = _as_int(config, "BCRYPT_ROUNDS")
        if not 4 <= rounds <= 31:
            raise ConfigurationError("BCRYPT_ROUNDS must be between 4 and 31")

        ttl = _as_int(config, "JWT_EXPIRES_SECONDS")
        if ttl <= 0:
            raise ConfigurationError("JWT_EXPIRES_SECONDS must be positive")

        transport = str(config.get("MAIL_TRANSPORT") or "smtp").lower()
        if transport not in {"smtp", "memory"}:
            raise ConfigurationError(f"Unknown MAIL_TRANSPORT: {transport}")

        mail = MailSettings(
            transport=transport,
            server=config.get("SMTP_SERVER") or None,
            port=_as_int(config, "SMTP_PORT"),
            username=config.get("SMTP_USERNAME") or None,
            password=config.get("SMTP_PASSWORD") or None,
            use_ssl=bool(config.get("SMTP_USE_SSL")),
            from_address=config.get("MAIL_FROM_ADDRESS") or "test@localhost",
            from_name=config.get("MAIL_FROM_NAME") or "Lako",
            max_retries=_as_int(config, "MAIL_MAX_RETRIES"),
            retry_backoff=_as_float(config, "MAIL_RETRY_BACKOFF"),
            worker_enabled=bool(config.get("MAIL_WORKER_ENABLED", True)),
            confirm_url_base=config.get("CONFIRM_URL_BASE") or "https://lako.io/confirm/",
        )

        return cls(
            jwt_secret_key=str(secret),
            jwt_expires_seconds=ttl,
            bcrypt_rounds=rounds,
            mail=mail,
        )


def _as_int(config: Mapping[str, Any], key: str) -> int:
    try:
        return int(config.get(key))
    except (TypeError, ValueError):
        raise ConfigurationError(f"{key} must be an integer")


def _as_float(config: Mapping[str, Any], key: str) -> float:
    try:
        return float(config.get(key))
    except (TypeError, ValueError):
        raise ConfigurationError(f"{key} must be a number")
