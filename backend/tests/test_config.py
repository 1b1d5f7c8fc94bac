# Overview: Pytest coverage for startup configuration validation.

import pytest

from lako import create_app
from lako.config import Settings
from lako.errors import ConfigurationError


BASE = {
    "JWT_SECRET_KEY": "k",
    "JWT_EXPIRES_SECONDS": "3600",
    "BCRYPT_ROUNDS": "12",
    "SMTP_PORT": "587",
    "MAIL_TRANSPORT": "smtp",
    "MAIL_MAX_RETRIES": "3",
    "MAIL_RETRY_BACKOFF": "1.0",
}


def _settings(**changes):
    config = dict(BASE)
    config.update(changes)
    return Settings.from_mapping(config)


class TestSettings:

    def test_valid(self):
        s = _settings()
        assert s.jwt_secret_key == "k"
        assert s.jwt_expires_seconds == 3600
        assert s.bcrypt_rounds == 12
        assert s.mail.port == 587
        assert s.mail.max_retries == 3

    @pytest.mark.parametrize("secret", [None, "", "   "])
    def test_missing_jwt_secret(self, secret):
        with pytest.raises(ConfigurationError, match="JWT_SECRET_KEY"):
            _settings(JWT_SECRET_KEY=secret)

    @pytest.mark.parametrize("rounds", ["3", "32", "twelve"])
    def test_bad_bcrypt_rounds(self, rounds):
        with pytest.raises(ConfigurationError):
            _settings(BCRYPT_ROUNDS=rounds)

    def test_bad_port(self):
        with pytest.raises(ConfigurationError, match="SMTP_PORT"):
            _settings(SMTP_PORT="smtp")

    def test_non_positive_ttl(self):
        with pytest.raises(ConfigurationError):
            _settings(JWT_EXPIRES_SECONDS="0")

    def test_unknown_transport(self):
        with pytest.raises(ConfigurationError, match="MAIL_TRANSPORT"):
            _settings(MAIL_TRANSPORT="carrier-pigeon")

    def test_settings_are_immutable(self):
        s = _settings()
        with pytest.raises(Exception):
            s.jwt_secret_key = "other"


class TestCreateApp:

    def test_refuses_to_start_without_jwt_secret(self):
        with pytest.raises(ConfigurationError):
            create_app({
                "SQLALCHEMY_DATABASE_URI": "sqlite:///:memory:",
                "JWT_SECRET_KEY": None,
            })
