# backend/lako/__init__.py
import atexit
import os
import logging

from flask import Flask, jsonify
from werkzeug.exceptions import HTTPException

from .config import Config, MailSettings, Settings
from .extensions import MAILER_KEY, SETTINGS_KEY, db, mail, migrate
from .json_provider import DecimalJSONProvider
from .services.credentials import dummy_hash
from .services.mail_service import EmailDispatcher

MIGRATIONS_DIR = os.path.join(os.path.dirname(os.path.dirname(os.path.abspath(__file__))), "migrations")


def create_app(overrides: dict | None = None) -> Flask:
    """
    Application factory.

    overrides are applied on top of Config before any extension is
    initialised, so a test can point SQLALCHEMY_DATABASE_URI at sqlite
    in-memory. Raises ConfigurationError when the resulting config is
    unusable (for example no JWT_SECRET_KEY).
    """
    app = Flask(__name__, instance_relative_config=True)
    app.config.from_object(Config)
    if overrides:
        app.config.update(overrides)

    settings = Settings.from_mapping(app.config)
    app.extensions[SETTINGS_KEY] = settings

    _configure_logging(app)
    app.json = DecimalJSONProvider(app)

    # Initialize extensions
    db.init_app(app)
    migrate.init_app(app, db, directory=MIGRATIONS_DIR)

    # Import models so Alembic can discover metadata reliably
    from . import models  # noqa: F401

    _configure_mail(app, settings.mail)
    mailer = EmailDispatcher(settings.mail, app=app)
    app.extensions[MAILER_KEY] = mailer
    atexit.register(mailer.shutdown)

    # Unknown-username logins must not pay for building the throwaway hash
    dummy_hash(settings.bcrypt_rounds)

    # Register blueprints
    from .routes.system import system_bp
    from .routes.auth import auth_bp
    from .routes.clients import clients_bp
    from .routes.companies import companies_bp
    from .routes.invoices import invoices_bp

    app.register_blueprint(system_bp)
    app.register_blueprint(auth_bp)
    app.register_blueprint(clients_bp)
    app.register_blueprint(companies_bp)
    app.register_blueprint(invoices_bp)

    _register_error_handlers(app)

    # Register CLI commands
    from .cli import register_commands
    register_commands(app)

    return app


def _configure_logging(app: Flask) -> None:
    level = str(app.config.get("LOG_LEVEL") or "INFO").upper()
    app.logger.setLevel(level)
    logging.getLogger("lako").setLevel(level)
    if not logging.getLogger().handlers:
        logging.basicConfig(format="%(asctime)s %(levelname)s [%(name)s] %(message)s")


def _register_error_handlers(app: Flask) -> None:
    # JSON bodies for framework errors (unknown route, wrong method, bad JSON)
    @app.errorhandler(HTTPException)
    def http_error(e: HTTPException):
        return jsonify({"message": e.description or e.name}), e.code

    @app.errorhandler(Exception)
    def unhandled_error(e: Exception):
        app.logger.exception("Unhandled error")
        return jsonify({"message": "Internal server error"}), 500


def _configure_mail(app: Flask, settings: MailSettings) -> None:
    # Flask-Mail reads its own MAIL_* keys; SMTP_* stay the public names
    app.config.update(
        MAIL_SERVER=settings.server,
        MAIL_PORT=settings.port,
        MAIL_USE_SSL=settings.use_ssl,
        MAIL_USE_TLS=not settings.use_ssl,
        MAIL_USERNAME=settings.username,
        MAIL_PASSWORD=settings.password,
        MAIL_DEFAULT_SENDER=(settings.from_name, settings.from_address),
    )
    mail.init_app(app)
