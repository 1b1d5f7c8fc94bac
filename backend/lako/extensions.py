# Overview: Flask extension instances plus accessors for per-app services.

from flask import current_app
from flask_mail import Mail
from flask_migrate import Migrate
from flask_sqlalchemy import SQLAlchemy

db = SQLAlchemy()
migrate = Migrate()
mail = Mail()

SETTINGS_KEY = "lako.settings"
MAILER_KEY = "lako.mailer"


def current_settings():
    """Validated Settings built by create_app for the active app."""
    return current_app.extensions[SETTINGS_KEY]


def current_mailer():
    """The app's EmailDispatcher."""
    return current_app.extensions[MAILER_KEY]
