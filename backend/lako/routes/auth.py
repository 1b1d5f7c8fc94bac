# Overview: Flask API routes for identity; registration, login, profile and email verification.

"""
Identity routes

SECURITY:
- Login failures return one message whether the username or the password was wrong
- Registration always creates Customer accounts; staff/superusers come from the CLI
- Resend is only allowed for the caller's own account
- Confirmation mail is queued after commit and never fails the request
"""

from flask import Blueprint, current_app, g, jsonify, request

from ..decorators import require_auth
from ..errors import LakoError
from ..extensions import current_mailer, current_settings
from ..services import auth_service
from ..services.credentials import issue_token


auth_bp = Blueprint("auth", __name__, url_prefix="/api/v1")


def _json_body() -> dict:
    data = request.get_json(silent=True)
    return data if isinstance(data, dict) else {}


@auth_bp.post("/register")
def register_route():
    """
    Body: {username, email, password1, password2}

    Returns 201 {id}. The account starts with one unverified primary email
    and a confirmation link is mailed to it.
    """
    data = _json_body()
    try:
        auth_service.validate_registration(
            data.get("username"),
            data.get("email"),
            data.get("password1"),
            data.get("password2"),
        )
        user = auth_service.register_user(
            username=data["username"],
            email=data["email"],
            password=data["password1"],
            settings=current_settings(),
            mailer=current_mailer(),
        )
        return jsonify({"id": user.id}), 201
    except LakoError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to register user")
        return jsonify({"message": "Internal server error"}), 500


@auth_bp.post("/login")
def login_route():
    """Body: {username, password}. Returns {access_token}."""
    data = _json_body()
    settings = current_settings()
    try:
        user = auth_service.authenticate(data.get("username"), data.get("password"), settings)
        token = issue_token(user.id, settings.jwt_expires_seconds, settings.jwt_secret_key)
        return jsonify({"access_token": token}), 200
    except LakoError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to login user")
        return jsonify({"message": "Internal server error"}), 500


@auth_bp.get("/me")
@require_auth
def me_route():
    try:
        user = auth_service.find_user(g.current_user_id)
        return jsonify(user.to_dict()), 200
    except LakoError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to load current user")
        return jsonify({"message": "Internal server error"}), 500


@auth_bp.put("/confirm/<token>")
def confirm_route(token: str):
    """Idempotent: {ok: true} for a known token (verified or not), {ok: false} otherwise."""
    try:
        ok = auth_service.confirm_email(token)
        return jsonify({"ok": ok}), 200
    except Exception:
        current_app.logger.exception("Failed to confirm email")
        return jsonify({"message": "Internal server error"}), 500


@auth_bp.put("/users/<int:user_id>/resend")
@require_auth
def resend_route(user_id: int):
    try:
        ok = auth_service.regenerate_and_resend_token(
            requester_id=g.current_user_id,
            target_user_id=user_id,
            settings=current_settings(),
            mailer=current_mailer(),
        )
        return jsonify({"ok": ok}), 200
    except LakoError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to resend confirmation token")
        return jsonify({"message": "Internal server error"}), 500


@auth_bp.post("/me/emails")
@require_auth
def add_email_route():
    """Body: {email}. Attaches a non-primary, unverified address."""
    data = _json_body()
    try:
        email = auth_service.add_email(
            user_id=g.current_user_id,
            address=data.get("email"),
            settings=current_settings(),
            mailer=current_mailer(),
        )
        return jsonify(email.to_dict()), 201
    except LakoError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to add email")
        return jsonify({"message": "Internal server error"}), 500
