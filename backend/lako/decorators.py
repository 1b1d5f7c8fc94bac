# Overview: Request decorators for API routes.

from functools import wraps

from flask import g, jsonify, request

from .errors import AuthenticationError
from .extensions import current_settings
from .services import auth_service


def bearer_token() -> str | None:
    auth_header = request.headers.get("Authorization")
    if not auth_header or not auth_header.startswith("Bearer "):
        return None
    return auth_header.split(" ", 1)[1].strip() or None


def require_auth(f):
    """
    Require a valid access token.

    Sets g.current_user_id to the token's subject. Every owner-scoped
    service call in the wrapped route uses that id; request bodies never
    choose the owner.

    Returns 400 {"message": ...} when the header is missing, the token is
    malformed, expired or signed with another key, or its user is gone.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        token = bearer_token()
        if token is None:
            return jsonify({"message": "missing bearer token"}), 400

        try:
            user_id = auth_service.resolve_current_user(token, current_settings())
        except AuthenticationError as e:
            return jsonify(e.to_dict()), e.status_code

        g.current_user_id = user_id
        return f(*args, **kwargs)

    return decorated_function
