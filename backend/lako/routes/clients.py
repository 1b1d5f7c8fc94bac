# Overview: Flask API routes for the client directory; parses input and returns JSON responses.

"""
Client Routes

SECURITY: All routes require authentication. Every query is scoped to
g.current_user_id; another user's client answers 404, same as a missing one.
"""

from flask import Blueprint, current_app, g, jsonify, request

from ..decorators import require_auth
from ..errors import LakoError
from ..services import directory_service


clients_bp = Blueprint("clients", __name__, url_prefix="/api/v1/clients")


@clients_bp.get("")
@require_auth
def list_clients_route():
    """
    Query parameters:
    - page: 1-based page number (default 1)
    - per_page: page size (default 10, capped at 100)
    - q: case-insensitive name prefix

    Returns:
        {page, per_page, total, total_pages, results: Client[]}
    """
    try:
        page = directory_service.list_clients(
            g.current_user_id,
            page=request.args.get("page", type=int),
            per_page=request.args.get("per_page", type=int),
            q=request.args.get("q"),
        )
        page["results"] = [c.to_dict() for c in page["results"]]
        return jsonify(page), 200
    except LakoError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to list clients")
        return jsonify({"message": "Internal server error"}), 500


@clients_bp.post("")
@require_auth
def create_client_route():
    """Body: {name, email, company_name?, address_1?, ..., website?, notes?}"""
    data = request.get_json(silent=True)
    try:
        client = directory_service.create_client(g.current_user_id, data)
        return jsonify(client.to_dict()), 201
    except LakoError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to create client")
        return jsonify({"message": "Internal server error"}), 500


@clients_bp.get("/<int:client_id>")
@require_auth
def get_client_route(client_id: int):
    try:
        client = directory_service.get_client(client_id, g.current_user_id)
        return jsonify(client.to_dict()), 200
    except LakoError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to get client")
        return jsonify({"message": "Internal server error"}), 500


@clients_bp.route("/<int:client_id>", methods=["PATCH", "PUT"])
@require_auth
def update_client_route(client_id: int):
    """Partial update: only the fields present in the body change."""
    data = request.get_json(silent=True)
    try:
        client = directory_service.update_client(client_id, g.current_user_id, data)
        return jsonify(client.to_dict()), 200
    except LakoError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to update client")
        return jsonify({"message": "Internal server error"}), 500


@clients_bp.delete("/<int:client_id>")
@require_auth
def delete_client_route(client_id: int):
    """204 on delete, 404 if missing or not owned, 409 while invoices reference it."""
    try:
        if not directory_service.delete_client(client_id, g.current_user_id):
            return jsonify({"message": "Client not found"}), 404
        return "", 204
    except LakoError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to delete client")
        return jsonify({"message": "Internal server error"}), 500
