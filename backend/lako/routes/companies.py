# Overview: Flask API routes for the company directory; parses input and returns JSON responses.

"""
Company Routes

SECURITY: All routes require authentication. Every query is scoped to
g.current_user_id; another user's company answers 404, same as a missing one.
"""

from flask import Blueprint, current_app, g, jsonify, request

from ..decorators import require_auth
from ..errors import LakoError
from ..services import directory_service


companies_bp = Blueprint("companies", __name__, url_prefix="/api/v1/companies")


@companies_bp.get("")
@require_auth
def list_companies_route():
    """
    Query parameters:
    - page: 1-based page number (default 1)
    - per_page: page size (default 10, capped at 100)
    - q: case-insensitive name prefix

    Returns:
        {page, per_page, total, total_pages, results: Company[]}
    """
    try:
        page = directory_service.list_companies(
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
        current_app.logger.exception("Failed to list companies")
        return jsonify({"message": "Internal server error"}), 500


@companies_bp.post("")
@require_auth
def create_company_route():
    """Body: {name, address_1?, address_2?, city?, state?, zip_code?, country?}"""
    data = request.get_json(silent=True)
    try:
        company = directory_service.create_company(g.current_user_id, data)
        return jsonify(company.to_dict()), 201
    except LakoError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to create company")
        return jsonify({"message": "Internal server error"}), 500


@companies_bp.get("/<int:company_id>")
@require_auth
def get_company_route(company_id: int):
    try:
        company = directory_service.get_company(company_id, g.current_user_id)
        return jsonify(company.to_dict()), 200
    except LakoError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to get company")
        return jsonify({"message": "Internal server error"}), 500


@companies_bp.route("/<int:company_id>", methods=["PATCH", "PUT"])
@require_auth
def update_company_route(company_id: int):
    """Partial update: only the fields present in the body change."""
    data = request.get_json(silent=True)
    try:
        company = directory_service.update_company(company_id, g.current_user_id, data)
        return jsonify(company.to_dict()), 200
    except LakoError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to update company")
        return jsonify({"message": "Internal server error"}), 500


@companies_bp.delete("/<int:company_id>")
@require_auth
def delete_company_route(company_id: int):
    """204 on delete, 404 if missing or not owned, 409 while invoices reference it."""
    try:
        if not directory_service.delete_company(company_id, g.current_user_id):
            return jsonify({"message": "Company not found"}), 404
        return "", 204
    except LakoError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to delete company")
        return jsonify({"message": "Internal server error"}), 500
