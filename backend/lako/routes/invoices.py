# Overview: Flask API routes for invoices and their line items.

"""
Invoice Routes

SECURITY: All routes require authentication and operate only on invoices
owned by g.current_user_id. The invoice amount is never accepted from the
client; it is recomputed from the items on every item change.

Money values in responses are decimal strings ("40.3000").
"""

from flask import Blueprint, current_app, g, jsonify, request

from ..decorators import require_auth
from ..errors import LakoError
from ..services import invoice_service
from ..models.invoices import money_str


invoices_bp = Blueprint("invoices", __name__, url_prefix="/api/v1/invoices")


def _aggregate(invoice, items) -> dict:
    return {
        "invoice": invoice.to_dict(),
        "items": [item.to_dict() for item in items],
    }


@invoices_bp.get("")
@require_auth
def list_invoices_route():
    """
    Query parameters:
    - page, per_page (capped at 100)
    - q: invoice number prefix
    - client_id: only invoices billed to this client
    - status: draft | open | paid | uncollectible | void
    """
    try:
        page = invoice_service.list_invoices(
            g.current_user_id,
            page=request.args.get("page", type=int),
            per_page=request.args.get("per_page", type=int),
            q=request.args.get("q"),
            client_id=request.args.get("client_id", type=int),
            status=request.args.get("status"),
        )
        page["results"] = [inv.to_dict() for inv in page["results"]]
        return jsonify(page), 200
    except LakoError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to list invoices")
        return jsonify({"message": "Internal server error"}), 500


@invoices_bp.post("")
@require_auth
def create_invoice_route():
    """
    Request body:
    {
        "client_id": 1,            // required, must be yours
        "company_id": 1,           // required, must be yours
        "currency": "EUR",         // required
        "description": "...",
        "invoice_number": "...",   // optional, generated as "YYYY/NNN" when omitted
        "items": [{"name": "...", "description": "...", "amount": "10.00", "quantity": "2"}]
    }

    Returns:
        201 {invoice, items}
    """
    data = request.get_json(silent=True)
    try:
        invoice, items = invoice_service.create_invoice_from_payload(g.current_user_id, data)
        return jsonify(_aggregate(invoice, items)), 201
    except LakoError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to create invoice")
        return jsonify({"message": "Internal server error"}), 500


@invoices_bp.get("/<int:invoice_id>")
@require_auth
def get_invoice_route(invoice_id: int):
    try:
        invoice, items = invoice_service.get_invoice(invoice_id, g.current_user_id)
        return jsonify(_aggregate(invoice, items)), 200
    except LakoError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to get invoice")
        return jsonify({"message": "Internal server error"}), 500


@invoices_bp.route("/<int:invoice_id>", methods=["PATCH", "PUT"])
@require_auth
def update_invoice_route(invoice_id: int):
    """Partial header update. amount and user_id are rejected as non-writable."""
    data = request.get_json(silent=True)
    try:
        invoice = invoice_service.update_invoice(invoice_id, g.current_user_id, data)
        return jsonify(invoice.to_dict()), 200
    except LakoError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to update invoice")
        return jsonify({"message": "Internal server error"}), 500


@invoices_bp.delete("/<int:invoice_id>")
@require_auth
def delete_invoice_route(invoice_id: int):
    try:
        if not invoice_service.delete_invoice(invoice_id, g.current_user_id):
            return jsonify({"message": "Invoice not found"}), 404
        return "", 204
    except LakoError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to delete invoice")
        return jsonify({"message": "Internal server error"}), 500


@invoices_bp.post("/<int:invoice_id>/items")
@require_auth
def add_item_route(invoice_id: int):
    """Body: {name, description?, amount, quantity}. Returns 201 {item, invoice}."""
    data = request.get_json(silent=True)
    try:
        item, invoice = invoice_service.add_invoice_item(invoice_id, g.current_user_id, data)
        return jsonify({"item": item.to_dict(), "invoice": invoice.to_dict()}), 201
    except LakoError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to add invoice item")
        return jsonify({"message": "Internal server error"}), 500


@invoices_bp.route("/<int:invoice_id>/items/<int:item_id>", methods=["PATCH", "PUT"])
@require_auth
def update_item_route(invoice_id: int, item_id: int):
    data = request.get_json(silent=True)
    try:
        item, invoice = invoice_service.update_invoice_item(invoice_id, item_id, g.current_user_id, data)
        return jsonify({"item": item.to_dict(), "invoice": invoice.to_dict()}), 200
    except LakoError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to update invoice item")
        return jsonify({"message": "Internal server error"}), 500


@invoices_bp.delete("/<int:invoice_id>/items/<int:item_id>")
@require_auth
def remove_item_route(invoice_id: int, item_id: int):
    """Returns the invoice with its recalculated amount."""
    try:
        invoice = invoice_service.remove_invoice_item(invoice_id, item_id, g.current_user_id)
        return jsonify({"invoice": invoice.to_dict()}), 200
    except LakoError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to remove invoice item")
        return jsonify({"message": "Internal server error"}), 500


@invoices_bp.post("/<int:invoice_id>/recalculate")
@require_auth
def recalculate_route(invoice_id: int):
    try:
        amount = invoice_service.recalculate_amount(invoice_id, g.current_user_id)
        return jsonify({"amount": money_str(amount)}), 200
    except LakoError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to recalculate invoice")
        return jsonify({"message": "Internal server error"}), 500
