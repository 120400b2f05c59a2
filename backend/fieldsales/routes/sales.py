# Overview: Flask API routes for sales operations; parses input and returns JSON responses.

"""
Sale record routes.

HIERARCHY: Every route hands g.principal to sales_service, which derives the
owning admin and scope itself. A sale outside the caller's scope answers
404, never 403, so ids of other tenants are not confirmed.

- POST   /api/sales                       pick stock (optionally mark_sold)
- GET    /api/sales                       scoped list, newest first
- GET    /api/sales/stats                 aggregates over the same rows
- GET    /api/sales/<id>
- PUT    /api/sales/<id>                  status / quantity / detail changes
- PUT    /api/sales/<id>/confirm-payment  admin only
- DELETE /api/sales/<id>                  admin only, stock is not restored
"""

from flask import Blueprint, request, jsonify, current_app, g

from ..decorators import require_auth, require_role
from ..errors import ServiceError, UNEXPECTED_ERROR_BODY
from ..services import sales_service


sales_bp = Blueprint("sales", __name__, url_prefix="/api/sales")

HIERARCHY_ROLES = ("admin", "manager", "agent")


@sales_bp.post("")
@require_auth
@require_role(*HIERARCHY_ROLES)
def create_sale_route():
    payload = request.get_json(silent=True) or {}
    try:
        result = sales_service.create_sale(g.principal, payload)
        return jsonify(result.to_dict()), 201
    except ServiceError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to create sale")
        return jsonify(UNEXPECTED_ERROR_BODY), 500


@sales_bp.get("")
@require_auth
@require_role(*HIERARCHY_ROLES)
def list_sales_route():
    try:
        sales = sales_service.list_sales(g.principal)
        return jsonify({"sales": [s.to_dict() for s in sales], "count": len(sales)}), 200
    except ServiceError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to list sales")
        return jsonify(UNEXPECTED_ERROR_BODY), 500


@sales_bp.get("/stats")
@require_auth
@require_role(*HIERARCHY_ROLES)
def sales_stats_route():
    """Counts and confirmed revenue over the rows the caller can list."""
    try:
        return jsonify(sales_service.get_sales_stats(g.principal)), 200
    except ServiceError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to compute sales stats")
        return jsonify(UNEXPECTED_ERROR_BODY), 500


@sales_bp.get("/<int:sale_id>")
@require_auth
@require_role(*HIERARCHY_ROLES)
def get_sale_route(sale_id: int):
    try:
        sale = sales_service.get_sale(g.principal, sale_id)
        return jsonify({"sale": sale.to_dict()}), 200
    except ServiceError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to get sale %s", sale_id)
        return jsonify(UNEXPECTED_ERROR_BODY), 500


@sales_bp.put("/<int:sale_id>")
@require_auth
@require_role(*HIERARCHY_ROLES)
def update_sale_route(sale_id: int):
    """
    Apply a sale patch.

    Accepted keys: product_status, payment_status, sold_quantity and the
    customer detail fields. The whole patch is validated before any change.
    """
    payload = request.get_json(silent=True) or {}
    try:
        result = sales_service.update_sale(g.principal, sale_id, payload)
        return jsonify(result.to_dict()), 200
    except ServiceError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to update sale %s", sale_id)
        return jsonify(UNEXPECTED_ERROR_BODY), 500


@sales_bp.put("/<int:sale_id>/confirm-payment")
@require_auth
@require_role("admin")
def confirm_payment_route(sale_id: int):
    try:
        result = sales_service.confirm_payment(g.principal, sale_id)
        return jsonify(result.to_dict()), 200
    except ServiceError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to confirm payment for sale %s", sale_id)
        return jsonify(UNEXPECTED_ERROR_BODY), 500


@sales_bp.delete("/<int:sale_id>")
@require_auth
@require_role("admin")
def delete_sale_route(sale_id: int):
    try:
        sales_service.delete_sale(g.principal, sale_id)
        return jsonify({"message": "Sale deleted successfully"}), 200
    except ServiceError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to delete sale %s", sale_id)
        return jsonify(UNEXPECTED_ERROR_BODY), 500
