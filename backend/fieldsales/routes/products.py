# Overview: Flask API routes for products operations; parses input and returns JSON responses.

"""
Product catalogue routes with multi-tenant support.

MULTI-TENANT: All product operations are scoped to the caller's owning
admin; products_service resolves it from g.principal.

SECURITY: All routes require authentication.
- Reads: admin, manager, agent
- Writes: admin, manager
- Featured toggle: admin
"""

from flask import Blueprint, request, jsonify, current_app, g

from ..decorators import require_auth, require_role
from ..errors import ServiceError, UNEXPECTED_ERROR_BODY
from ..services import products_service


products_bp = Blueprint("products", __name__, url_prefix="/api/products")


@products_bp.get("")
@require_auth
@require_role("admin", "manager", "agent")
def list_products_route():
    """
    List the tenant's products, newest first.

    Query params:
    - category: str (optional) exact category match
    """
    try:
        products = products_service.list_products(g.principal, category=request.args.get("category"))
        return jsonify({"products": [p.to_dict() for p in products]}), 200
    except ServiceError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to list products")
        return jsonify(UNEXPECTED_ERROR_BODY), 500


@products_bp.get("/featured")
@require_auth
@require_role("admin", "manager", "agent")
def featured_products_route():
    try:
        products = products_service.list_featured(g.principal)
        return jsonify({"products": [p.to_dict() for p in products]}), 200
    except ServiceError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to list featured products")
        return jsonify(UNEXPECTED_ERROR_BODY), 500


@products_bp.get("/<int:product_id>")
@require_auth
@require_role("admin", "manager", "agent")
def get_product_route(product_id: int):
    try:
        product = products_service.get_product(g.principal, product_id)
        return jsonify({"product": product.to_dict()}), 200
    except ServiceError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to get product %s", product_id)
        return jsonify(UNEXPECTED_ERROR_BODY), 500


@products_bp.post("")
@require_auth
@require_role("admin", "manager")
def create_product_route():
    """
    Create a product in the caller's tenant.

    Body: name, price (decimal) or price_cents, quantity, and optional
    brand, description, color, category, image.
    """
    payload = request.get_json(silent=True) or {}
    try:
        product = products_service.create_product(g.principal, payload)
        return jsonify({"message": "Product created successfully", "product": product.to_dict()}), 201
    except ServiceError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to create product")
        return jsonify(UNEXPECTED_ERROR_BODY), 500


@products_bp.put("/<int:product_id>")
@require_auth
@require_role("admin", "manager")
def update_product_route(product_id: int):
    payload = request.get_json(silent=True) or {}
    try:
        product = products_service.update_product(g.principal, product_id, payload)
        return jsonify({"message": "Product updated successfully", "product": product.to_dict()}), 200
    except ServiceError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to update product %s", product_id)
        return jsonify(UNEXPECTED_ERROR_BODY), 500


@products_bp.patch("/<int:product_id>")
@require_auth
@require_role("admin")
def toggle_featured_route(product_id: int):
    try:
        product = products_service.toggle_featured(g.principal, product_id)
        return jsonify({"message": "Product updated successfully", "product": product.to_dict()}), 200
    except ServiceError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to toggle featured for product %s", product_id)
        return jsonify(UNEXPECTED_ERROR_BODY), 500


@products_bp.delete("/<int:product_id>")
@require_auth
@require_role("admin", "manager")
def delete_product_route(product_id: int):
    try:
        products_service.delete_product(g.principal, product_id)
        return jsonify({"message": "Product deleted successfully"}), 200
    except ServiceError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to delete product %s", product_id)
        return jsonify(UNEXPECTED_ERROR_BODY), 500
