# Overview: Flask API routes for manager operations; parses input and returns JSON responses.

"""
Manager routes. Admin only, except GET /profile/me.

MULTI-TENANT: An admin only ever sees managers with admin_id == its own id.
"""

from flask import Blueprint, request, jsonify, current_app, g

from ..decorators import require_auth, require_role
from ..errors import ServiceError, UNEXPECTED_ERROR_BODY
from ..services import staff_service


managers_bp = Blueprint("managers", __name__, url_prefix="/api/managers")


@managers_bp.post("")
@require_auth
@require_role("admin")
def create_manager_route():
    """Create a manager and its login; credentials are delivered by e-mail/SMS."""
    payload = request.get_json(silent=True) or {}
    try:
        result = staff_service.create_manager(g.principal, payload)
        return jsonify(result.to_dict()), 201
    except ServiceError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to create manager")
        return jsonify(UNEXPECTED_ERROR_BODY), 500


@managers_bp.get("")
@require_auth
@require_role("admin")
def list_managers_route():
    try:
        managers = staff_service.list_managers(g.principal)
        return jsonify({"managers": [m.to_dict() for m in managers]}), 200
    except ServiceError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to list managers")
        return jsonify(UNEXPECTED_ERROR_BODY), 500


@managers_bp.get("/profile/me")
@require_auth
@require_role("manager", "admin")
def manager_profile_route():
    try:
        manager = staff_service.get_manager_profile(g.principal)
        return jsonify({"manager": manager.to_dict()}), 200
    except ServiceError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to load manager profile")
        return jsonify(UNEXPECTED_ERROR_BODY), 500


@managers_bp.get("/<int:manager_id>")
@require_auth
@require_role("admin")
def get_manager_route(manager_id: int):
    try:
        manager = staff_service.get_manager(g.principal, manager_id)
        return jsonify({"manager": manager.to_dict()}), 200
    except ServiceError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to get manager %s", manager_id)
        return jsonify(UNEXPECTED_ERROR_BODY), 500


@managers_bp.put("/<int:manager_id>")
@require_auth
@require_role("admin")
def update_manager_route(manager_id: int):
    payload = request.get_json(silent=True) or {}
    try:
        manager = staff_service.update_manager(g.principal, manager_id, payload)
        return jsonify({"message": "Manager updated successfully", "manager": manager.to_dict()}), 200
    except ServiceError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to update manager %s", manager_id)
        return jsonify(UNEXPECTED_ERROR_BODY), 500


@managers_bp.delete("/<int:manager_id>")
@require_auth
@require_role("admin")
def delete_manager_route(manager_id: int):
    try:
        staff_service.delete_manager(g.principal, manager_id)
        return jsonify({"message": "Manager deleted successfully"}), 200
    except ServiceError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to delete manager %s", manager_id)
        return jsonify(UNEXPECTED_ERROR_BODY), 500
