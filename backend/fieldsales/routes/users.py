# Overview: Flask API routes for admin user management; parses input and returns JSON responses.

"""
Admin-only login management.

An admin sees itself, the logins it created and the logins of its managers
and agents. Any other user id answers 403.
"""

from flask import Blueprint, request, jsonify, current_app, g

from ..decorators import require_auth, require_role
from ..errors import ServiceError, UNEXPECTED_ERROR_BODY
from ..services import staff_service


users_bp = Blueprint("users", __name__, url_prefix="/api/users")


@users_bp.get("")
@require_auth
@require_role("admin")
def list_users_route():
    try:
        users = staff_service.list_users(g.principal)
        return jsonify({"users": users}), 200
    except ServiceError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to list users")
        return jsonify(UNEXPECTED_ERROR_BODY), 500


@users_bp.post("")
@require_auth
@require_role("admin")
def create_user_route():
    """
    Create a login of any role.

    manager: phone required. agent: phone, location, government_id and
    manager_id required. The matching profile is created as well.
    """
    payload = request.get_json(silent=True) or {}
    try:
        result = staff_service.create_user(g.principal, payload)
        return jsonify(result.to_dict()), 201
    except ServiceError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to create user")
        return jsonify(UNEXPECTED_ERROR_BODY), 500


@users_bp.put("/<int:user_id>")
@require_auth
@require_role("admin")
def update_user_route(user_id: int):
    payload = request.get_json(silent=True) or {}
    try:
        user = staff_service.update_user(g.principal, user_id, payload)
        return jsonify({"message": "User updated successfully", "user": user.to_dict()}), 200
    except ServiceError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to update user %s", user_id)
        return jsonify(UNEXPECTED_ERROR_BODY), 500


@users_bp.post("/<int:user_id>/reset-password")
@require_auth
@require_role("admin")
def reset_user_password_route(user_id: int):
    try:
        result = staff_service.reset_user_password(g.principal, user_id)
        return jsonify(result.to_dict()), 200
    except ServiceError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to reset password for user %s", user_id)
        return jsonify(UNEXPECTED_ERROR_BODY), 500


@users_bp.delete("/<int:user_id>")
@require_auth
@require_role("admin")
def delete_user_route(user_id: int):
    try:
        staff_service.delete_user(g.principal, user_id)
        return jsonify({"message": "User deleted successfully"}), 200
    except ServiceError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to delete user %s", user_id)
        return jsonify(UNEXPECTED_ERROR_BODY), 500
