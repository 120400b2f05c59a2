# Overview: Flask API routes for the notification inbox; parses input and returns JSON responses.

"""
Notification inbox routes. Every route works on the caller's own inbox;
someone else's notification id answers 404.
"""

from flask import Blueprint, request, jsonify, current_app, g

from ..decorators import require_auth
from ..errors import ServiceError, UNEXPECTED_ERROR_BODY
from ..services import notification_service
from ..validation import parse_bool


notifications_bp = Blueprint("notifications", __name__, url_prefix="/api/notifications")


@notifications_bp.get("")
@require_auth
def list_notifications_route():
    """
    Query params:
    - limit: int (optional, default 50, max 200)
    - unread: bool (optional) only unread entries
    """
    limit = request.args.get("limit", default=50, type=int)
    unread_only = parse_bool(request.args.get("unread"))
    try:
        user_id = g.current_user.id
        notifications = notification_service.list_notifications(user_id, limit=limit, unread_only=unread_only)
        return jsonify({
            "notifications": [n.to_dict() for n in notifications],
            "unread_count": notification_service.unread_count(user_id),
        }), 200
    except Exception:
        current_app.logger.exception("Failed to list notifications")
        return jsonify(UNEXPECTED_ERROR_BODY), 500


@notifications_bp.get("/unread-count")
@require_auth
def unread_count_route():
    try:
        return jsonify({"count": notification_service.unread_count(g.current_user.id)}), 200
    except Exception:
        current_app.logger.exception("Failed to count unread notifications")
        return jsonify(UNEXPECTED_ERROR_BODY), 500


@notifications_bp.put("/read-all")
@require_auth
def mark_all_read_route():
    try:
        updated = notification_service.mark_all_as_read(g.current_user.id)
        return jsonify({"message": "All notifications marked as read", "updated": updated}), 200
    except Exception:
        current_app.logger.exception("Failed to mark notifications as read")
        return jsonify(UNEXPECTED_ERROR_BODY), 500


@notifications_bp.put("/<int:notification_id>/read")
@require_auth
def mark_read_route(notification_id: int):
    try:
        notification = notification_service.mark_as_read(g.current_user.id, notification_id)
        return jsonify({"message": "Notification marked as read", "notification": notification.to_dict()}), 200
    except ServiceError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to mark notification %s as read", notification_id)
        return jsonify(UNEXPECTED_ERROR_BODY), 500


@notifications_bp.delete("/<int:notification_id>")
@require_auth
def delete_notification_route(notification_id: int):
    try:
        notification_service.delete_notification(g.current_user.id, notification_id)
        return jsonify({"message": "Notification deleted successfully"}), 200
    except ServiceError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to delete notification %s", notification_id)
        return jsonify(UNEXPECTED_ERROR_BODY), 500
