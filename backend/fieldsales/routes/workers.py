# Overview: Flask API routes for worker operations; parses input and returns JSON responses.

"""
Worker routes (admin, manager). Workers have no login.
"""

from flask import Blueprint, request, jsonify, current_app, g

from ..decorators import require_auth, require_role
from ..errors import ServiceError, UNEXPECTED_ERROR_BODY
from ..services import staff_service


workers_bp = Blueprint("workers", __name__, url_prefix="/api/workers")


@workers_bp.post("")
@require_auth
@require_role("admin", "manager")
def create_worker_route():
    payload = request.get_json(silent=True) or {}
    try:
        worker = staff_service.create_worker(g.principal, payload)
        return jsonify({"message": "Worker created successfully", "worker": worker.to_dict()}), 201
    except ServiceError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to create worker")
        return jsonify(UNEXPECTED_ERROR_BODY), 500


@workers_bp.get("")
@require_auth
@require_role("admin", "manager")
def list_workers_route():
    try:
        workers = staff_service.list_workers(g.principal)
        return jsonify({"workers": [w.to_dict() for w in workers]}), 200
    except ServiceError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to list workers")
        return jsonify(UNEXPECTED_ERROR_BODY), 500


@workers_bp.get("/<int:worker_id>")
@require_auth
@require_role("admin", "manager")
def get_worker_route(worker_id: int):
    try:
        worker = staff_service.get_worker(g.principal, worker_id)
        return jsonify({"worker": worker.to_dict()}), 200
    except ServiceError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to get worker %s", worker_id)
        return jsonify(UNEXPECTED_ERROR_BODY), 500


@workers_bp.put("/<int:worker_id>")
@require_auth
@require_role("admin", "manager")
def update_worker_route(worker_id: int):
    payload = request.get_json(silent=True) or {}
    try:
        worker = staff_service.update_worker(g.principal, worker_id, payload)
        return jsonify({"message": "Worker updated successfully", "worker": worker.to_dict()}), 200
    except ServiceError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to update worker %s", worker_id)
        return jsonify(UNEXPECTED_ERROR_BODY), 500


@workers_bp.delete("/<int:worker_id>")
@require_auth
@require_role("admin", "manager")
def delete_worker_route(worker_id: int):
    try:
        staff_service.delete_worker(g.principal, worker_id)
        return jsonify({"message": "Worker deleted successfully"}), 200
    except ServiceError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to delete worker %s", worker_id)
        return jsonify(UNEXPECTED_ERROR_BODY), 500
