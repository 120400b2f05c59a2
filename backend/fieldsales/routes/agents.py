# Overview: Flask API routes for agent operations; parses input and returns JSON responses.

"""
Agent routes.

- admin: every agent of its tenant, may reassign manager_id
- manager: its own agents only
- agent: GET/PUT /profile/me and GET of its own id
"""

from flask import Blueprint, request, jsonify, current_app, g

from ..decorators import require_auth, require_role
from ..errors import ServiceError, UNEXPECTED_ERROR_BODY
from ..services import staff_service


agents_bp = Blueprint("agents", __name__, url_prefix="/api/agents")


@agents_bp.get("/profile/me")
@require_auth
@require_role("agent")
def agent_profile_route():
    try:
        agent = staff_service.get_agent_profile(g.principal)
        return jsonify({"agent": agent.to_dict()}), 200
    except ServiceError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to load agent profile")
        return jsonify(UNEXPECTED_ERROR_BODY), 500


@agents_bp.put("/profile/me")
@require_auth
@require_role("agent")
def update_agent_profile_route():
    payload = request.get_json(silent=True) or {}
    try:
        agent = staff_service.update_agent_profile(g.principal, payload)
        return jsonify({"message": "Profile updated successfully", "agent": agent.to_dict()}), 200
    except ServiceError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to update agent profile")
        return jsonify(UNEXPECTED_ERROR_BODY), 500


@agents_bp.post("")
@require_auth
@require_role("admin", "manager")
def create_agent_route():
    payload = request.get_json(silent=True) or {}
    try:
        result = staff_service.create_agent(g.principal, payload)
        return jsonify(result.to_dict()), 201
    except ServiceError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to create agent")
        return jsonify(UNEXPECTED_ERROR_BODY), 500


@agents_bp.get("")
@require_auth
@require_role("admin", "manager")
def list_agents_route():
    try:
        agents = staff_service.list_agents(g.principal)
        return jsonify({"agents": [a.to_dict() for a in agents]}), 200
    except ServiceError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to list agents")
        return jsonify(UNEXPECTED_ERROR_BODY), 500


@agents_bp.get("/<int:agent_id>")
@require_auth
@require_role("admin", "manager", "agent")
def get_agent_route(agent_id: int):
    try:
        agent = staff_service.get_agent(g.principal, agent_id)
        return jsonify({"agent": agent.to_dict()}), 200
    except ServiceError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to get agent %s", agent_id)
        return jsonify(UNEXPECTED_ERROR_BODY), 500


@agents_bp.put("/<int:agent_id>")
@require_auth
@require_role("admin", "manager")
def update_agent_route(agent_id: int):
    payload = request.get_json(silent=True) or {}
    try:
        agent = staff_service.update_agent(g.principal, agent_id, payload)
        return jsonify({"message": "Agent updated successfully", "agent": agent.to_dict()}), 200
    except ServiceError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to update agent %s", agent_id)
        return jsonify(UNEXPECTED_ERROR_BODY), 500


@agents_bp.post("/<int:agent_id>/reset-password")
@require_auth
@require_role("admin", "manager")
def reset_agent_password_route(agent_id: int):
    """Issue a new temporary password; the agent's sessions are revoked."""
    try:
        result = staff_service.reset_agent_password(g.principal, agent_id)
        return jsonify(result.to_dict()), 200
    except ServiceError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to reset password for agent %s", agent_id)
        return jsonify(UNEXPECTED_ERROR_BODY), 500


@agents_bp.delete("/<int:agent_id>")
@require_auth
@require_role("admin", "manager")
def delete_agent_route(agent_id: int):
    try:
        staff_service.delete_agent(g.principal, agent_id)
        return jsonify({"message": "Agent deleted successfully"}), 200
    except ServiceError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to delete agent %s", agent_id)
        return jsonify(UNEXPECTED_ERROR_BODY), 500
