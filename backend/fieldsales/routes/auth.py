# Overview: Flask API routes for auth operations; parses input and returns JSON responses.

"""
Authentication API routes

- POST /api/auth/signup: self-registration of a plain `user` account
- POST /api/auth/login: email + password, returns an opaque bearer token
- POST /api/auth/logout: revokes the presented token
- GET/PUT /api/auth/profile: the caller's own login record
- POST /api/auth/change-password: revokes every other session of the caller

Staff logins (manager, agent) are never self-registered; admins and
managers provision them through the staff routes.
"""

from flask import Blueprint, request, jsonify, current_app, g

from ..errors import ServiceError, UNEXPECTED_ERROR_BODY
from ..models.auth import ROLE_USER
from ..services import auth_service
from ..services import session_service
from ..decorators import require_auth, bearer_token


auth_bp = Blueprint("auth", __name__, url_prefix="/api/auth")


def _issue_session(user):
    session, token = session_service.create_session(
        user_id=user.id,
        user_agent=request.headers.get("User-Agent"),
        ip_address=request.remote_addr,
    )
    return session, token


@auth_bp.post("/signup")
def signup_route():
    """Create a `user` account and log it in."""
    data = request.get_json(silent=True) or {}
    try:
        user = auth_service.create_user(
            name=data.get("name"),
            email=data.get("email"),
            password=data.get("password"),
            role=ROLE_USER,
        )
        session, token = _issue_session(user)
        current_app.logger.info("User %s signed up", user.id)
        return jsonify({
            "user": user.to_dict(),
            "token": token,
            "session": session.to_dict(),
            "message": "Signup successful",
        }), 201
    except ServiceError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to sign up user")
        return jsonify(UNEXPECTED_ERROR_BODY), 500


@auth_bp.post("/login")
def login_route():
    """
    Authenticate user and create session token.

    Token must be included in Authorization header for protected routes.
    """
    try:
        data = request.get_json(silent=True) or {}
        email = data.get("email")
        password = data.get("password")

        if not email or not password:
            return jsonify({"error": "email and password required", "kind": "validation_error"}), 400

        user = auth_service.authenticate(email, password)
        if not user:
            current_app.logger.info("Failed login for %s from %s", email, request.remote_addr)
            return jsonify({"error": "Invalid email or password", "kind": "unauthenticated"}), 401

        session, token = _issue_session(user)

        return jsonify({
            "user": user.to_dict(),
            "token": token,
            "session": session.to_dict(),
            "message": "Login successful",
        }), 200
    except ServiceError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to login user")
        return jsonify(UNEXPECTED_ERROR_BODY), 500


@auth_bp.post("/logout")
def logout_route():
    """
    Revoke session token (logout).

    Expects Authorization header: Bearer <token>
    """
    try:
        token = bearer_token()
        if not token:
            return jsonify({"error": "Authorization header required", "kind": "unauthenticated"}), 401

        if not session_service.revoke_session(token, reason="User logout"):
            return jsonify({"error": "Invalid or expired token", "kind": "unauthenticated"}), 401

        return jsonify({"message": "Logged out successfully"}), 200
    except Exception:
        current_app.logger.exception("Failed to logout user")
        return jsonify(UNEXPECTED_ERROR_BODY), 500


@auth_bp.get("/profile")
@require_auth
def get_profile_route():
    return jsonify({"user": g.current_user.to_dict()}), 200


@auth_bp.put("/profile")
@require_auth
def update_profile_route():
    data = request.get_json(silent=True) or {}
    if "profilePicture" in data and "profile_picture" not in data:
        data["profile_picture"] = data["profilePicture"]
    try:
        user = auth_service.update_profile(g.current_user.id, data)
        return jsonify({"message": "Profile updated successfully", "user": user.to_dict()}), 200
    except ServiceError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to update profile")
        return jsonify(UNEXPECTED_ERROR_BODY), 500


@auth_bp.post("/change-password")
@require_auth
def change_password_route():
    """
    Change the caller's password.

    SECURITY: Every other session of the caller is revoked; the session used
    for this request stays valid.
    """
    data = request.get_json(silent=True) or {}
    current_password = data.get("current_password") or data.get("currentPassword")
    new_password = data.get("new_password") or data.get("newPassword")

    if not current_password or not new_password:
        return jsonify({
            "error": "current_password and new_password required",
            "kind": "validation_error",
        }), 400

    try:
        auth_service.change_password(g.current_user.id, current_password, new_password)
        revoked = session_service.revoke_all_user_sessions(
            g.current_user.id,
            "Password changed",
            keep_session_id=g.session_context.session.id,
        )
        return jsonify({
            "message": "Password updated successfully",
            "revoked_sessions": revoked,
        }), 200
    except ServiceError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to change password")
        return jsonify(UNEXPECTED_ERROR_BODY), 500
