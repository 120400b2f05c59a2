# Overview: Request and role decorators for API routes.

from functools import wraps
from flask import request, jsonify, g, current_app

from .services import session_service


def _is_authenticated() -> bool:
    return hasattr(g, 'current_user') and hasattr(g, 'principal')


def bearer_token() -> str | None:
    auth_header = request.headers.get("Authorization")
    if not auth_header or not auth_header.startswith("Bearer "):
        return None
    return auth_header.split(" ", 1)[1].strip() or None


def require_auth(f):
    """
    Require authentication and establish caller context.

    Sets the following Flask g attributes:
    - g.current_user: The authenticated User object
    - g.principal: Principal (id, email, role) handed to the services
    - g.session_context: The full SessionContext object

    SECURITY: Returns 401 if:
    - No Authorization header
    - Invalid, expired or revoked token
    - User account deactivated

    HIERARCHY: The owning admin is NOT resolved here; services derive it from
    g.principal per request.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        token = bearer_token()
        if not token:
            return jsonify({"error": "Authentication required", "kind": "unauthenticated"}), 401

        context = session_service.validate_session(token)

        if not context:
            return jsonify({"error": "Invalid or expired token", "kind": "unauthenticated"}), 401

        g.current_user = context.user
        g.principal = context.principal
        g.session_context = context

        return f(*args, **kwargs)

    return decorated_function


def require_role(*roles):
    """
    Require one of the given roles. Must be stacked below @require_auth.

    Role checks here are coarse; ownership and scope are enforced by the
    services, which answer 404 for rows outside the caller's tenant.
    """
    allowed = {r.strip().lower() for r in roles}

    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            if not _is_authenticated():
                return jsonify({"error": "Authentication required", "kind": "unauthenticated"}), 401

            if g.principal.role not in allowed:
                current_app.logger.info(
                    "Role check failed: user %s (%s) on %s %s",
                    g.principal.id, g.principal.role, request.method, request.path,
                )
                return jsonify({
                    "error": "Access denied",
                    "kind": "access_denied",
                    "required_roles": sorted(allowed),
                }), 403

            return f(*args, **kwargs)

        return decorated_function
    return decorator
