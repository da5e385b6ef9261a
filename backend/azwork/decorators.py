# Overview: Request and permission decorators for API routes.

from functools import wraps
from flask import request, jsonify, g, session

from .services import permission_service
from .services.permission_service import PermissionDeniedError


def _is_authenticated() -> bool:
    return getattr(g, "actor", None) is not None


def require_actor(f):
    """
    Require a logged-in user and resolve the acting context.

    Sets the following Flask g attributes:
    - g.actor: ActorContext built from a fresh user/department read

    SECURITY: Returns 401 if:
    - No user_id in the session
    - User deleted or deactivated since login
    - User's role is no longer recognized
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        user_id = session.get("user_id")
        if not user_id:
            return jsonify({"error": "Authentication required"}), 401

        actor = permission_service.load_actor(user_id)
        if actor is None:
            session.clear()
            return jsonify({"error": "Session is no longer valid"}), 401

        g.actor = actor
        return f(*args, **kwargs)

    return decorated_function


def require_roles(*roles):
    """
    Require one of the given roles.

    Denials are written to security_events with the request path.
    """
    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            # Ensure @require_actor was called first
            if not _is_authenticated():
                return jsonify({"error": "Authentication required"}), 401

            try:
                permission_service.require_role(
                    g.actor,
                    roles,
                    action=request.method,
                    resource=request.path,
                )
            except PermissionDeniedError as e:
                permission_service.record_denial(
                    e,
                    ip_address=request.remote_addr,
                    user_agent=request.headers.get("User-Agent"),
                )
                return jsonify({
                    "error": "Permission denied",
                    "message": str(e)
                }), 403

            return f(*args, **kwargs)

        return decorated_function
    return decorator
