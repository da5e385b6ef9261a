# Overview: Flask API routes for auth operations; parses input and returns JSON responses.

"""
Authentication API routes

The login session is Flask's signed cookie carrying user_id and the role
the user logged in with. Role and department are re-read from the database
on every request by require_actor, so the cookie never grants access on its
own.
"""

from flask import Blueprint, request, jsonify, current_app, session, g

from ..extensions import db
from ..models import User
from ..services import auth_service
from ..services import permission_service
from ..decorators import require_actor


auth_bp = Blueprint("auth", __name__, url_prefix="/api/auth")


@auth_bp.post("/login")
def login_route():
    """
    Authenticate user and start a session.

    SECURITY: Failed attempts are recorded as LOGIN_FAILED security events.
    """
    try:
        data = request.get_json(silent=True) or {}
        username = data.get("username")
        password = data.get("password")

        if not all([username, password]):
            return jsonify({"error": "username and password required"}), 400

        user = auth_service.authenticate(username, password)

        if not user:
            permission_service.log_security_event(
                user_id=None,
                event_type="LOGIN_FAILED",
                success=False,
                resource=request.path,
                action="LOGIN",
                reason=f"Invalid credentials for {username!r}",
                ip_address=request.remote_addr,
                user_agent=request.headers.get("User-Agent"),
            )
            return jsonify({"error": "Invalid credentials"}), 401

        actor = permission_service.build_actor(user)
        if actor.role is None:
            return jsonify({"error": "Account has no usable role"}), 403

        session.clear()
        session["user_id"] = user.id
        session["active_role"] = actor.role

        return jsonify({
            "user": user.to_dict(),
            "active_role": actor.role,
            "is_finance": actor.is_finance,
        })
    except Exception:
        current_app.logger.exception("Login failed")
        return jsonify({"error": "Login failed"}), 500


@auth_bp.post("/logout")
def logout_route():
    user_id = session.get("user_id")
    session.clear()
    if user_id:
        permission_service.log_security_event(
            user_id=user_id,
            event_type="LOGOUT",
            success=True,
            resource=request.path,
            action="LOGOUT",
            ip_address=request.remote_addr,
            user_agent=request.headers.get("User-Agent"),
        )
    return jsonify({"message": "Logged out"})


@auth_bp.get("/me")
@require_actor
def me_route():
    """Current user with the role and finance membership the policy will use."""
    user = db.session.query(User).filter_by(id=g.actor.user_id).first()
    return jsonify({
        "user": user.to_dict(),
        "active_role": g.actor.role,
        "department_id": g.actor.department_id,
        "is_finance": g.actor.is_finance,
    })
