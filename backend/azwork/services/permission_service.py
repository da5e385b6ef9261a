# Overview: Actor resolution, permission denials, and security event logging.

"""
Actor Context and Security Event Logging

WHY: The allocation policy needs to know who is acting, in which role, and
whether they belong to the Finance department. That is resolved here from a
fresh user read on every request; nothing is cached between requests because
department and budget assignments can change between page loads.

DESIGN PRINCIPLES:
- Fail closed: unknown roles and inactive users get no actor
- Log denials only: successful checks are not logged
- Denials are persisted to security_events after the failed transaction
  has been rolled back
"""

from flask import current_app

from ..extensions import db
from ..models import User, Department, SecurityEvent
from ..permissions import ActorContext, normalize_role
from azwork.time_utils import utcnow


class PermissionDeniedError(Exception):
    """Raised when the actor fails an access check."""

    def __init__(
        self,
        message: str,
        *,
        actor_user_id: int | None = None,
        action: str | None = None,
        resource: str | None = None,
    ):
        super().__init__(message)
        self.actor_user_id = actor_user_id
        self.action = action
        self.resource = resource


def log_security_event(
    user_id: int | None,
    event_type: str,
    success: bool,
    resource: str | None = None,
    action: str | None = None,
    reason: str | None = None,
    ip_address: str | None = None,
    user_agent: str | None = None,
) -> SecurityEvent:
    """
    Log security event to audit trail.

    WHY: Immutable audit log for denied allocation actions and login
    failures.

    event_type examples:
    - PERMISSION_DENIED
    - LOGIN_FAILED
    - LOGOUT
    """
    event = SecurityEvent(
        user_id=user_id,
        event_type=event_type,
        resource=resource,
        action=action,
        success=success,
        reason=reason,
        ip_address=ip_address,
        user_agent=user_agent,
        occurred_at=utcnow()
    )

    db.session.add(event)
    db.session.commit()

    return event


def record_denial(
    error: PermissionDeniedError,
    *,
    ip_address: str | None = None,
    user_agent: str | None = None,
) -> SecurityEvent:
    """Log a PermissionDeniedError and persist it as a PERMISSION_DENIED event."""
    current_app.logger.warning(
        "Permission denied: user=%s action=%s resource=%s reason=%s",
        error.actor_user_id,
        error.action,
        error.resource,
        error,
    )
    return log_security_event(
        user_id=error.actor_user_id,
        event_type="PERMISSION_DENIED",
        success=False,
        resource=error.resource,
        action=error.action,
        reason=str(error),
        ip_address=ip_address,
        user_agent=user_agent,
    )


def is_finance_department(department: Department | None) -> bool:
    """Finance membership is decided by department slug, case-insensitively."""
    if department is None or department.deleted_at is not None:
        return False
    if not department.slug:
        return False
    finance_slug = current_app.config.get("FINANCE_DEPARTMENT_SLUG", "finance")
    return department.slug.strip().lower() == finance_slug.strip().lower()


def build_actor(user: User) -> ActorContext:
    """Build the actor context for a loaded user row."""
    department = None
    if user.department_id:
        department = db.session.query(Department).filter_by(id=user.department_id).first()
    return ActorContext(
        user_id=user.id,
        role=normalize_role(user.role),
        department_id=user.department_id,
        is_finance=is_finance_department(department),
    )


def load_actor(user_id: int | None) -> ActorContext | None:
    """
    Resolve the actor for a request from a fresh user read.

    Returns None when the user is missing, deactivated, soft-deleted,
    or carries a role the system does not recognize.
    """
    if not user_id:
        return None
    user = db.session.query(User).populate_existing().filter_by(id=user_id).first()
    if not user or not user.is_active or user.deleted_at is not None:
        return None
    actor = build_actor(user)
    if actor.role is None:
        current_app.logger.warning("User %s has unrecognized role %r", user.id, user.role)
        return None
    return actor


def require_role(actor: ActorContext, roles, *, action: str, resource: str | None = None) -> None:
    """Raise PermissionDeniedError unless the actor holds one of the roles."""
    if actor.role not in roles:
        raise PermissionDeniedError(
            f"Requires role: {', '.join(sorted(roles))}",
            actor_user_id=actor.user_id,
            action=action,
            resource=resource,
        )
