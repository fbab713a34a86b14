"""
Authorization decorators.

Provides:
    - require_auth          a valid bearer token for an active user
    - require_role          minimum role level (user < admin < super-admin)
    - require_self_or_staff the ``user_id`` route argument must be the caller,
                            unless the caller is staff

Identity comes from ``admissions.middleware.jwt_auth`` (``g.jwt_user_id``);
the role is always re-read from the database so a demoted or deactivated
account loses access without waiting for token expiry.

Usage:
    @applications_bp.route("/status/<int:user_id>")
    @require_auth
    @require_self_or_staff
    def get_status(user_id): ...
"""

import functools
import logging

from flask import g, request

from admissions.models import db
from admissions.models.user import ROLE_ADMIN, ROLE_SUPER_ADMIN, ROLE_USER, User
from admissions.utils.errors import E, api_error

logger = logging.getLogger(__name__)

# Role hierarchy: super-admin > admin > user
ROLE_HIERARCHY = {
    ROLE_SUPER_ADMIN: {ROLE_SUPER_ADMIN, ROLE_ADMIN, ROLE_USER},
    ROLE_ADMIN: {ROLE_ADMIN, ROLE_USER},
    ROLE_USER: {ROLE_USER},
}


def current_user() -> User | None:
    return getattr(g, "current_user", None)


def require_auth(f):
    """
    Decorator: require a valid bearer token.

    Sets g.current_user and g.current_user_role.
    """
    @functools.wraps(f)
    def decorated(*args, **kwargs):
        user_id = getattr(g, "jwt_user_id", None)
        if user_id is None:
            message = getattr(g, "jwt_error", None) or "Authentication required"
            return api_error(E.UNAUTHORIZED, message)

        user = db.session.get(User, user_id)
        if user is None or not user.is_active:
            logger.warning("Token for missing or inactive user_id=%s path=%s", user_id, request.path)
            return api_error(E.UNAUTHORIZED, "Account not found or deactivated")

        g.current_user = user
        g.current_user_role = user.role
        return f(*args, **kwargs)

    return decorated


def require_role(minimum_role: str):
    """
    Decorator: require a minimum role level. Apply below ``require_auth``.

    Role hierarchy: super-admin > admin > user
    """
    def decorator(f):
        @functools.wraps(f)
        def decorated(*args, **kwargs):
            user_role = getattr(g, "current_user_role", None)
            if not user_role:
                return api_error(E.UNAUTHORIZED, "Authentication required")

            allowed = ROLE_HIERARCHY.get(user_role, set())
            if minimum_role not in allowed:
                logger.warning(
                    "Access denied: role '%s' tried to access '%s'-level endpoint %s",
                    user_role, minimum_role, request.path,
                )
                return api_error(E.FORBIDDEN, "Insufficient permissions")

            return f(*args, **kwargs)
        return decorated
    return decorator


def require_self_or_staff(f):
    """Decorator: applicants may only act on their own ``user_id``."""
    @functools.wraps(f)
    def decorated(*args, **kwargs):
        user = current_user()
        if user is None:
            return api_error(E.UNAUTHORIZED, "Authentication required")

        target = kwargs.get("user_id")
        if target is not None and target != user.id and not user.is_staff:
            logger.warning(
                "Ownership check failed: user_id=%s tried user_id=%s path=%s",
                user.id, target, request.path,
            )
            return api_error(E.FORBIDDEN, "You can only access your own application")

        return f(*args, **kwargs)
    return decorated
