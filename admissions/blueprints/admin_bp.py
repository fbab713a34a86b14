"""
Admin Blueprint — staff-only review and user management.

All routes except ``/auth/login`` require role ``admin`` or higher; the
``/admins`` routes require ``super-admin``.

Endpoints:
  POST   /api/v1/admin/auth/login                    — staff login
  PUT    /api/v1/admin/profile                       — edit own profile
  POST   /api/v1/admin/change-password               — change own password
  GET    /api/v1/admin/stats                         — aggregate statistics
  GET    /api/v1/admin/analytics                     — daily sign-ups, starts (period=days)
  GET    /api/v1/admin/applications                  — list (status, search, sort, page)
  GET    /api/v1/admin/applications/recent           — most recently updated
  GET    /api/v1/admin/applications/progress         — per-user section progress
  GET    /api/v1/admin/applications/<id>             — detail
  PATCH  /api/v1/admin/applications/<id>/status      — set status + notes
  DELETE /api/v1/admin/applications/<id>             — delete, reset user mirror
  GET    /api/v1/admin/users                         — list applicants
  GET    /api/v1/admin/users/<id>                    — user + application
  PUT    /api/v1/admin/users/<id>                    — edit profile fields
  DELETE /api/v1/admin/users/<id>                    — delete user + application
  PATCH  /api/v1/admin/users/<id>/status             — activate / deactivate
  GET    /api/v1/admin/users/<id>/stats              — per-user statistics
  GET    /api/v1/admin/admins                        — list staff (super-admin)
  POST   /api/v1/admin/admins                        — create staff (super-admin)
  GET    /api/v1/admin/admins/<id>                   — staff account (super-admin)
  PUT    /api/v1/admin/admins/<id>                   — edit staff account (super-admin)
  DELETE /api/v1/admin/admins/<id>                   — delete staff account (super-admin)
  PATCH  /api/v1/admin/admins/<id>/role              — change role (super-admin)
"""

from flask import Blueprint, current_app, jsonify, request

from admissions import limiter
from admissions.auth import current_user, require_auth, require_role
from admissions.core.exceptions import ValidationError
from admissions.middleware.rate_limiter import AUTH_LIMIT
from admissions.models.user import ROLE_ADMIN, ROLE_SUPER_ADMIN, ROLE_USER
from admissions.services import application_service, user_service
from admissions.services.jwt_service import token_response
from admissions.utils.helpers import get_json_body, parse_pagination

admin_bp = Blueprint("admin_bp", __name__, url_prefix="/api/v1/admin")

_USER_STATUSES = {"active": True, "inactive": False}

DEFAULT_ANALYTICS_DAYS = 30
MAX_ANALYTICS_DAYS = 365


# ═══════════════════════════════════════════════════════════════
# Auth + own account
# ═══════════════════════════════════════════════════════════════
@admin_bp.route("/auth/login", methods=["POST"])
@limiter.limit(AUTH_LIMIT)
def login():
    data = get_json_body()
    user = user_service.authenticate(data.get("email"), data.get("password"), admin_only=True)
    return jsonify({**token_response(user), "user": user.to_dict()}), 200


@admin_bp.route("/profile", methods=["PUT"])
@require_auth
@require_role(ROLE_ADMIN)
def update_profile():
    """
    Body: { "firstName"?, "lastName"?, "email"?, "phone"?, "address"? }
    """
    user = user_service.update_user(current_user().id, get_json_body())
    return jsonify({"message": "Profile updated successfully", "admin": user.to_dict()}), 200


@admin_bp.route("/change-password", methods=["POST"])
@require_auth
@require_role(ROLE_ADMIN)
def change_password():
    data = get_json_body()
    user_service.change_password(current_user().id, data.get("currentPassword"), data.get("newPassword"))
    return jsonify({"message": "Password changed successfully"}), 200


# ═══════════════════════════════════════════════════════════════
# Applications
# ═══════════════════════════════════════════════════════════════
@admin_bp.route("/stats", methods=["GET"])
@require_auth
@require_role(ROLE_ADMIN)
def stats():
    return jsonify(application_service.compute_stats()), 200


@admin_bp.route("/analytics", methods=["GET"])
@require_auth
@require_role(ROLE_ADMIN)
def analytics():
    period = request.args.get("period", DEFAULT_ANALYTICS_DAYS, type=int)
    period = min(max(period, 1), MAX_ANALYTICS_DAYS)
    return jsonify(application_service.compute_analytics(period)), 200


@admin_bp.route("/applications", methods=["GET"])
@require_auth
@require_role(ROLE_ADMIN)
def list_applications():
    page, limit = parse_pagination()
    result = application_service.list_applications(
        status=request.args.get("status"),
        search=request.args.get("search"),
        sort_by=request.args.get("sortBy", "updatedAt"),
        sort_order=request.args.get("sortOrder", "desc"),
        page=page,
        limit=limit,
    )
    return jsonify(result), 200


@admin_bp.route("/applications/recent", methods=["GET"])
@require_auth
@require_role(ROLE_ADMIN)
def recent_applications():
    limit = request.args.get("limit", 5, type=int)
    limit = min(max(limit, 1), 50)
    return jsonify({"applications": application_service.recent_applications(limit)}), 200


@admin_bp.route("/applications/progress", methods=["GET"])
@require_auth
@require_role(ROLE_ADMIN)
def applications_progress():
    return jsonify({"progressData": application_service.list_progress()}), 200


@admin_bp.route("/applications/<int:application_id>", methods=["GET"])
@require_auth
@require_role(ROLE_ADMIN)
def get_application(application_id):
    return jsonify({"application": application_service.get_application_by_id(application_id)}), 200


@admin_bp.route("/applications/<int:application_id>/status", methods=["PATCH"])
@require_auth
@require_role(ROLE_ADMIN)
def update_application_status(application_id):
    """
    Body: { "status": "Accepted", "adminNotes": "..." }
    """
    data = get_json_body()
    result = application_service.admin_set_status(
        application_id,
        data.get("status"),
        data.get("adminNotes"),
        strict=current_app.config.get("APPLICATION_STRICT_TRANSITIONS", False),
    )
    return jsonify({"message": "Application status updated successfully", "application": result}), 200


@admin_bp.route("/applications/<int:application_id>", methods=["DELETE"])
@require_auth
@require_role(ROLE_ADMIN)
def delete_application(application_id):
    application_service.delete_application(application_id)
    return jsonify({"message": "Application deleted successfully"}), 200


# ═══════════════════════════════════════════════════════════════
# Users
# ═══════════════════════════════════════════════════════════════
@admin_bp.route("/users", methods=["GET"])
@require_auth
@require_role(ROLE_ADMIN)
def list_users():
    page, limit = parse_pagination()
    status = request.args.get("status")
    result = user_service.list_users(
        search=request.args.get("search"),
        role=request.args.get("role", ROLE_USER),
        is_active=_USER_STATUSES.get(status) if status else None,
        sort_by=request.args.get("sortBy", "createdAt"),
        sort_order=request.args.get("sortOrder", "desc"),
        page=page,
        limit=limit,
    )
    return jsonify(result), 200


@admin_bp.route("/users/<int:user_id>", methods=["GET"])
@require_auth
@require_role(ROLE_ADMIN)
def get_user(user_id):
    return jsonify(user_service.get_user_detail(user_id)), 200


@admin_bp.route("/users/<int:user_id>", methods=["PUT"])
@require_auth
@require_role(ROLE_ADMIN)
def update_user(user_id):
    user = user_service.update_user(user_id, get_json_body())
    return jsonify({"message": "User updated successfully", "user": user.to_dict()}), 200


@admin_bp.route("/users/<int:user_id>", methods=["DELETE"])
@require_auth
@require_role(ROLE_ADMIN)
def delete_user(user_id):
    user_service.delete_user(user_id)
    return jsonify({"message": "User and associated data deleted successfully"}), 200


@admin_bp.route("/users/<int:user_id>/status", methods=["PATCH"])
@require_auth
@require_role(ROLE_ADMIN)
def update_user_status(user_id):
    """
    Body: { "status": "active" | "inactive" }
    """
    status = get_json_body().get("status")
    if status not in _USER_STATUSES:
        raise ValidationError(
            "Invalid status",
            details={"status": f"must be one of: {', '.join(_USER_STATUSES)}"},
        )
    user = user_service.set_user_active(
        user_id, _USER_STATUSES[status], acting_user_id=current_user().id,
    )
    return jsonify({"message": "User status updated successfully", "user": user.to_dict()}), 200


@admin_bp.route("/users/<int:user_id>/stats", methods=["GET"])
@require_auth
@require_role(ROLE_ADMIN)
def user_stats(user_id):
    return jsonify(user_service.user_stats(user_id)), 200


# ═══════════════════════════════════════════════════════════════
# Staff accounts (super-admin)
# ═══════════════════════════════════════════════════════════════
@admin_bp.route("/admins", methods=["GET"])
@require_auth
@require_role(ROLE_SUPER_ADMIN)
def list_admins():
    page, limit = parse_pagination()
    return jsonify(user_service.list_admins(search=request.args.get("search"), page=page, limit=limit)), 200


@admin_bp.route("/admins", methods=["POST"])
@require_auth
@require_role(ROLE_SUPER_ADMIN)
def create_admin():
    """
    Body: { "firstName", "lastName", "email", "password", "role"? }
    """
    data = get_json_body()
    user = user_service.create_admin(data, role=data.get("role") or ROLE_ADMIN)
    return jsonify({"message": "Admin created successfully", "admin": user.to_dict()}), 201


@admin_bp.route("/admins/<int:user_id>/role", methods=["PATCH"])
@require_auth
@require_role(ROLE_SUPER_ADMIN)
def update_admin_role(user_id):
    user = user_service.update_admin_role(
        user_id, get_json_body().get("role"), acting_user_id=current_user().id,
    )
    return jsonify({"message": "Role updated successfully", "admin": user.to_dict()}), 200


@admin_bp.route("/admins/<int:user_id>", methods=["GET"])
@require_auth
@require_role(ROLE_SUPER_ADMIN)
def get_admin(user_id):
    return jsonify({"admin": user_service.get_admin(user_id).to_dict()}), 200


@admin_bp.route("/admins/<int:user_id>", methods=["PUT"])
@require_auth
@require_role(ROLE_SUPER_ADMIN)
def update_admin(user_id):
    """
    Body: { "firstName"?, "lastName"?, "email"?, "phone"? }; role and password are ignored
    """
    user = user_service.update_admin(user_id, get_json_body())
    return jsonify({"message": "Admin updated successfully", "admin": user.to_dict()}), 200


@admin_bp.route("/admins/<int:user_id>", methods=["DELETE"])
@require_auth
@require_role(ROLE_SUPER_ADMIN)
def delete_admin(user_id):
    user_service.delete_admin(user_id, acting_user_id=current_user().id)
    return jsonify({"message": "Admin deleted successfully"}), 200
