"""
Auth Blueprint — applicant registration, login and profile.

Endpoints:
  POST /api/v1/auth/register    — Create account + empty application → JWT
  POST /api/v1/auth/login       — Email + password → JWT + redirect hint
  GET  /api/v1/auth/me          — Current user profile
  PUT  /api/v1/auth/profile     — Update name / phone / address
  POST /api/v1/auth/change-password — Verify current password, set a new one
"""

from flask import Blueprint, jsonify

from admissions.auth import current_user, require_auth
from admissions.services import user_service
from admissions.services.jwt_service import token_response
from admissions.utils.helpers import get_json_body

auth_bp = Blueprint("auth_bp", __name__, url_prefix="/api/v1/auth")


# ═══════════════════════════════════════════════════════════════
# POST /api/v1/auth/register
# ═══════════════════════════════════════════════════════════════
@auth_bp.route("/register", methods=["POST"])
def register():
    """
    Body: { "firstName", "lastName", "email", "password", "phone"?, "address"? }
    """
    user = user_service.register_user(get_json_body())
    return jsonify({
        **token_response(user),
        "userId": user.id,
        "user": user.to_dict(),
    }), 201


# ═══════════════════════════════════════════════════════════════
# POST /api/v1/auth/login
# ═══════════════════════════════════════════════════════════════
@auth_bp.route("/login", methods=["POST"])
def login():
    """
    Body: { "email": "...", "password": "..." }
    """
    data = get_json_body()
    user = user_service.authenticate(data.get("email"), data.get("password"))
    return jsonify({
        **token_response(user),
        "userId": user.id,
        "user": user.to_dict(),
        "redirectTo": user_service.redirect_for(user),
    }), 200


# ═══════════════════════════════════════════════════════════════
# GET /api/v1/auth/me
# ═══════════════════════════════════════════════════════════════
@auth_bp.route("/me", methods=["GET"])
@require_auth
def me():
    return jsonify({"user": current_user().to_dict()}), 200


# ═══════════════════════════════════════════════════════════════
# PUT /api/v1/auth/profile
# ═══════════════════════════════════════════════════════════════
@auth_bp.route("/profile", methods=["PUT"])
@require_auth
def update_profile():
    user = user_service.update_profile(current_user().id, get_json_body())
    return jsonify({"user": user.to_dict()}), 200


# ═══════════════════════════════════════════════════════════════
# POST /api/v1/auth/change-password
# ═══════════════════════════════════════════════════════════════
@auth_bp.route("/change-password", methods=["POST"])
@require_auth
def change_password():
    """
    Body: { "currentPassword": "...", "newPassword": "..." }
    """
    data = get_json_body()
    user_service.change_password(current_user().id, data.get("currentPassword"), data.get("newPassword"))
    return jsonify({"message": "Password changed successfully"}), 200
