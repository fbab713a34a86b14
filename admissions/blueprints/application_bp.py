"""
Application Blueprint — applicant-facing application endpoints.

Every ``<user_id>`` route is restricted to the owner or staff.

Endpoints:
  POST   /api/v1/applications/ensure/<user_id>              — find-or-create
  POST   /api/v1/applications/section/<user_id>             — save one section
  POST   /api/v1/applications/save/<user_id>                — save several sections
  POST   /api/v1/applications/validate/<user_id>/<section>  — dry-run validation
  GET    /api/v1/applications/sections/<user_id>            — sections + questions
  GET    /api/v1/applications/user/<user_id>                — full application
  GET    /api/v1/applications/status/<user_id>              — status snapshot
  POST   /api/v1/applications/submit                        — explicit submit
  POST   /api/v1/applications/video/<user_id>               — upload recording
  GET    /api/v1/applications/video/<user_id>               — metadata (?download=true for data)
  DELETE /api/v1/applications/video/<user_id>               — remove recording
"""

from flask import Blueprint, jsonify, request

from admissions.auth import current_user, require_auth, require_self_or_staff
from admissions.core.exceptions import ValidationError
from admissions.services import application_service
from admissions.utils.helpers import get_json_body

application_bp = Blueprint("application_bp", __name__, url_prefix="/api/v1/applications")


@application_bp.route("/ensure/<int:user_id>", methods=["POST"])
@require_auth
@require_self_or_staff
def ensure(user_id):
    application = application_service.ensure_application(user_id)
    return jsonify({"message": "Application ensured", "applicationId": application.id}), 200


@application_bp.route("/section/<int:user_id>", methods=["POST"])
@require_auth
@require_self_or_staff
def save_section(user_id):
    """
    Body: { "section": "warmUp", "data": { "animalQuestion": "..." } }
    """
    body = get_json_body()
    section = body.get("section")
    if not section:
        raise ValidationError("Section name is required", details={"section": "required"})
    result = application_service.save_section(user_id, section, body.get("data"))
    return jsonify({"message": f"Section {section} saved successfully", **result}), 200


@application_bp.route("/save/<int:user_id>", methods=["POST"])
@require_auth
@require_self_or_staff
def save_application(user_id):
    """
    Body: { "<section>": { ...fields }, ... }
    """
    body = get_json_body()
    body.pop("userId", None)
    application = application_service.save_application(user_id, body)
    return jsonify({"message": "Application saved successfully", "application": application}), 200


@application_bp.route("/validate/<int:user_id>/<section>", methods=["POST"])
@require_auth
@require_self_or_staff
def validate_section(user_id, section):
    """
    Body: { "data": { ...fields } }
    """
    body = get_json_body()
    result = application_service.validate_section(section, body.get("data"))
    return jsonify({**result, "message": "Section data is valid"}), 200


@application_bp.route("/sections/<int:user_id>", methods=["GET"])
@require_auth
@require_self_or_staff
def get_sections(user_id):
    return jsonify(application_service.get_sections(user_id)), 200


@application_bp.route("/user/<int:user_id>", methods=["GET"])
@require_auth
@require_self_or_staff
def get_application(user_id):
    return jsonify({"application": application_service.get_application(user_id)}), 200


@application_bp.route("/status/<int:user_id>", methods=["GET"])
@require_auth
@require_self_or_staff
def get_status(user_id):
    return jsonify(application_service.get_status(user_id)), 200


@application_bp.route("/submit", methods=["POST"])
@require_auth
def submit():
    result = application_service.submit(current_user().id)
    return jsonify({"message": "Application submitted successfully", "application": result}), 200


# ═══════════════════════════════════════════════════════════════
# Video
# ═══════════════════════════════════════════════════════════════
@application_bp.route("/video/<int:user_id>", methods=["POST"])
@require_auth
@require_self_or_staff
def upload_video(user_id):
    """
    Body: { "videoData": "data:video/webm;base64,...", "metadata": { "duration": 42.5 } }
    """
    body = get_json_body()
    result = application_service.upload_video(user_id, body.get("videoData"), body.get("metadata"))
    return jsonify({"message": "Video uploaded successfully", **result}), 200


@application_bp.route("/video/<int:user_id>", methods=["GET"])
@require_auth
@require_self_or_staff
def get_video(user_id):
    download = request.args.get("download", "false").lower() == "true"
    return jsonify(application_service.get_video(user_id, download=download)), 200


@application_bp.route("/video/<int:user_id>", methods=["DELETE"])
@require_auth
@require_self_or_staff
def delete_video(user_id):
    result = application_service.delete_video(user_id)
    return jsonify({"message": "Video deleted successfully", **result}), 200
