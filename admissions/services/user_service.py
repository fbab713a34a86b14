"""
User Service — registration, login, profile, admin user management.
"""

import logging
from datetime import datetime, timezone

import sqlalchemy as sa
from email_validator import EmailNotValidError, validate_email

from admissions.core.exceptions import (
    AuthenticationError,
    ConflictError,
    NotFoundError,
    PermissionDeniedError,
    ValidationError,
)
from admissions.models import db
from admissions.models.application import STATUS_DRAFT
from admissions.models.user import (
    NOT_STARTED,
    ROLE_ADMIN,
    ROLE_USER,
    ROLES,
    STAFF_ROLES,
    User,
)
from admissions.services import application_service
from admissions.services.completion import evaluate
from admissions.utils.crypto import hash_password, verify_password
from admissions.utils.helpers import paginate

logger = logging.getLogger(__name__)

MIN_PASSWORD_LENGTH = 8

# camelCase payload key → column, for profile and admin edits
_PROFILE_FIELDS = {
    "firstName": "first_name",
    "lastName": "last_name",
    "phone": "phone",
    "address": "address",
}

_USER_SORTABLE = {
    "createdAt": User.created_at,
    "updatedAt": User.updated_at,
    "lastName": User.last_name,
    "email": User.email,
}


def _normalize_email(email) -> str:
    if not isinstance(email, str) or not email.strip():
        raise ValidationError("Email is required", details={"email": "required"})
    try:
        return validate_email(email.strip(), check_deliverability=False).normalized.lower()
    except EmailNotValidError as e:
        raise ValidationError(f"Invalid email: {e}", details={"email": str(e)})


def _require_text(data: dict, key: str, errors: dict, max_length: int = 100) -> str | None:
    value = data.get(key)
    if not isinstance(value, str) or not value.strip():
        errors[key] = "required"
        return None
    if len(value) > max_length:
        errors[key] = f"must be at most {max_length} characters"
        return None
    return value.strip()


def _check_password(password) -> str:
    if not isinstance(password, str) or len(password) < MIN_PASSWORD_LENGTH:
        raise ValidationError(
            f"Password must be at least {MIN_PASSWORD_LENGTH} characters",
            details={"password": f"min {MIN_PASSWORD_LENGTH} characters"},
        )
    return password


def _ensure_email_free(email: str, exclude_user_id: int | None = None) -> None:
    q = User.query.filter(sa.func.lower(User.email) == email)
    if exclude_user_id is not None:
        q = q.filter(User.id != exclude_user_id)
    if q.first():
        raise ConflictError("User", "email", email)


def _apply_profile(user: User, data: dict) -> None:
    errors: dict[str, str] = {}
    for key, column in _PROFILE_FIELDS.items():
        if key not in data:
            continue
        value = data[key]
        if value is not None and not isinstance(value, str):
            errors[key] = "must be a string"
            continue
        if column in ("first_name", "last_name") and not (value or "").strip():
            errors[key] = "required"
            continue
        setattr(user, column, value.strip() if isinstance(value, str) else value)
    if errors:
        raise ValidationError("Invalid profile data", details=errors)
    user.profile_complete = all((user.first_name, user.last_name, user.phone, user.address))


# ═══════════════════════════════════════════════════════════════
# Registration / login
# ═══════════════════════════════════════════════════════════════
def register_user(data: dict) -> User:
    """Create an applicant account and its empty Draft application."""
    errors: dict[str, str] = {}
    first_name = _require_text(data, "firstName", errors)
    last_name = _require_text(data, "lastName", errors)
    if errors:
        raise ValidationError("Missing required fields", details=errors)

    email = _normalize_email(data.get("email"))
    password = _check_password(data.get("password"))
    _ensure_email_free(email)

    user = User(
        first_name=first_name,
        last_name=last_name,
        email=email,
        password_hash=hash_password(password),
        role=ROLE_USER,
    )
    _apply_profile(user, {k: data[k] for k in ("phone", "address") if k in data})
    db.session.add(user)
    db.session.commit()
    logger.info("User registered user_id=%s", user.id)

    application_service.ensure_application(user.id)
    return user


def authenticate(email, password, *, admin_only: bool = False) -> User:
    """Verify credentials and stamp ``last_login_at``.

    Raises:
        AuthenticationError: unknown email, wrong password or deactivated account.
        PermissionDeniedError: ``admin_only`` and the account is not staff.
    """
    if not isinstance(email, str) or not isinstance(password, str):
        raise AuthenticationError("Invalid credentials")

    user = User.query.filter(sa.func.lower(User.email) == email.strip().lower()).first()
    if not user or not verify_password(password, user.password_hash):
        logger.warning("Failed login attempt email=%s", email)
        raise AuthenticationError("Invalid credentials")
    if not user.is_active:
        raise AuthenticationError("Account is deactivated")
    if admin_only and not user.is_staff:
        raise PermissionDeniedError("Admin access required")

    user.last_login_at = datetime.now(timezone.utc)
    db.session.commit()
    return user


def redirect_for(user: User) -> str:
    """Where the client should land after login."""
    application = user.application
    if application is not None and application.status != STATUS_DRAFT:
        return "/dashboard"
    return "/application"


# ═══════════════════════════════════════════════════════════════
# Profile
# ═══════════════════════════════════════════════════════════════
def get_user(user_id: int) -> User:
    user = db.session.get(User, user_id)
    if not user:
        raise NotFoundError(resource="User", resource_id=user_id)
    return user


def update_profile(user_id: int, data: dict) -> User:
    user = get_user(user_id)
    _apply_profile(user, data)
    db.session.commit()
    return user


def change_password(user_id: int, current_password, new_password) -> User:
    """Replace the password after re-checking the current one.

    Raises:
        ValidationError: current password missing or wrong, or the new one too short.
    """
    user = get_user(user_id)
    if not isinstance(current_password, str) or not current_password:
        raise ValidationError(
            "Current password and new password are required",
            details={"currentPassword": "required"},
        )
    if not verify_password(current_password, user.password_hash):
        raise ValidationError(
            "Current password is incorrect",
            details={"currentPassword": "incorrect"},
        )
    user.password_hash = hash_password(_check_password(new_password))
    db.session.commit()
    logger.info("Password changed user_id=%s", user_id, extra={"user_id": user_id})
    return user


# ═══════════════════════════════════════════════════════════════
# Admin: applicants
# ═══════════════════════════════════════════════════════════════
def _user_row(user: User) -> dict:
    application = user.application
    percentage = evaluate(application.sections()).percentage if application else 0
    return {
        **user.to_dict(),
        "applicationStatus": user.application_status or NOT_STARTED,
        "completionPercentage": percentage,
        "applicationId": application.id if application else None,
    }


def list_users(
    *,
    search: str | None = None,
    role: str = ROLE_USER,
    is_active: bool | None = None,
    sort_by: str = "createdAt",
    sort_order: str = "desc",
    page: int = 1,
    limit: int = 10,
) -> dict:
    """List accounts with pagination. Staff are excluded unless ``role`` says otherwise."""
    q = User.query
    if role and role != "all":
        q = q.filter(User.role == role)
    if is_active is not None:
        q = q.filter(User.is_active == is_active)
    if search:
        like = f"%{search.strip()}%"
        q = q.filter(sa.or_(
            User.first_name.ilike(like),
            User.last_name.ilike(like),
            User.email.ilike(like),
        ))
    column = _USER_SORTABLE.get(sort_by, User.created_at)
    q = q.order_by(column.asc() if sort_order == "asc" else column.desc(), User.id.desc())

    users, pagination = paginate(q, page, limit)
    return {"users": [_user_row(u) for u in users], "pagination": pagination}


def get_user_detail(user_id: int) -> dict:
    user = get_user(user_id)
    application = user.application
    return {
        "user": _user_row(user),
        "application": application_service.get_application_by_id(application.id) if application else None,
    }


def update_user(user_id: int, data: dict) -> User:
    """Admin edit. Password and role are never changed here."""
    user = get_user(user_id)
    if "email" in data:
        email = _normalize_email(data["email"])
        _ensure_email_free(email, exclude_user_id=user.id)
        user.email = email
    _apply_profile(user, data)
    db.session.commit()
    logger.info("User updated by admin user_id=%s", user_id)
    return user


def set_user_active(user_id: int, active: bool, *, acting_user_id: int | None = None) -> User:
    user = get_user(user_id)
    if acting_user_id is not None and user.id == acting_user_id and not active:
        raise PermissionDeniedError("You cannot deactivate your own account")
    user.is_active = bool(active)
    db.session.commit()
    logger.info("User active flag set user_id=%s active=%s", user_id, user.is_active)
    return user


def delete_user(user_id: int) -> None:
    """Delete an applicant and their application. Staff accounts are protected."""
    user = get_user(user_id)
    if user.is_staff:
        raise PermissionDeniedError("Cannot delete admin users")
    db.session.delete(user)
    db.session.commit()
    logger.info("User deleted user_id=%s", user_id)


def user_stats(user_id: int) -> dict:
    user = get_user(user_id)
    application = user.application
    report = evaluate(application.sections()) if application else None
    return {
        "registrationDate": user.created_at.isoformat() if user.created_at else None,
        "profileCompletion": 100 if user.profile_complete else 50,
        "applicationCompletion": report.percentage if report else 0,
        "applicationStatus": user.application_status or NOT_STARTED,
        "lastActivity": user.updated_at.isoformat() if user.updated_at else None,
        "lastLoginAt": user.last_login_at.isoformat() if user.last_login_at else None,
        "applicationSections": report.sections if report else None,
    }


# ═══════════════════════════════════════════════════════════════
# Admin: staff accounts
# ═══════════════════════════════════════════════════════════════
def create_admin(data: dict, *, role: str = ROLE_ADMIN) -> User:
    if role not in STAFF_ROLES:
        raise ValidationError("Invalid admin role", details={"role": f"must be one of: {', '.join(sorted(STAFF_ROLES))}"})

    errors: dict[str, str] = {}
    first_name = _require_text(data, "firstName", errors)
    last_name = _require_text(data, "lastName", errors)
    if errors:
        raise ValidationError("Missing required fields", details=errors)

    email = _normalize_email(data.get("email"))
    password = _check_password(data.get("password"))
    _ensure_email_free(email)

    user = User(
        first_name=first_name,
        last_name=last_name,
        email=email,
        password_hash=hash_password(password),
        role=role,
        phone=data.get("phone"),
    )
    db.session.add(user)
    db.session.commit()
    logger.info("Staff account created user_id=%s role=%s", user.id, role)
    return user


def list_admins(*, search: str | None = None, page: int = 1, limit: int = 10) -> dict:
    q = User.query.filter(User.role.in_(STAFF_ROLES))
    if search:
        like = f"%{search.strip()}%"
        q = q.filter(sa.or_(
            User.first_name.ilike(like),
            User.last_name.ilike(like),
            User.email.ilike(like),
        ))
    q = q.order_by(User.created_at.desc(), User.id.desc())
    admins, pagination = paginate(q, page, limit)
    return {"admins": [a.to_dict() for a in admins], "pagination": pagination}


def update_admin_role(user_id: int, role, *, acting_user_id: int | None = None) -> User:
    if role not in ROLES:
        raise ValidationError("Invalid role", details={"role": f"must be one of: {', '.join(ROLES)}"})
    user = get_user(user_id)
    if acting_user_id is not None and user.id == acting_user_id:
        raise PermissionDeniedError("You cannot change your own role")
    previous = user.role
    user.role = role
    db.session.commit()
    logger.info("Role changed user_id=%s %s -> %s", user_id, previous, role)
    return user

def get_admin(user_id: int) -> User:
    """A staff account by id; applicants are reported as not found."""
    user = db.session.get(User, user_id)
    if not user or not user.is_staff:
        raise NotFoundError(resource="Admin", resource_id=user_id)
    return user


def update_admin(user_id: int, data: dict) -> User:
    """Edit a staff account's email and profile. Role and password are ignored."""
    user = get_admin(user_id)
    return update_user(user.id, data)


def delete_admin(user_id: int, *, acting_user_id: int | None = None) -> None:
    user = get_admin(user_id)
    if acting_user_id is not None and user.id == acting_user_id:
        raise PermissionDeniedError("Cannot delete your own account")
    db.session.delete(user)
    db.session.commit()
    logger.info("Staff account deleted user_id=%s", user_id, extra={"user_id": user_id})
