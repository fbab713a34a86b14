"""
User model — applicants and staff accounts.

Staff are ordinary users whose ``role`` is ``admin`` or ``super-admin``.

``application_status`` and ``is_application_completed`` mirror the state of
the user's Application so that dashboards can show progress without a join.
The mirror is updated best-effort after every application change and may lag
behind the Application record if that secondary write fails.
"""

from __future__ import annotations

from datetime import datetime, timezone

from admissions.models import db


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


ROLE_USER = "user"
ROLE_ADMIN = "admin"
ROLE_SUPER_ADMIN = "super-admin"

ROLES = (ROLE_USER, ROLE_ADMIN, ROLE_SUPER_ADMIN)
STAFF_ROLES = frozenset({ROLE_ADMIN, ROLE_SUPER_ADMIN})

NOT_STARTED = "Not Started"


class User(db.Model):
    __tablename__ = "users"

    id = db.Column(db.Integer, primary_key=True)
    first_name = db.Column(db.String(100), nullable=False)
    last_name = db.Column(db.String(100), nullable=False)
    email = db.Column(db.String(200), nullable=False, unique=True, index=True)
    password_hash = db.Column(db.String(256), nullable=False)
    phone = db.Column(db.String(50))
    address = db.Column(db.String(500))
    role = db.Column(db.String(20), nullable=False, default=ROLE_USER, comment="user | admin | super-admin")
    is_active = db.Column(db.Boolean, nullable=False, default=True)
    profile_complete = db.Column(db.Boolean, nullable=False, default=False)

    # Mirrored from Application (best-effort)
    is_application_completed = db.Column(db.Boolean, nullable=False, default=False)
    application_status = db.Column(db.String(40), nullable=False, default=NOT_STARTED)
    last_section_completed = db.Column(db.String(40))

    last_login_at = db.Column(db.DateTime)
    created_at = db.Column(db.DateTime, nullable=False, default=_utcnow)
    updated_at = db.Column(db.DateTime, nullable=False, default=_utcnow, onupdate=_utcnow)

    application = db.relationship(
        "Application",
        back_populates="user",
        uselist=False,
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    @property
    def is_staff(self) -> bool:
        return self.role in STAFF_ROLES

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()

    def to_summary(self) -> dict:
        """Minimal identity block embedded in application listings."""
        return {
            "id": self.id,
            "firstName": self.first_name,
            "lastName": self.last_name,
            "email": self.email,
            "phone": self.phone,
            "address": self.address,
        }

    def to_dict(self) -> dict:
        return {
            **self.to_summary(),
            "role": self.role,
            "isActive": self.is_active,
            "profileComplete": self.profile_complete,
            "isApplicationCompleted": self.is_application_completed,
            "applicationStatus": self.application_status or NOT_STARTED,
            "lastSectionCompleted": self.last_section_completed,
            "lastLoginAt": self.last_login_at.isoformat() if self.last_login_at else None,
            "createdAt": self.created_at.isoformat() if self.created_at else None,
            "updatedAt": self.updated_at.isoformat() if self.updated_at else None,
        }

    def __repr__(self) -> str:
        return f"<User {self.id} {self.email} role={self.role}>"
