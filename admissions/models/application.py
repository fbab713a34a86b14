"""
Application models.

Two tables:
  Application        — one per user (unique user_id), lifecycle status,
                       review timestamps, admin notes, video metadata.
  ApplicationAnswer  — one row per answered field, keyed by
                       (application_id, section, field).

Section values are never stored as a single blob: each field is its own row
so a save touches only the fields it carries, and two saves to different
fields of the same section cannot overwrite each other.
"""

from __future__ import annotations

from datetime import datetime, timezone

from admissions.models import db


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


# ── Lifecycle statuses ───────────────────────────────────────────────────────

STATUS_DRAFT = "Draft"
STATUS_IN_REVIEW = "In Review"
STATUS_ACCEPTED = "Accepted"
STATUS_REJECTED = "Rejected"
STATUS_CONFIRMATION_SENT = "Confirmation Email Sent"

APPLICATION_STATUSES = (
    STATUS_DRAFT,
    STATUS_IN_REVIEW,
    STATUS_ACCEPTED,
    STATUS_REJECTED,
    STATUS_CONFIRMATION_SENT,
)

VIDEO_PLACEHOLDER = "[VIDEO_DATA_PRESENT]"


class Application(db.Model):
    __tablename__ = "applications"
    __table_args__ = (
        db.UniqueConstraint("user_id", name="uq_application_user"),
        db.Index("ix_applications_status", "status"),
        db.Index("ix_applications_created_at", "created_at"),
    )

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(
        db.Integer,
        db.ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        comment="One application per user.",
    )
    status = db.Column(
        db.String(40),
        nullable=False,
        default=STATUS_DRAFT,
        comment="Draft | In Review | Accepted | Rejected | Confirmation Email Sent",
    )
    submitted_at = db.Column(db.DateTime)
    reviewed_at = db.Column(db.DateTime)
    admin_notes = db.Column(db.Text)

    video_duration = db.Column(db.Float)
    video_size = db.Column(db.Integer)
    video_format = db.Column(db.String(30))
    video_recorded_at = db.Column(db.DateTime)

    created_at = db.Column(db.DateTime, nullable=False, default=_utcnow)
    updated_at = db.Column(db.DateTime, nullable=False, default=_utcnow, onupdate=_utcnow)

    user = db.relationship("User", back_populates="application")
    answers = db.relationship(
        "ApplicationAnswer",
        back_populates="application",
        lazy="select",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    def sections(self) -> dict[str, dict[str, str]]:
        """Assemble ``{section: {field: value}}`` from the answer rows."""
        out: dict[str, dict[str, str]] = {}
        for answer in self.answers:
            out.setdefault(answer.section, {})[answer.field] = answer.value
        return out

    def video_metadata(self) -> dict | None:
        if self.video_size is None and self.video_format is None and self.video_duration is None:
            return None
        return {
            "duration": self.video_duration,
            "size": self.video_size,
            "format": self.video_format,
            "recordedAt": self.video_recorded_at.isoformat() if self.video_recorded_at else None,
        }

    def clear_video_metadata(self) -> None:
        self.video_duration = None
        self.video_size = None
        self.video_format = None
        self.video_recorded_at = None

    def timestamps(self) -> dict:
        return {
            "submittedAt": self.submitted_at.isoformat() if self.submitted_at else None,
            "reviewedAt": self.reviewed_at.isoformat() if self.reviewed_at else None,
            "createdAt": self.created_at.isoformat() if self.created_at else None,
            "updatedAt": self.updated_at.isoformat() if self.updated_at else None,
        }

    def __repr__(self) -> str:
        return f"<Application {self.id} user={self.user_id} status={self.status!r}>"


class ApplicationAnswer(db.Model):
    __tablename__ = "application_answers"
    __table_args__ = (
        db.UniqueConstraint("application_id", "section", "field", name="uq_answer_field"),
    )

    id = db.Column(db.Integer, primary_key=True)
    application_id = db.Column(
        db.Integer,
        db.ForeignKey("applications.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    section = db.Column(db.String(40), nullable=False)
    field = db.Column(db.String(60), nullable=False)
    value = db.Column(db.Text, nullable=False)
    updated_at = db.Column(db.DateTime, nullable=False, default=_utcnow, onupdate=_utcnow)

    application = db.relationship("Application", back_populates="answers")

    def __repr__(self) -> str:
        return f"<ApplicationAnswer {self.application_id} {self.section}.{self.field}>"
