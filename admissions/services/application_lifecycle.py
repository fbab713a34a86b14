"""
Application Lifecycle — status transitions for an Application.

States:
    Draft → In Review → {Accepted, Rejected} → Confirmation Email Sent

Three kinds of transition:
  - auto_advance      Draft → In Review when a save makes the application
                      complete. The only automatic move; never reverts.
  - submit            explicit applicant submit; NotCompleteError when
                      required sections are not all answered.
  - admin_transition  staff may assign any of the five statuses. With strict
                      mode (APPLICATION_STRICT_TRANSITIONS) only the forward
                      edges in STRICT_TRANSITIONS are allowed.

After the Application change is committed, ``mirror_status`` copies the new
state onto the owning User. The mirror is best-effort: a failure there is
logged and never undoes the Application change.

Usage:
    from admissions.services import application_lifecycle as lifecycle

    changed = lifecycle.auto_advance(application, report)
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone

import sqlalchemy as sa
from sqlalchemy.exc import SQLAlchemyError

from admissions.core.exceptions import NotCompleteError, TransitionError, ValidationError
from admissions.models import db
from admissions.models.application import (
    APPLICATION_STATUSES,
    STATUS_ACCEPTED,
    STATUS_CONFIRMATION_SENT,
    STATUS_DRAFT,
    STATUS_IN_REVIEW,
    STATUS_REJECTED,
    Application,
)
from admissions.models.user import User
from admissions.services.completion import CompletionReport

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


# Forward-only edges used when strict transitions are enabled.
STRICT_TRANSITIONS: dict[str, frozenset[str]] = {
    STATUS_DRAFT: frozenset({STATUS_IN_REVIEW}),
    STATUS_IN_REVIEW: frozenset({STATUS_ACCEPTED, STATUS_REJECTED}),
    STATUS_ACCEPTED: frozenset({STATUS_CONFIRMATION_SENT}),
    STATUS_REJECTED: frozenset(),
    STATUS_CONFIRMATION_SENT: frozenset(),
}


def auto_advance(application: Application, report: CompletionReport, now: datetime | None = None) -> bool:
    """Move a complete Draft to In Review and stamp ``submitted_at``.

    Issued as a conditional UPDATE (``WHERE status = 'Draft'``) so that two
    racing saves flip the status, and stamp the timestamp, exactly once.

    Returns:
        True if this call performed the transition.
    """
    if application.status != STATUS_DRAFT or not report.required_complete:
        return False

    now = now or _utcnow()
    db.session.flush()
    result = db.session.execute(
        sa.update(Application)
        .where(Application.id == application.id, Application.status == STATUS_DRAFT)
        .values(status=STATUS_IN_REVIEW, submitted_at=now)
        .execution_options(synchronize_session=False)
    )
    db.session.refresh(application, ["status", "submitted_at"])

    if result.rowcount:
        logger.info(
            "Application auto-advanced id=%s user_id=%s status=%s",
            application.id, application.user_id, STATUS_IN_REVIEW,
            extra={
                "application_id": application.id,
                "user_id": application.user_id,
                "application_status": STATUS_IN_REVIEW,
            },
        )
        return True
    return False


def submit(application: Application, report: CompletionReport, now: datetime | None = None) -> None:
    """Explicit submit: In Review + ``submitted_at``, or NotCompleteError."""
    if not report.required_complete:
        raise NotCompleteError(report.percentage)
    application.status = STATUS_IN_REVIEW
    application.submitted_at = now or _utcnow()
    logger.info(
        "Application submitted id=%s user_id=%s", application.id, application.user_id,
        extra={
            "application_id": application.id,
            "user_id": application.user_id,
            "application_status": STATUS_IN_REVIEW,
        },
    )


def validate_status(status) -> str:
    if status not in APPLICATION_STATUSES:
        raise ValidationError(
            "Invalid status",
            details={"status": f"must be one of: {', '.join(APPLICATION_STATUSES)}"},
        )
    return status


def can_transition(current: str, target: str, *, strict: bool = False) -> bool:
    if not strict or current == target:
        return True
    return target in STRICT_TRANSITIONS.get(current, frozenset())


def admin_transition(
    application: Application,
    status: str,
    admin_notes: str | None = None,
    *,
    now: datetime | None = None,
    strict: bool = False,
) -> str:
    """Staff-assigned status. Any move away from Draft stamps ``reviewed_at``.

    Returns:
        The previous status.

    Raises:
        ValidationError: status is not one of the five lifecycle values,
            or ``admin_notes`` is not a string.
        TransitionError: strict mode and the edge is not allowed.
    """
    validate_status(status)
    if admin_notes is not None and not isinstance(admin_notes, str):
        raise ValidationError("Invalid admin notes", details={"adminNotes": "must be a string"})
    previous = application.status
    if not can_transition(previous, status, strict=strict):
        raise TransitionError(previous, status)

    application.status = status
    if admin_notes is not None:
        application.admin_notes = admin_notes
    if status != STATUS_DRAFT:
        application.reviewed_at = now or _utcnow()

    logger.info(
        "Application status set by admin id=%s %s -> %s",
        application.id, previous, status,
        extra={"application_id": application.id, "application_status": status},
    )
    return previous


def mirror_status(
    user_id: int,
    status: str,
    completed: bool,
    *,
    last_section: str | None = None,
) -> bool:
    """Copy application state onto the user record. Call after the primary commit.

    Returns:
        True when the mirror was written; False when it failed (already logged).
    """
    try:
        user = db.session.get(User, user_id)
        if user is None:
            logger.warning("Mirror skipped, user missing user_id=%s", user_id)
            return False
        user.application_status = status
        user.is_application_completed = completed
        if last_section:
            user.last_section_completed = last_section
        db.session.commit()
        return True
    except SQLAlchemyError:
        db.session.rollback()
        logger.exception(
            "Mirror update failed user_id=%s status=%s", user_id, status,
            extra={"user_id": user_id, "application_status": status},
        )
        return False
