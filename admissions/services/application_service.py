"""
Application Service — orchestration around the Completion Engine and the
lifecycle transitions.

Every write follows the same shape:

    validate payload → ensure application → per-field upserts
        → evaluate completion → auto-advance → commit → mirror to user

Reads never mutate. Section values are echoed back exactly as stored, except
``optional.videoRecording`` which is replaced by a placeholder in every
response except ``get_video``.

Service layer owns all business logic and commits; blueprints only parse
requests and serialize results.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Mapping

import sqlalchemy as sa
from flask import current_app, has_app_context
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import joinedload, selectinload

from admissions.core.exceptions import NotFoundError, ValidationError
from admissions.models import db
from admissions.models.application import (
    APPLICATION_STATUSES,
    STATUS_DRAFT,
    VIDEO_PLACEHOLDER,
    Application,
    ApplicationAnswer,
)
from admissions.models.user import ROLE_USER, User
from admissions.services import application_lifecycle as lifecycle
from admissions.services.completion import (
    CompletionReport,
    evaluate,
    is_section_complete,
    validate_section_name,
    validate_section_payload,
)
from admissions.services.sections import (
    DEFAULT_MAX_VIDEO_BYTES,
    OPTIONAL,
    SECTION_NAMES,
    SECTIONS,
    decoded_size,
)
from admissions.utils.helpers import paginate

logger = logging.getLogger(__name__)

_SORTABLE = {
    "createdAt": Application.created_at,
    "updatedAt": Application.updated_at,
    "submittedAt": Application.submitted_at,
    "reviewedAt": Application.reviewed_at,
    "status": Application.status,
}


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _max_video_bytes() -> int:
    if has_app_context():
        return int(current_app.config.get("MAX_VIDEO_BYTES", DEFAULT_MAX_VIDEO_BYTES))
    return DEFAULT_MAX_VIDEO_BYTES


# ═════════════════════════════════════════════════════════════════════════
# Lookups
# ═════════════════════════════════════════════════════════════════════════


def _get_user(user_id: int) -> User:
    user = db.session.get(User, user_id)
    if not user:
        raise NotFoundError(resource="User", resource_id=user_id)
    return user


def _find_application(user_id: int) -> Application | None:
    return db.session.execute(
        sa.select(Application).where(Application.user_id == user_id)
    ).scalar_one_or_none()


def _get_application_for_user(user_id: int) -> Application:
    application = _find_application(user_id)
    if not application:
        raise NotFoundError(resource="Application", resource_id=user_id)
    return application


def _get_application(application_id: int) -> Application:
    application = db.session.get(Application, application_id)
    if not application:
        raise NotFoundError(resource="Application", resource_id=application_id)
    return application


# ═════════════════════════════════════════════════════════════════════════
# Serialization helpers
# ═════════════════════════════════════════════════════════════════════════


def _redact(section: str, data: Mapping[str, str]) -> dict:
    out = dict(data)
    if section == OPTIONAL.name and out.get("videoRecording"):
        out["videoRecording"] = VIDEO_PLACEHOLDER
    return out


def video_info(application: Application, sections: Mapping | None = None) -> dict:
    """``{hasVideo, hasRecording, hasUrl, metadata}`` for an application."""
    sections = sections if sections is not None else application.sections()
    optional = sections.get(OPTIONAL.name, {})
    has_recording = bool(optional.get("videoRecording"))
    has_url = bool(optional.get("videoUrl"))
    return {
        "hasVideo": has_recording or has_url,
        "hasRecording": has_recording,
        "hasUrl": has_url,
        "metadata": application.video_metadata(),
    }


def _serialize(application: Application, *, include_user: bool = False) -> dict:
    sections = application.sections()
    report = evaluate(sections)
    d = {
        "id": application.id,
        "userId": application.user_id,
        "status": application.status,
        "adminNotes": application.admin_notes,
        **application.timestamps(),
        **{name: _redact(name, sections.get(name, {})) for name in SECTION_NAMES},
        **report.snapshot(),
        "videoInfo": video_info(application, sections),
    }
    if include_user:
        d["user"] = application.user.to_summary() if application.user else None
    return d


def _is_completed(application: Application, report: CompletionReport) -> bool:
    return report.required_complete or application.status != STATUS_DRAFT


# ═════════════════════════════════════════════════════════════════════════
# Writes
# ═════════════════════════════════════════════════════════════════════════


def _answer_filter(application_id: int, section: str, field: str):
    return (
        ApplicationAnswer.application_id == application_id,
        ApplicationAnswer.section == section,
        ApplicationAnswer.field == field,
    )


def _write_fields(application: Application, section: str, fields: Mapping[str, str | None]) -> None:
    """Per-field upsert. Fields not present in ``fields`` are left untouched."""
    for name, value in fields.items():
        criteria = _answer_filter(application.id, section, name)
        if value is None:
            db.session.execute(sa.delete(ApplicationAnswer).where(*criteria))
            continue

        result = db.session.execute(
            sa.update(ApplicationAnswer).where(*criteria).values(value=value)
        )
        if result.rowcount:
            continue
        try:
            with db.session.begin_nested():
                db.session.add(ApplicationAnswer(
                    application_id=application.id, section=section, field=name, value=value,
                ))
        except IntegrityError:
            # Another request inserted the same field first
            db.session.execute(
                sa.update(ApplicationAnswer).where(*criteria).values(value=value)
            )
    db.session.flush()
    db.session.expire(application, ["answers"])


def _apply_recording_metadata(application: Application, recording: str | None, metadata: Mapping | None = None) -> None:
    """Derive video metadata from a ``data:video/<fmt>;base64,...`` payload."""
    if not recording:
        application.clear_video_metadata()
        return
    if not recording.startswith("data:video/"):
        return
    metadata = metadata or {}
    derived_format = recording.split(";")[0].split("/")[1] or "webm"
    application.video_size = decoded_size(recording)
    application.video_format = metadata.get("format") or derived_format
    application.video_duration = metadata.get("duration")
    application.video_recorded_at = _utcnow()


def _finish_save(application: Application, *, last_section: str | None = None) -> CompletionReport:
    """Evaluate, auto-advance, commit, then mirror. Shared by every write path."""
    application.updated_at = _utcnow()
    report = evaluate(application.sections())
    lifecycle.auto_advance(application, report)
    db.session.commit()
    lifecycle.mirror_status(
        application.user_id,
        application.status,
        _is_completed(application, report),
        last_section=last_section,
    )
    return report


def ensure_application(user_id: int) -> Application:
    """Return the user's application, creating an empty Draft if needed.

    Concurrent first calls converge on one row: the loser of the insert race
    hits the unique constraint on ``user_id``, rolls back and re-reads.
    """
    _get_user(user_id)
    application = _find_application(user_id)
    if application:
        return application

    try:
        application = Application(user_id=user_id, status=STATUS_DRAFT)
        db.session.add(application)
        db.session.commit()
        logger.info(
            "Application created id=%s user_id=%s", application.id, user_id,
            extra={"application_id": application.id, "user_id": user_id},
        )
        return application
    except IntegrityError:
        db.session.rollback()
        application = _find_application(user_id)
        if application is None:
            raise
        logger.info(
            "Application create raced, re-fetched id=%s user_id=%s", application.id, user_id,
            extra={"application_id": application.id, "user_id": user_id},
        )
        return application


def save_section(user_id: int, section: str, fields: Any) -> dict:
    """Merge ``fields`` into one section and return the completion snapshot."""
    validate_section_name(section)
    cleaned = validate_section_payload(section, fields, max_video_bytes=_max_video_bytes())

    application = ensure_application(user_id)
    _write_fields(application, section, cleaned)
    if section == OPTIONAL.name and "videoRecording" in cleaned:
        _apply_recording_metadata(application, cleaned["videoRecording"])

    report = _finish_save(application, last_section=section)
    sections = application.sections()

    result = {
        "section": _redact(section, sections.get(section, {})),
        **report.snapshot(),
        "status": application.status,
    }
    if section == OPTIONAL.name:
        result["videoInfo"] = video_info(application, sections)
    logger.debug(
        "Section saved user_id=%s section=%s completion=%s",
        user_id, section, report.percentage,
        extra={"application_id": application.id, "user_id": user_id, "section": section},
    )
    return result


def save_application(user_id: int, payload: Any) -> dict:
    """Multi-section save. Every section is validated before anything is written."""
    if not isinstance(payload, Mapping) or not payload:
        raise ValidationError(
            "Application payload must be a non-empty object keyed by section",
            details={"sections": f"expected keys from: {', '.join(SECTION_NAMES)}"},
        )

    errors: dict[str, str] = {}
    cleaned: dict[str, dict] = {}
    for section, fields in payload.items():
        try:
            validate_section_name(section)
            cleaned[section] = validate_section_payload(section, fields, max_video_bytes=_max_video_bytes())
        except ValidationError as exc:
            errors.update(exc.details or {section: str(exc)})
    if errors:
        raise ValidationError("Validation error", details=errors)

    application = ensure_application(user_id)
    for section, fields in cleaned.items():
        _write_fields(application, section, fields)
    if "videoRecording" in cleaned.get(OPTIONAL.name, {}):
        _apply_recording_metadata(application, cleaned[OPTIONAL.name]["videoRecording"])

    report = _finish_save(application, last_section=list(cleaned)[-1])
    return {
        "id": application.id,
        "status": application.status,
        **report.snapshot(),
        "submittedAt": application.submitted_at.isoformat() if application.submitted_at else None,
        "updatedAt": application.updated_at.isoformat() if application.updated_at else None,
        "videoInfo": video_info(application),
    }


def validate_section(section: str, fields: Any) -> dict:
    """Dry run: validate a section payload and report its standalone completeness."""
    validate_section_name(section)
    cleaned = validate_section_payload(section, fields, max_video_bytes=_max_video_bytes())
    return {
        "valid": True,
        "section": section,
        "isComplete": is_section_complete(section, cleaned),
    }


def submit(user_id: int) -> dict:
    """Explicit submit. NotCompleteError leaves the status untouched."""
    application = _get_application_for_user(user_id)
    report = evaluate(application.sections())
    lifecycle.submit(application, report)
    db.session.commit()
    lifecycle.mirror_status(user_id, application.status, True)
    return {
        "id": application.id,
        "status": application.status,
        "submittedAt": application.submitted_at.isoformat() if application.submitted_at else None,
        "completionPercentage": report.percentage,
    }


def upload_video(
    user_id: int,
    video_data: Any,
    metadata: Mapping | None = None,
    *,
    max_bytes: int | None = None,
) -> dict:
    """Store a recorded video (``data:video/...`` URL) in the optional section.

    ``max_bytes`` defaults to the configured ``MAX_VIDEO_BYTES``, the same
    bound a section save applies to ``optional.videoRecording``.
    """
    max_bytes = max_bytes or _max_video_bytes()
    if not isinstance(video_data, str) or not video_data.startswith("data:video/"):
        raise ValidationError(
            "Invalid video data format",
            details={"videoData": "must be a data:video/... URL"},
        )
    size = decoded_size(video_data)
    if size > max_bytes:
        raise ValidationError(
            f"Video file too large. Maximum size is {max_bytes // (1024 * 1024)}MB.",
            details={"currentSize": f"{round(size / (1024 * 1024))}MB"},
        )
    if metadata is not None and not isinstance(metadata, Mapping):
        raise ValidationError("metadata must be an object", details={"metadata": "expected an object"})

    application = ensure_application(user_id)
    _write_fields(application, OPTIONAL.name, {"videoRecording": video_data})
    _apply_recording_metadata(application, video_data, metadata)
    _finish_save(application)

    logger.info(
        "Video uploaded user_id=%s size=%s", user_id, size,
        extra={"application_id": application.id, "user_id": user_id, "section": OPTIONAL.name},
    )
    return {
        "videoInfo": video_info(application),
        "metadata": application.video_metadata(),
    }


def delete_video(user_id: int) -> dict:
    application = _get_application_for_user(user_id)
    _write_fields(application, OPTIONAL.name, {"videoRecording": None, "videoUrl": None})
    application.clear_video_metadata()
    application.updated_at = _utcnow()
    db.session.commit()
    logger.info(
        "Video deleted user_id=%s", user_id,
        extra={"application_id": application.id, "user_id": user_id, "section": OPTIONAL.name},
    )
    return {"videoInfo": video_info(application)}


# ═════════════════════════════════════════════════════════════════════════
# Reads (applicant)
# ═════════════════════════════════════════════════════════════════════════


def get_sections(user_id: int) -> dict:
    application = _get_application_for_user(user_id)
    sections = application.sections()
    report = evaluate(sections)

    out: dict[str, dict] = {}
    for name, spec in SECTIONS.items():
        entry = {
            "data": _redact(name, sections.get(name, {})),
            "isComplete": report.sections[name],
        }
        if spec.questions:
            entry["questions"] = spec.questions
        if not spec.required:
            entry["videoInfo"] = video_info(application, sections)
        out[name] = entry

    return {"sections": out, **report.snapshot()}


def get_application(user_id: int) -> dict:
    application = _get_application_for_user(user_id)
    return _serialize(application, include_user=True)


def get_status(user_id: int) -> dict:
    application = _get_application_for_user(user_id)
    sections = application.sections()
    report = evaluate(sections)
    return {
        "status": application.status,
        **report.snapshot(),
        "submittedAt": application.submitted_at.isoformat() if application.submitted_at else None,
        "updatedAt": application.updated_at.isoformat() if application.updated_at else None,
        "videoInfo": video_info(application, sections),
    }


def get_video(user_id: int, *, download: bool = False) -> dict:
    """Video metadata; the raw data URL is included only when ``download`` is set."""
    application = _get_application_for_user(user_id)
    sections = application.sections()
    recording = sections.get(OPTIONAL.name, {}).get("videoRecording")
    if not recording:
        raise NotFoundError(resource="Video", resource_id=user_id)
    result = {
        "videoInfo": video_info(application, sections),
        "metadata": application.video_metadata() or {},
    }
    if download:
        result["videoData"] = recording
    return result


# ═════════════════════════════════════════════════════════════════════════
# Admin
# ═════════════════════════════════════════════════════════════════════════


def admin_set_status(
    application_id: int,
    status: Any,
    admin_notes: str | None = None,
    *,
    strict: bool = False,
) -> dict:
    """Staff status change, saved through the same path as an applicant save.

    The Draft to In Review check therefore runs here too: moving a complete
    application back to Draft advances it again in the same commit.
    """
    application = _get_application(application_id)
    lifecycle.admin_transition(application, status, admin_notes, strict=strict)
    _finish_save(application)
    return {
        "id": application.id,
        "status": application.status,
        "reviewedAt": application.reviewed_at.isoformat() if application.reviewed_at else None,
        "adminNotes": application.admin_notes,
    }


def delete_application(application_id: int) -> None:
    """Delete an application and reset the owner's mirrored flags."""
    application = _get_application(application_id)
    user_id = application.user_id
    db.session.delete(application)
    db.session.commit()
    logger.info(
        "Application deleted id=%s user_id=%s", application_id, user_id,
        extra={"application_id": application_id, "user_id": user_id},
    )
    lifecycle.mirror_status(user_id, STATUS_DRAFT, False)


def get_application_by_id(application_id: int) -> dict:
    return _serialize(_get_application(application_id), include_user=True)


def list_applications(
    *,
    status: str | None = None,
    search: str | None = None,
    sort_by: str = "updatedAt",
    sort_order: str = "desc",
    page: int = 1,
    limit: int = 10,
) -> dict:
    query = Application.query.join(User, Application.user_id == User.id).options(
        selectinload(Application.answers), joinedload(Application.user),
    )
    if status and status != "all":
        query = query.filter(Application.status == status)
    if search:
        like = f"%{search.strip()}%"
        query = query.filter(sa.or_(
            User.first_name.ilike(like),
            User.last_name.ilike(like),
            User.email.ilike(like),
        ))

    column = _SORTABLE.get(sort_by, Application.updated_at)
    query = query.order_by(column.asc() if sort_order == "asc" else column.desc(), Application.id.desc())

    items, pagination = paginate(query, page, limit)
    return {
        "applications": [_serialize(a, include_user=True) for a in items],
        "pagination": pagination,
    }


def recent_applications(limit: int = 5) -> list[dict]:
    items = (
        Application.query
        .options(selectinload(Application.answers), joinedload(Application.user))
        .order_by(Application.updated_at.desc(), Application.id.desc())
        .limit(limit)
        .all()
    )
    out = []
    for a in items:
        report = evaluate(a.sections())
        out.append({
            "id": a.id,
            "user": a.user.to_summary() if a.user else None,
            "status": a.status,
            "completionPercentage": report.percentage,
            "submittedAt": a.submitted_at.isoformat() if a.submitted_at else None,
            "updatedAt": a.updated_at.isoformat() if a.updated_at else None,
        })
    return out


def list_progress() -> list[dict]:
    """Per-user section progress for every application."""
    items = (
        Application.query
        .options(selectinload(Application.answers), joinedload(Application.user))
        .order_by(Application.created_at.desc())
        .all()
    )
    out = []
    for a in items:
        sections = a.sections()
        report = evaluate(sections)
        out.append({
            "applicationId": a.id,
            "userId": a.user_id,
            "userInfo": a.user.to_summary() if a.user else None,
            "status": a.status,
            **report.snapshot(),
            "sectionProgress": report.sections,
            "videoInfo": video_info(a, sections),
            "createdAt": a.created_at.isoformat() if a.created_at else None,
            "updatedAt": a.updated_at.isoformat() if a.updated_at else None,
        })
    return out


def compute_stats() -> dict:
    """Aggregate counts by status, average completion and video presence.

    Read-only and recomputed on every call.
    """
    applications = Application.query.options(selectinload(Application.answers)).all()

    by_status = {s: 0 for s in APPLICATION_STATUSES}
    percentages: list[int] = []
    with_video = 0
    months: dict[tuple[int, int], int] = {}
    now = _utcnow()
    horizon = (now.year - 1, now.month)

    for a in applications:
        by_status[a.status] = by_status.get(a.status, 0) + 1
        sections = a.sections()
        percentages.append(evaluate(sections).percentage)
        if video_info(a, sections)["hasVideo"]:
            with_video += 1
        if a.created_at:
            key = (a.created_at.year, a.created_at.month)
            if key >= horizon:
                months[key] = months.get(key, 0) + 1

    total = len(applications)
    draft = by_status.get(STATUS_DRAFT, 0)
    return {
        "total": total,
        "completed": total - draft,
        "draft": draft,
        "withVideo": with_video,
        "byStatus": by_status,
        "averageCompletion": round(sum(percentages) / total, 1) if total else 0,
        "fullyCompleted": sum(1 for p in percentages if p == 100),
        "monthlyTrends": [
            {"year": y, "month": m, "count": c} for (y, m), c in sorted(months.items())
        ],
    }


def compute_analytics(period_days: int = 30) -> dict:
    """Daily sign-ups and application starts over the last ``period_days``.

    ``statusDistribution`` covers every application regardless of period.
    Dates are UTC calendar days (``YYYY-MM-DD``), ascending.
    """
    cutoff = (_utcnow() - timedelta(days=period_days)).replace(tzinfo=None)

    signups: dict[str, int] = {}
    recent_users = (
        User.query.filter(User.role == ROLE_USER, User.created_at >= cutoff)
        .with_entities(User.created_at)
        .all()
    )
    for (created_at,) in recent_users:
        day = created_at.strftime("%Y-%m-%d")
        signups[day] = signups.get(day, 0) + 1

    started: dict[str, list[int]] = {}
    by_status: dict[str, list[int]] = {}
    for a in Application.query.options(selectinload(Application.answers)).all():
        percentage = evaluate(a.sections()).percentage
        by_status.setdefault(a.status, []).append(percentage)
        created_at = a.created_at.replace(tzinfo=None) if a.created_at else None
        if created_at and created_at >= cutoff:
            started.setdefault(created_at.strftime("%Y-%m-%d"), []).append(percentage)

    def _avg(values: list[int]) -> float:
        return round(sum(values) / len(values), 1) if values else 0

    return {
        "userAnalytics": [{"date": d, "newUsers": n} for d, n in sorted(signups.items())],
        "applicationAnalytics": [
            {"date": d, "newApplications": len(p), "averageCompletion": _avg(p)}
            for d, p in sorted(started.items())
        ],
        "statusDistribution": [
            {"status": s, "count": len(p), "averageCompletion": _avg(p)}
            for s, p in sorted(by_status.items())
        ],
        "period": period_days,
    }
