"""
Completion Engine — pure functions over a section snapshot.

Input everywhere is a mapping ``{section_name: {field_name: value}}`` as
returned by ``Application.sections()``. Missing sections or fields are
treated as unanswered, never as errors.

    report = evaluate(application.sections())
    report.percentage          # 0..100
    report.required_complete   # True only at 100

Write-time validation also lives here (``validate_section_payload``) because
it shares the field specs with the answered predicate.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Any, Mapping

from admissions.core.exceptions import ValidationError
from admissions.services.sections import (
    DEFAULT_MAX_VIDEO_BYTES,
    KIND_CHOICE,
    KIND_URL,
    KIND_VIDEO,
    MIN_ANSWER_LENGTH,
    REQUIRED_SECTIONS,
    SECTION_NAMES,
    SECTIONS,
    TOTAL_REQUIRED_FIELDS,
    FieldSpec,
    decoded_size,
)

_URL_RE = re.compile(r"^https?://.+")


@dataclass
class CompletionReport:
    fields: dict[str, dict[str, bool]] = field(default_factory=dict)
    sections: dict[str, bool] = field(default_factory=dict)
    answered: int = 0
    total: int = TOTAL_REQUIRED_FIELDS
    percentage: int = 0

    @property
    def required_complete(self) -> bool:
        return self.percentage == 100

    def snapshot(self) -> dict:
        return {
            "completionPercentage": self.percentage,
            "isComplete": self.required_complete,
            "requiredSectionsComplete": self.required_complete,
        }


def is_answered(spec: FieldSpec, value: Any) -> bool:
    """A choice counts when it is a member of its enum; text when it has 10+ non-blank chars."""
    if not isinstance(value, str):
        return False
    if spec.kind == KIND_CHOICE:
        return value in spec.choices
    return len(value.strip()) >= MIN_ANSWER_LENGTH


def _section_data(sections: Mapping | None, name: str) -> Mapping:
    if not sections:
        return {}
    data = sections.get(name)
    return data if isinstance(data, Mapping) else {}


def field_status(sections: Mapping | None) -> dict[str, dict[str, bool]]:
    """Per-field answered map for the four required sections."""
    out: dict[str, dict[str, bool]] = {}
    for spec in REQUIRED_SECTIONS:
        data = _section_data(sections, spec.name)
        out[spec.name] = {f.name: is_answered(f, data.get(f.name)) for f in spec.fields}
    return out


def section_status(sections: Mapping | None) -> dict[str, bool]:
    """Per-section completeness; the optional section is always complete."""
    per_field = field_status(sections)
    out = {name: all(flags.values()) for name, flags in per_field.items()}
    for name, spec in SECTIONS.items():
        if not spec.required:
            out[name] = True
    return out


def round_half_up(numerator: int, denominator: int) -> int:
    """Integer ``round(100 * numerator / denominator)`` with .5 rounding up."""
    if denominator <= 0:
        return 0
    return (200 * numerator + denominator) // (2 * denominator)


def completion_percentage(sections: Mapping | None) -> int:
    return evaluate(sections).percentage


def is_complete(sections: Mapping | None) -> bool:
    return evaluate(sections).required_complete


def evaluate(sections: Mapping | None) -> CompletionReport:
    per_field = field_status(sections)
    answered = sum(sum(flags.values()) for flags in per_field.values())
    total = sum(len(flags) for flags in per_field.values())
    report = CompletionReport(
        fields=per_field,
        sections=section_status(sections),
        answered=answered,
        total=total,
        percentage=round_half_up(answered, total),
    )
    return report


def is_section_complete(section: str, data: Mapping | None) -> bool:
    """Completeness of one section's data taken on its own."""
    spec = SECTIONS[section]
    if not spec.required:
        return True
    data = data if isinstance(data, Mapping) else {}
    return all(is_answered(f, data.get(f.name)) for f in spec.fields)


# ── Write-time validation ────────────────────────────────────────────────────


def validate_section_name(section: Any) -> str:
    if section not in SECTIONS:
        raise ValidationError(
            "Invalid section name",
            details={"section": f"must be one of: {', '.join(SECTION_NAMES)}"},
        )
    return section


def validate_section_payload(
    section: str,
    fields: Any,
    *,
    max_video_bytes: int = DEFAULT_MAX_VIDEO_BYTES,
) -> dict[str, str | None]:
    """Check a partial section payload against its field specs.

    ``None`` clears a field. Strings shorter than the answer minimum are
    accepted (they simply do not count as answered). A video recording is
    bounded by its decoded size, the same limit ``upload_video`` applies.
    Every violation is collected so the caller sees all offending fields at
    once.

    Returns:
        The payload restricted to known fields.

    Raises:
        ValidationError: details map ``"<section>.<field>"`` to the constraint.
    """
    validate_section_name(section)
    if not isinstance(fields, Mapping):
        raise ValidationError(
            f"Section '{section}' payload must be an object",
            details={section: "expected an object of field values"},
        )

    spec = SECTIONS[section]
    errors: dict[str, str] = {}
    cleaned: dict[str, str | None] = {}

    for name, value in fields.items():
        path = f"{section}.{name}"
        field_spec = spec.get(name)
        if field_spec is None:
            errors[path] = "unknown field"
            continue
        if value is None:
            cleaned[name] = None
            continue
        if not isinstance(value, str):
            errors[path] = "must be a string"
            continue
        if field_spec.kind == KIND_VIDEO:
            if decoded_size(value) > max_video_bytes:
                errors[path] = f"decoded size must be at most {max_video_bytes} bytes"
            else:
                cleaned[name] = value
            continue
        if len(value) > field_spec.max_length:
            errors[path] = f"must be at most {field_spec.max_length} characters"
            continue
        if field_spec.kind == KIND_CHOICE and value and value not in field_spec.choices:
            errors[path] = f"must be one of: {', '.join(field_spec.choices)}"
            continue
        if field_spec.kind == KIND_URL and value and not _URL_RE.match(value):
            errors[path] = "Please provide a valid URL"
            continue
        cleaned[name] = value

    if errors:
        raise ValidationError(f"Validation failed for section '{section}'", details=errors)
    return cleaned
