"""
Section registry — the five application sections as data.

Each section is a ``SectionSpec`` carrying its ordered field list, and each
field a ``FieldSpec`` carrying its kind and constraints. Validation, merging
and completion all dispatch through ``SECTIONS`` instead of per-section
branches.

Kinds:
    text    free text; answered when trimmed length >= MIN_ANSWER_LENGTH
    choice  enum (Yes/No); answered when the value is a member
    url     http(s) URL (optional section only)
    video   base64 data URL; bounded by decoded size (MAX_VIDEO_BYTES), not length
"""

from __future__ import annotations

from dataclasses import dataclass, field

MIN_ANSWER_LENGTH = 10
MAX_ANSWER_LENGTH = 2000

YES_NO = ("Yes", "No")

KIND_TEXT = "text"
KIND_CHOICE = "choice"
KIND_URL = "url"
KIND_VIDEO = "video"

DEFAULT_MAX_VIDEO_BYTES = 50 * 1024 * 1024


@dataclass(frozen=True)
class FieldSpec:
    name: str
    kind: str = KIND_TEXT
    max_length: int = MAX_ANSWER_LENGTH
    choices: tuple[str, ...] = ()
    question: str | None = None


@dataclass(frozen=True)
class SectionSpec:
    name: str
    required: bool
    fields: tuple[FieldSpec, ...] = field(default_factory=tuple)

    @property
    def field_names(self) -> tuple[str, ...]:
        return tuple(f.name for f in self.fields)

    @property
    def questions(self) -> list[str]:
        return [f.question for f in self.fields if f.question]

    def get(self, name: str) -> FieldSpec | None:
        for f in self.fields:
            if f.name == name:
                return f
        return None


WARM_UP = SectionSpec(
    name="warmUp",
    required=True,
    fields=(
        FieldSpec(
            "animalQuestion",
            question="If you were an animal in the jungle, which one would you be and why?",
        ),
        FieldSpec(
            "accomplishment",
            question="What's something you've accomplished that you're proud of but rarely talk about?",
        ),
        FieldSpec(
            "responseWhenLost",
            question="When you fall behind or feel lost, how do you typically respond?",
        ),
    ),
)

COMMITMENT = SectionSpec(
    name="commitment",
    required=True,
    fields=(
        FieldSpec(
            "canCommit",
            kind=KIND_CHOICE,
            choices=YES_NO,
            question=(
                "Do you currently have the ability to commit at least 6 - 10 focused hours "
                "per week to live learning, assessments, and study?"
            ),
        ),
        FieldSpec(
            "incompleteCourses",
            question="Have you ever enrolled in a course or program and not completed it? If so, why?",
        ),
        FieldSpec(
            "finishedHardThing",
            question="Have you ever finished something hard that no one was forcing you to do? What was it?",
        ),
    ),
)

PURPOSE = SectionSpec(
    name="purpose",
    required=True,
    fields=(
        FieldSpec("whyTrade", question="Why do you want to learn how to trade? Be specific."),
        FieldSpec(
            "lifeChange",
            question="What would change in your life if you became a consistently profitable trader?",
        ),
        FieldSpec("doingFor", question="Who are you doing this for and why them?"),
        FieldSpec("disciplineMeaning", question="What does discipline mean to you?"),
    ),
)

EXCLUSIVITY = SectionSpec(
    name="exclusivity",
    required=True,
    fields=(
        FieldSpec(
            "preparedInvestment",
            kind=KIND_CHOICE,
            choices=YES_NO,
            question=(
                "This program costs $X,XXX if accepted. Are you prepared to make that "
                "investment in your future?"
            ),
        ),
        FieldSpec(
            "strongCandidate",
            question="Why do you believe you're a strong candidate for acceptance into the program?",
        ),
        FieldSpec(
            "firstPerson",
            question="If accepted, who's the first person you would tell and why?",
        ),
    ),
)

OPTIONAL = SectionSpec(
    name="optional",
    required=False,
    fields=(
        FieldSpec("videoRecording", kind=KIND_VIDEO),
        FieldSpec("videoUrl", kind=KIND_URL),
        FieldSpec("twitter", max_length=100),
        FieldSpec("instagram", max_length=100),
        FieldSpec("linkedIn", max_length=200),
        FieldSpec("facebook", max_length=200),
        FieldSpec("profilePhoto", max_length=10_000_000),
        FieldSpec("fullName", max_length=100),
        FieldSpec("bio", max_length=1000),
    ),
)

SECTIONS: dict[str, SectionSpec] = {
    s.name: s for s in (WARM_UP, COMMITMENT, PURPOSE, EXCLUSIVITY, OPTIONAL)
}

SECTION_NAMES = tuple(SECTIONS)
REQUIRED_SECTIONS = tuple(s for s in SECTIONS.values() if s.required)
TOTAL_REQUIRED_FIELDS = sum(len(s.fields) for s in REQUIRED_SECTIONS)


def get_section(name: str) -> SectionSpec | None:
    return SECTIONS.get(name)


def decoded_size(data_url: str) -> int:
    """Approximate decoded byte size of a base64 data URL, ``round(len * 3 / 4)``."""
    return int(len(data_url) * 3 / 4 + 0.5)
