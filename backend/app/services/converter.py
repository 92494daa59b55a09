"""
Wellspring Backend - Natural-Language Session Converter
========================================================

What:  Turns a free-text session description into a structured SessionDocument.
Who:   Called by POST /api/convert (editor "Convert to JSON" action).
When:  On demand; the result is handed back to the editor, not persisted here.

Algorithm (single pass, one carried piece of state):

    raw text ──▶ normalize newlines ──▶ trimmed non-empty lines
                                             │
                  ┌──────────────────────────┘
                  ▼
    classify_line()  (first classifier that matches wins)
        1. DurationLine        "30 minutes", "Duration: 45 min"   (only outside exercises)
        2. DifficultyLine      "Hard", "Level: beginner"
        3. ExerciseHeaderLine  "1. Plank - 2 min", "- Squats - 10 reps", "* Rest"
        4. TextLine            anything else
                  │
                  ▼
    TextLine inside an open exercise  → instruction
    TextLine outside any exercise     → description (first one) or notes

Header lines are never read as session durations, even though
"3. Plank - 2 minutes" contains a duration phrase.

Embedded hints:
    Free text still feeds session metadata without being consumed:
    - a difficulty keyword anywhere (text, instruction or exercise name)
      sets the session difficulty; the last mention wins
    - a duration phrase inside a description/notes line sets the session
      duration
    so "30 minute beginner yoga session" is the description AND sets
    duration=30, difficulty=beginner.

Rounding:
    Seconds become minutes with round-half-up: (seconds + 30) // 60.
    90 s → 2 min, 30 s → 1 min, 29 s → 0 min.

Failure semantics:
    EmptyInputError and InputTooLargeError are the only hard failures.
    Out-of-range numbers are dropped with a ConversionWarning; every other
    oddity degrades into description/notes/instructions.
"""

import logging
import re
from dataclasses import dataclass, field
from typing import List, Optional, Tuple, Union

from app.config import settings
from app.exceptions import EmptyInputError, InputTooLargeError
from app.schemas.document import (
    ConversionResult,
    ConversionWarning,
    Exercise,
    SessionDocument,
)

logger = logging.getLogger(__name__)


# ══════════════════════════════════════════════════════════════════════════
# Patterns
# ══════════════════════════════════════════════════════════════════════════

_UNIT = r"(minutes?|mins?|seconds?|secs?)"

# Whole line is a duration statement, optionally labelled
RE_DURATION_STATEMENT = re.compile(
    r"^(?:(?:total\s+)?(?:duration|time|length)\s*[:\-–]?\s*|total\s*[:\-–]?\s*)?"
    r"(\d+)\s*-?\s*" + _UNIT + r"\b\.?"
    r"(?:\s+(?:total|long))?\s*\.?$",
    re.IGNORECASE,
)
# Duration phrase somewhere inside free text
RE_DURATION_HINT = re.compile(r"\b(\d+)\s*-?\s*" + _UNIT + r"\b", re.IGNORECASE)

_LEVEL = r"(beginner|intermediate|advanced|easy|hard|difficult)"

RE_DIFFICULTY_STATEMENT = re.compile(
    r"^(?:(?:difficulty|level|intensity)\s*[:\-–]?\s*)?" + _LEVEL + r"(?:\s+level)?\s*[.!]?$",
    re.IGNORECASE,
)
RE_DIFFICULTY_HINT = re.compile(r"\b" + _LEVEL + r"\b", re.IGNORECASE)

# "1. ...", "- ...", "* ..."; a bare marker is not a header
RE_EXERCISE_HEADER = re.compile(r"^(\d+\.|-|\*)\s*(.+)$")
RE_EXERCISE_DURATION = re.compile(
    r"(.+?)\s*[-–]\s*(\d+)\s*(min|minute|sec|second)", re.IGNORECASE
)
RE_EXERCISE_REPS = re.compile(r"(.+?)\s*[-–]\s*(\d+)\s*(rep|time|x)", re.IGNORECASE)

DIFFICULTY_ALIASES = {
    "easy": "beginner",
    "beginner": "beginner",
    "intermediate": "intermediate",
    "advanced": "advanced",
    "hard": "advanced",
    "difficult": "advanced",
}

# Longer digit runs are not converted; the capped value is out of range for
# every configurable limit, so the caller reports it as such.
MAX_NUMBER_DIGITS = 9
NUMBER_OVERFLOW = 10 ** MAX_NUMBER_DIGITS


def parse_number(digits: str) -> int:
    digits = digits.lstrip("0") or "0"
    if len(digits) > MAX_NUMBER_DIGITS:
        return NUMBER_OVERFLOW
    return int(digits)


def to_minutes(amount: int, unit: str) -> int:
    """Minutes as-is; seconds rounded half-up to whole minutes."""
    if unit.lower().startswith("min"):
        return amount
    return (amount + 30) // 60


def normalize_difficulty(word: str) -> str:
    return DIFFICULTY_ALIASES.get(word.lower(), "beginner")


# ══════════════════════════════════════════════════════════════════════════
# Line Classification
# ══════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True)
class DurationLine:
    minutes: int


@dataclass(frozen=True)
class DifficultyLine:
    level: str


@dataclass(frozen=True)
class ExerciseHeaderLine:
    name: str
    duration_minutes: Optional[int] = None
    repetitions: Optional[int] = None


@dataclass(frozen=True)
class TextLine:
    text: str


ClassifiedLine = Union[DurationLine, DifficultyLine, ExerciseHeaderLine, TextLine]


def classify_duration(text: str) -> Optional[DurationLine]:
    match = RE_DURATION_STATEMENT.match(text)
    if not match:
        return None
    return DurationLine(minutes=to_minutes(parse_number(match.group(1)), match.group(2)))


def classify_difficulty(text: str) -> Optional[DifficultyLine]:
    match = RE_DIFFICULTY_STATEMENT.match(text)
    if not match:
        return None
    return DifficultyLine(level=normalize_difficulty(match.group(1)))


def classify_exercise_header(text: str) -> Optional[ExerciseHeaderLine]:
    """
    Parse an exercise header line.

    The duration suffix is stripped first; the repetition suffix is then
    tested against what is left, so "Squats - 10 reps - 2 min" yields
    name="Squats", repetitions=10, duration=2.
    """
    match = RE_EXERCISE_HEADER.match(text)
    if not match:
        return None

    name = match.group(2).strip()
    duration_minutes: Optional[int] = None
    repetitions: Optional[int] = None

    duration_match = RE_EXERCISE_DURATION.search(name)
    if duration_match:
        name = duration_match.group(1).strip()
        duration_minutes = to_minutes(
            parse_number(duration_match.group(2)), duration_match.group(3)
        )

    reps_match = RE_EXERCISE_REPS.search(name)
    if reps_match:
        name = reps_match.group(1).strip()
        repetitions = parse_number(reps_match.group(2))

    return ExerciseHeaderLine(
        name=name,
        duration_minutes=duration_minutes,
        repetitions=repetitions,
    )


# Priority order: duration, difficulty, exercise header. TextLine is the fallback.
LINE_CLASSIFIERS = (classify_duration, classify_difficulty, classify_exercise_header)


def classify_line(text: str, exercise_open: bool = False) -> ClassifiedLine:
    """
    Classify one trimmed, non-empty line.

    Session durations are only recognised while no exercise is open; inside
    an exercise "30 seconds" is an instruction for that exercise.
    """
    for classifier in LINE_CLASSIFIERS:
        if exercise_open and classifier is classify_duration:
            continue
        classified = classifier(text)
        if classified is not None:
            return classified
    return TextLine(text=text)


# ══════════════════════════════════════════════════════════════════════════
# Exercise Accumulator
# ══════════════════════════════════════════════════════════════════════════


@dataclass
class ExerciseDraft:
    """Exercise being collected; `line` is where its header appeared."""

    name: str
    line: int
    duration_minutes: Optional[int] = None
    repetitions: Optional[int] = None
    instructions: List[str] = field(default_factory=list)


class ExerciseAccumulator:
    """
    Two-state machine collecting exercises in input order.

    State Machine:
        IDLE (no open exercise)
            → open_exercise(): transition to OPEN
        OPEN (collecting instructions)
            → add_instruction(): stay OPEN
            → open_exercise(): finalize current, start the next one, stay OPEN
            → finalize(): append current, transition to IDLE

    An exercise is appended only when the next header arrives or when the
    caller finalizes at end of input.
    """

    IDLE = "idle"
    OPEN = "open"

    def __init__(self):
        self.state = self.IDLE
        self._current: Optional[ExerciseDraft] = None
        self._finished: List[ExerciseDraft] = []

    @property
    def is_open(self) -> bool:
        return self.state == self.OPEN

    @property
    def exercises(self) -> Tuple[ExerciseDraft, ...]:
        """Finalized exercises, in the order their headers appeared."""
        return tuple(self._finished)

    def open_exercise(self, draft: ExerciseDraft) -> None:
        if self.state == self.OPEN:
            self.finalize()
        self._current = draft
        self.state = self.OPEN

    def add_instruction(self, text: str) -> None:
        if self.state != self.OPEN or self._current is None:
            raise RuntimeError("Cannot add an instruction without an open exercise")
        self._current.instructions.append(text)

    def finalize(self) -> None:
        """Close the open exercise, if any. Safe to call in IDLE."""
        if self.state == self.OPEN and self._current is not None:
            self._finished.append(self._current)
        self._current = None
        self.state = self.IDLE


# ══════════════════════════════════════════════════════════════════════════
# Converter
# ══════════════════════════════════════════════════════════════════════════


@dataclass
class _SessionFields:
    """Session-level values gathered during a single conversion."""

    description: str = ""
    duration_minutes: int = 0
    duration_seen: bool = False
    difficulty: str = "beginner"
    difficulty_seen: bool = False
    notes: List[str] = field(default_factory=list)
    warnings: List[ConversionWarning] = field(default_factory=list)

    def warn(self, code: str, message: str, line: Optional[int]) -> None:
        self.warnings.append(ConversionWarning(code=code, message=message, line=line))


class SessionTextConverter:
    """
    Stateless converter from free text to SessionDocument.

    Holds only its limits, so one instance can serve concurrent requests.
    Each convert() call builds its state from scratch.
    """

    def __init__(
        self,
        default_title: Optional[str] = None,
        max_lines: Optional[int] = None,
        max_chars: Optional[int] = None,
        max_duration_minutes: Optional[int] = None,
        max_repetitions: Optional[int] = None,
    ):
        self.default_title = default_title or settings.converter_default_title
        self.max_lines = max_lines or settings.converter_max_lines
        self.max_chars = max_chars or settings.converter_max_chars
        self.max_duration_minutes = (
            max_duration_minutes or settings.converter_max_duration_minutes
        )
        self.max_repetitions = max_repetitions or settings.converter_max_repetitions

    def convert(
        self,
        raw_text: Optional[str],
        fallback_title: Optional[str] = None,
    ) -> ConversionResult:
        """
        Convert free text into a session document.

        Args:
            raw_text: Multi-line description; "\\n" or "\\r\\n" line endings.
            fallback_title: Used verbatim as the title when non-empty.

        Returns:
            ConversionResult(document, warnings)

        Raises:
            EmptyInputError: text is empty or whitespace-only
            InputTooLargeError: text exceeds max_chars or max_lines
        """
        lines = self._prepare_lines(raw_text)
        fields = _SessionFields()
        accumulator = ExerciseAccumulator()

        for line_no, text in lines:
            classified = classify_line(text, exercise_open=accumulator.is_open)

            if isinstance(classified, DurationLine):
                self._set_duration(fields, classified.minutes, line_no)
            elif isinstance(classified, DifficultyLine):
                self._set_difficulty(fields, classified.level, line_no)
            elif isinstance(classified, ExerciseHeaderLine):
                accumulator.open_exercise(self._start_exercise(fields, classified, line_no))
                self._apply_difficulty_hint(fields, classified.name, line_no)
            elif accumulator.is_open:
                accumulator.add_instruction(classified.text)
                self._apply_difficulty_hint(fields, classified.text, line_no)
            else:
                self._apply_duration_hint(fields, classified.text, line_no)
                self._apply_difficulty_hint(fields, classified.text, line_no)
                if fields.description == "":
                    fields.description = classified.text
                else:
                    fields.notes.append(classified.text)

        accumulator.finalize()

        document = SessionDocument(
            title=fallback_title if fallback_title and fallback_title.strip() else self.default_title,
            description=fields.description,
            duration_minutes=fields.duration_minutes,
            difficulty=fields.difficulty,
            exercises=self._build_exercises(fields, accumulator.exercises),
            notes=fields.notes or None,
        )

        logger.debug(
            "Converted %d lines into %d exercises (%d warnings)",
            len(lines),
            len(document.exercises),
            len(fields.warnings),
        )
        return ConversionResult(document=document, warnings=fields.warnings)

    # ── Input preparation ─────────────────────────────────────────────────

    def _prepare_lines(self, raw_text: Optional[str]) -> List[Tuple[int, str]]:
        """Normalize newlines and return (1-based line number, trimmed text) pairs."""
        if raw_text is None or not raw_text.strip():
            raise EmptyInputError()

        if len(raw_text) > self.max_chars:
            raise InputTooLargeError(
                limit=self.max_chars, actual=len(raw_text), unit="characters"
            )

        normalized = raw_text.replace("\r\n", "\n").replace("\r", "\n")
        lines = [
            (line_no, line.strip())
            for line_no, line in enumerate(normalized.split("\n"), start=1)
            if line.strip()
        ]

        if len(lines) > self.max_lines:
            raise InputTooLargeError(limit=self.max_lines, actual=len(lines), unit="lines")
        return lines

    # ── Session-level fields ──────────────────────────────────────────────

    def _set_duration(self, fields: _SessionFields, minutes: int, line_no: int) -> None:
        if minutes > self.max_duration_minutes:
            fields.warn(
                "duration_out_of_range",
                f"Ignored session duration of {minutes} minutes "
                f"(maximum {self.max_duration_minutes}).",
                line_no,
            )
            return
        if fields.duration_seen and fields.duration_minutes != minutes:
            fields.warn(
                "duration_changed",
                f"Session duration changed from {fields.duration_minutes} "
                f"to {minutes} minutes.",
                line_no,
            )
        fields.duration_minutes = minutes
        fields.duration_seen = True

    def _set_difficulty(self, fields: _SessionFields, level: str, line_no: int) -> None:
        if fields.difficulty_seen and fields.difficulty != level:
            fields.warn(
                "difficulty_changed",
                f"Session difficulty changed from '{fields.difficulty}' to '{level}'.",
                line_no,
            )
        fields.difficulty = level
        fields.difficulty_seen = True

    def _apply_duration_hint(self, fields: _SessionFields, text: str, line_no: int) -> None:
        match = RE_DURATION_HINT.search(text)
        if match:
            minutes = to_minutes(parse_number(match.group(1)), match.group(2))
            self._set_duration(fields, minutes, line_no)

    def _apply_difficulty_hint(self, fields: _SessionFields, text: str, line_no: int) -> None:
        match = RE_DIFFICULTY_HINT.search(text)
        if match:
            self._set_difficulty(fields, normalize_difficulty(match.group(1)), line_no)

    # ── Exercises ─────────────────────────────────────────────────────────

    def _start_exercise(
        self,
        fields: _SessionFields,
        header: ExerciseHeaderLine,
        line_no: int,
    ) -> ExerciseDraft:
        duration = header.duration_minutes
        if duration is not None and duration > self.max_duration_minutes:
            fields.warn(
                "duration_out_of_range",
                f"Ignored duration of {duration} minutes for exercise "
                f"'{header.name}' (maximum {self.max_duration_minutes}).",
                line_no,
            )
            duration = None

        repetitions = header.repetitions
        if repetitions is not None and repetitions > self.max_repetitions:
            fields.warn(
                "repetitions_out_of_range",
                f"Ignored {repetitions} repetitions for exercise "
                f"'{header.name}' (maximum {self.max_repetitions}).",
                line_no,
            )
            repetitions = None

        return ExerciseDraft(
            name=header.name,
            line=line_no,
            duration_minutes=duration,
            repetitions=repetitions,
        )

    def _build_exercises(
        self,
        fields: _SessionFields,
        drafts: Tuple[ExerciseDraft, ...],
    ) -> List[Exercise]:
        exercises = []
        for draft in drafts:
            name = draft.name.strip()
            if not name:
                fields.warn(
                    "empty_exercise_name",
                    "Dropped an exercise without a name.",
                    draft.line,
                )
                continue
            exercises.append(
                Exercise(
                    name=name,
                    duration_minutes=draft.duration_minutes,
                    instructions=list(draft.instructions),
                    repetitions=draft.repetitions,
                )
            )
        return exercises


session_text_converter = SessionTextConverter()


def convert(raw_text: Optional[str], fallback_title: Optional[str] = None) -> ConversionResult:
    """Module-level shortcut for the shared converter instance."""
    return session_text_converter.convert(raw_text, fallback_title)
