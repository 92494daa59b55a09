"""
Wellspring Backend - Session Document Schemas
==============================================

What:  Pydantic models for the structured session document (the JSON content
       stored on a session) and for the text converter's API contract.
How:   Python attribute names are snake_case; the serialized keys match the
       document shape consumed by the editor and viewer:

           {title, description, duration, difficulty,
            exercises: [{name, duration?, instructions, repetitions?}],
            notes?}

       Optional fields are modeled as Optional[...] = None and dropped on
       serialization (to_content()), so "absent" is part of the type rather
       than a clean-up step. `notes` in particular is None, never [], when
       there is nothing to report.
"""

from typing import Any, Dict, List, Literal, NamedTuple, Optional

from pydantic import BaseModel, Field

DifficultyLevel = Literal["beginner", "intermediate", "advanced"]


class Exercise(BaseModel):
    """One entry of the ordered exercise list."""

    name: str = Field(min_length=1, description="Exercise name (never empty)")
    duration_minutes: Optional[int] = Field(
        default=None,
        ge=0,
        alias="duration",
        description="Duration in whole minutes, absent when not stated",
    )
    instructions: List[str] = Field(
        default_factory=list,
        description="Lines following the exercise header, in input order",
    )
    repetitions: Optional[int] = Field(
        default=None,
        ge=0,
        description="Repetition count, absent when not stated",
    )

    model_config = {"populate_by_name": True}


class SessionDocument(BaseModel):
    """
    What:  Structured representation of a wellness session.
    Who:   Produced by the text converter; stored as WellnessSession.content.

    Fields:
        - title: fallback title or the "Wellness Session" placeholder
        - description: first free-text line before any exercise ("" if none)
        - duration_minutes: session length, 0 when never detected
        - difficulty: beginner | intermediate | advanced
        - exercises: ordered list, input order preserved
        - notes: further free-text lines; None (absent) when there are none
    """

    title: str
    description: str = ""
    duration_minutes: int = Field(default=0, ge=0, alias="duration")
    difficulty: DifficultyLevel = "beginner"
    exercises: List[Exercise] = Field(default_factory=list)
    notes: Optional[List[str]] = None

    model_config = {"populate_by_name": True}

    def to_content(self) -> Dict[str, Any]:
        """JSON-compatible dict with the document's public keys; absent fields omitted."""
        return self.model_dump(by_alias=True, exclude_none=True)


class ConversionWarning(BaseModel):
    """
    Advisory produced while converting text; never fatal.

    Codes:
        duration_out_of_range, repetitions_out_of_range, empty_exercise_name,
        difficulty_changed, duration_changed
    """

    code: str = Field(description="Machine-readable warning code")
    message: str = Field(description="Human-readable explanation")
    line: Optional[int] = Field(
        default=None,
        description="1-based line number in the original text",
    )


class ConversionResult(NamedTuple):
    """Converter output; unpacks as `document, warnings = convert(...)`."""

    document: SessionDocument
    warnings: List[ConversionWarning]


# ══════════════════════════════════════════════════════════════════════════
# Converter API
# ══════════════════════════════════════════════════════════════════════════


class ConvertRequest(BaseModel):
    """Body of POST /api/convert."""

    text: str = Field(description="Free-text session description, one item per line")
    title: Optional[str] = Field(
        default=None,
        max_length=100,
        description="Session title to use; the placeholder is used when omitted",
    )


class ConvertResponse(BaseModel):
    """
    Response of POST /api/convert.

    `content` is the serialized document (already stripped of absent fields)
    so the editor can drop it straight into the session's JSON content.
    """

    content: Dict[str, Any] = Field(description="Structured session document")
    warnings: List[ConversionWarning] = Field(
        default_factory=list,
        description="Advisories about values that were ignored or overridden",
    )
