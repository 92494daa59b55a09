"""
Wellspring Backend - Session Text Converter Unit Tests
=======================================================

What:  Tests for free text → SessionDocument conversion.
How:   Pure function tests; no database, network or app instance needed.

What we test:
    ✅ Full editor example (description, hints, two exercises)
    ✅ Exercise order, empty-name dropping, notes omission
    ✅ Seconds → minutes rounding, header durations vs session duration
    ✅ Difficulty keywords and aliases
    ✅ Out-of-range numbers and override warnings
    ✅ Empty / oversized input
    ✅ Line classification and the exercise accumulator state machine
"""

import pytest

from app.exceptions import EmptyInputError, InputTooLargeError
from app.services.converter import (
    DifficultyLine,
    DurationLine,
    ExerciseAccumulator,
    ExerciseDraft,
    ExerciseHeaderLine,
    SessionTextConverter,
    TextLine,
    classify_line,
    convert,
    to_minutes,
)


def codes(warnings):
    return [w.code for w in warnings]


class TestConvertExample:
    """The editor's canonical example, end to end."""

    def setup_method(self):
        self.converter = SessionTextConverter()

    def test_yoga_session(self):
        text = (
            "30 minute beginner yoga session\n"
            "1. Mountain Pose - 2 minutes\n"
            "Stand tall with feet together\n"
            "Breathe deeply\n"
            "2. Child's Pose - 5 minutes\n"
            "Sit back on heels"
        )

        document, warnings = self.converter.convert(text)

        assert document.to_content() == {
            "title": "Wellness Session",
            "description": "30 minute beginner yoga session",
            "duration": 30,
            "difficulty": "beginner",
            "exercises": [
                {
                    "name": "Mountain Pose",
                    "duration": 2,
                    "instructions": ["Stand tall with feet together", "Breathe deeply"],
                },
                {
                    "name": "Child's Pose",
                    "duration": 5,
                    "instructions": ["Sit back on heels"],
                },
            ],
        }
        assert warnings == []

    def test_crlf_input_matches_lf_input(self):
        lf = "Evening wind-down\n1. Neck rolls - 1 min\nSlowly\n"
        crlf = lf.replace("\n", "\r\n")

        assert self.converter.convert(crlf).document == self.converter.convert(lf).document

    def test_module_level_convert_uses_shared_converter(self):
        document, _ = convert("1. Plank")
        assert [e.name for e in document.exercises] == ["Plank"]


class TestExercises:

    def setup_method(self):
        self.converter = SessionTextConverter()

    def test_exercises_keep_input_order(self):
        document, _ = self.converter.convert("1. Alpha\n2. Bravo\n- Charlie\n* Delta")
        assert [e.name for e in document.exercises] == ["Alpha", "Bravo", "Charlie", "Delta"]

    def test_bare_marker_is_an_instruction_not_a_header(self):
        document, warnings = self.converter.convert("1. Plank\n-\nKeep hips level\n2. Squat")

        assert [e.name for e in document.exercises] == ["Plank", "Squat"]
        assert document.exercises[0].instructions == ["-", "Keep hips level"]
        assert warnings == []

    def test_bare_marker_before_exercises_is_description(self):
        document, _ = self.converter.convert("*\n1. Plank")

        assert document.description == "*"
        assert [e.name for e in document.exercises] == ["Plank"]

    def test_instructions_follow_their_header(self):
        document, _ = self.converter.convert("1. Plank\nKeep back straight\nBreathe\n2. Rest")

        assert document.exercises[0].instructions == ["Keep back straight", "Breathe"]
        assert document.exercises[1].instructions == []

    def test_repetition_suffix(self):
        document, _ = self.converter.convert("- Squats - 10 reps\n* Jumping jacks - 20x")

        squats, jacks = document.exercises
        assert (squats.name, squats.repetitions, squats.duration_minutes) == ("Squats", 10, None)
        assert (jacks.name, jacks.repetitions) == ("Jumping jacks", 20)
        assert "duration" not in document.to_content()["exercises"][0]

    def test_repetitions_and_duration_on_one_header(self):
        document, _ = self.converter.convert("1. Squats - 10 reps - 2 min")

        exercise = document.exercises[0]
        assert exercise.name == "Squats"
        assert exercise.repetitions == 10
        assert exercise.duration_minutes == 2

    def test_hyphenated_name_survives_duration_stripping(self):
        document, _ = self.converter.convert("1. Warm-up - 5 min")
        assert document.exercises[0].name == "Warm-up"
        assert document.exercises[0].duration_minutes == 5

    def test_seconds_on_header_round_half_up(self):
        document, _ = self.converter.convert("1. Plank - 30 seconds\n2. Hold - 90 sec")
        assert [e.duration_minutes for e in document.exercises] == [1, 2]


class TestSessionDuration:

    def setup_method(self):
        self.converter = SessionTextConverter()

    @pytest.mark.parametrize(
        "line, minutes",
        [
            ("90 seconds", 2),
            ("30 seconds", 1),
            ("29 seconds", 0),
            ("45 minutes", 45),
            ("Duration: 45 min", 45),
            ("Total time: 20 minutes", 20),
            ("60 minutes total", 60),
        ],
    )
    def test_standalone_duration_lines(self, line, minutes):
        document, _ = self.converter.convert(line)
        assert document.duration_minutes == minutes
        assert document.description == ""

    def test_header_duration_is_not_session_duration(self):
        document, _ = self.converter.convert("3. Plank - 2 minutes")

        assert document.duration_minutes == 0
        assert document.exercises[0].duration_minutes == 2

    def test_duration_inside_exercise_is_an_instruction(self):
        document, _ = self.converter.convert("1. Plank\n30 seconds")

        assert document.duration_minutes == 0
        assert document.exercises[0].instructions == ["30 seconds"]

    def test_duration_mentioned_in_notes_sets_session_duration(self):
        document, _ = self.converter.convert("Gentle start\nAbout 20 minutes overall")

        assert document.duration_minutes == 20
        assert document.notes == ["About 20 minutes overall"]

    def test_later_duration_wins_with_warning(self):
        document, warnings = self.converter.convert("30 minutes\n45 minutes")

        assert document.duration_minutes == 45
        assert codes(warnings) == ["duration_changed"]
        assert warnings[0].line == 2

    def test_out_of_range_session_duration_is_ignored(self):
        document, warnings = self.converter.convert("2000 minutes")

        assert document.duration_minutes == 0
        assert codes(warnings) == ["duration_out_of_range"]


class TestDifficulty:

    def setup_method(self):
        self.converter = SessionTextConverter()

    @pytest.mark.parametrize(
        "text, expected",
        [
            ("This one is hard", "advanced"),
            ("hard", "advanced"),
            ("Difficult", "advanced"),
            ("easy", "beginner"),
            ("Level: intermediate", "intermediate"),
            ("Advanced", "advanced"),
        ],
    )
    def test_keywords(self, text, expected):
        document, _ = self.converter.convert(text)
        assert document.difficulty == expected

    def test_default_is_beginner(self):
        document, _ = self.converter.convert("Just breathing")
        assert document.difficulty == "beginner"

    def test_keyword_inside_instruction(self):
        document, _ = self.converter.convert("1. Plank\nThis gets hard after a minute")

        assert document.difficulty == "advanced"
        assert document.exercises[0].instructions == ["This gets hard after a minute"]

    def test_keyword_in_exercise_name(self):
        document, _ = self.converter.convert("1. Easy walk - 5 min")

        assert document.difficulty == "beginner"
        assert document.exercises[0].name == "Easy walk"

    def test_last_mention_wins_with_warning(self):
        document, warnings = self.converter.convert("Beginner\nAdvanced")

        assert document.difficulty == "advanced"
        assert codes(warnings) == ["difficulty_changed"]

    def test_standalone_difficulty_line_is_not_description(self):
        document, _ = self.converter.convert("Intermediate\nA calm session")
        assert document.description == "A calm session"


class TestDescriptionAndNotes:

    def setup_method(self):
        self.converter = SessionTextConverter()

    def test_notes_absent_when_empty(self):
        document, _ = self.converter.convert("Only a description\n1. Plank")

        assert document.notes is None
        assert "notes" not in document.to_content()

    def test_extra_lines_before_exercises_become_notes(self):
        document, _ = self.converter.convert("Intro\nBring a mat\nWater nearby\n1. Plank\nHold")

        assert document.description == "Intro"
        assert document.notes == ["Bring a mat", "Water nearby"]
        assert document.exercises[0].instructions == ["Hold"]

    def test_no_description_when_text_starts_with_exercise(self):
        document, _ = self.converter.convert("1. Plank")

        assert document.description == ""
        assert document.to_content()["description"] == ""


class TestTitle:

    def test_fallback_title_used_verbatim(self):
        document, _ = SessionTextConverter().convert("1. Plank", fallback_title="Sunrise Stretch")
        assert document.title == "Sunrise Stretch"

    def test_blank_fallback_title_uses_placeholder(self):
        document, _ = SessionTextConverter().convert("1. Plank", fallback_title="   ")
        assert document.title == "Wellness Session"

    def test_placeholder_is_configurable(self):
        converter = SessionTextConverter(default_title="Untitled")
        assert converter.convert("1. Plank").document.title == "Untitled"


class TestLimitsAndErrors:

    @pytest.mark.parametrize("text", ["", "   ", "\n\t\r\n  ", None])
    def test_empty_input_raises(self, text):
        with pytest.raises(EmptyInputError):
            SessionTextConverter().convert(text)

    def test_too_many_lines(self):
        converter = SessionTextConverter(max_lines=10)
        text = "\n".join(f"line {i}" for i in range(11))

        with pytest.raises(InputTooLargeError) as exc_info:
            converter.convert(text)
        assert exc_info.value.limit == 10
        assert exc_info.value.actual == 11

    def test_blank_lines_do_not_count_towards_line_limit(self):
        converter = SessionTextConverter(max_lines=10)
        text = "\n\n".join(f"line {i}" for i in range(10))

        document, _ = converter.convert(text)
        assert document.description == "line 0"

    def test_too_many_characters(self):
        converter = SessionTextConverter(max_chars=1000)
        with pytest.raises(InputTooLargeError):
            converter.convert("a" * 1001)

    def test_out_of_range_exercise_numbers_are_ignored(self):
        document, warnings = SessionTextConverter().convert(
            "1. Marathon - 5000 minutes\n- Burpees - 20000 reps"
        )

        marathon, burpees = document.exercises
        assert (marathon.name, marathon.duration_minutes) == ("Marathon", None)
        assert (burpees.name, burpees.repetitions) == ("Burpees", None)
        assert codes(warnings) == ["duration_out_of_range", "repetitions_out_of_range"]

    def test_huge_session_duration_is_ignored(self):
        document, warnings = SessionTextConverter().convert("9" * 5000 + " minutes")

        assert document.duration_minutes == 0
        assert codes(warnings) == ["duration_out_of_range"]

    def test_huge_duration_inside_text_is_ignored(self):
        text = "Relax for " + "9" * 5000 + " seconds and breathe"
        document, warnings = SessionTextConverter().convert(text)

        assert document.description == text
        assert document.duration_minutes == 0
        assert codes(warnings) == ["duration_out_of_range"]

    def test_huge_exercise_numbers_keep_the_header(self):
        document, warnings = SessionTextConverter().convert(
            "1. Plank - " + "9" * 5000 + " min\n- Squats - " + "1" * 5000 + " reps"
        )

        plank, squats = document.exercises
        assert (plank.name, plank.duration_minutes) == ("Plank", None)
        assert (squats.name, squats.repetitions) == ("Squats", None)
        assert codes(warnings) == ["duration_out_of_range", "repetitions_out_of_range"]

    def test_leading_zeros_do_not_count_towards_digit_limit(self):
        document, warnings = SessionTextConverter().convert("1. Plank - 0000000000002 min")

        assert document.exercises[0].duration_minutes == 2
        assert warnings == []


class TestClassifyLine:

    def test_duration_line(self):
        assert classify_line("Duration: 45 min") == DurationLine(minutes=45)

    def test_duration_line_ignored_inside_exercise(self):
        assert classify_line("30 seconds", exercise_open=True) == TextLine(text="30 seconds")

    def test_difficulty_line(self):
        assert classify_line("Hard") == DifficultyLine(level="advanced")

    def test_exercise_header(self):
        assert classify_line("1. Plank - 2 minutes") == ExerciseHeaderLine(
            name="Plank", duration_minutes=2
        )

    @pytest.mark.parametrize("marker", ["-", "*", "3."])
    def test_bare_marker_is_text(self, marker):
        assert classify_line(marker) == TextLine(text=marker)

    def test_sentence_with_duration_is_text(self):
        line = "30 minute beginner yoga session"
        assert classify_line(line) == TextLine(text=line)

    @pytest.mark.parametrize(
        "amount, unit, minutes",
        [(90, "seconds", 2), (30, "sec", 1), (29, "secs", 0), (5, "min", 5), (12, "Minutes", 12)],
    )
    def test_to_minutes(self, amount, unit, minutes):
        assert to_minutes(amount, unit) == minutes


class TestExerciseAccumulator:

    def test_starts_idle(self):
        acc = ExerciseAccumulator()
        assert acc.state == ExerciseAccumulator.IDLE
        assert acc.exercises == ()

    def test_open_then_finalize(self):
        acc = ExerciseAccumulator()
        acc.open_exercise(ExerciseDraft(name="Plank", line=1))
        assert acc.state == ExerciseAccumulator.OPEN

        acc.add_instruction("Hold")
        acc.finalize()

        assert acc.state == ExerciseAccumulator.IDLE
        assert [(d.name, d.instructions) for d in acc.exercises] == [("Plank", ["Hold"])]

    def test_opening_next_exercise_finalizes_current(self):
        acc = ExerciseAccumulator()
        acc.open_exercise(ExerciseDraft(name="A", line=1))
        acc.open_exercise(ExerciseDraft(name="B", line=2))

        assert [d.name for d in acc.exercises] == ["A"]
        assert acc.is_open

    def test_instruction_without_open_exercise_raises(self):
        with pytest.raises(RuntimeError):
            ExerciseAccumulator().add_instruction("orphan")

    def test_finalize_when_idle_is_noop(self):
        acc = ExerciseAccumulator()
        acc.finalize()
        assert acc.exercises == ()
