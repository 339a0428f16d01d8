"""Tests for document validation rules."""

from testcase_sync.document import Document, Step
from testcase_sync.validators import (
    MAX_STEP_TEXT_LENGTH,
    ValidationResult,
    format_validation_error,
    validate_document,
    validate_priority,
    validate_title,
)


class TestHelpers:
    """Tests for the single-field validators."""

    def test_format_validation_error(self):
        assert format_validation_error("Title", "is required") == "Title is required"

    def test_validate_title(self):
        assert validate_title("Login") == (True, "")
        assert validate_title("   ") == (False, "Title is required")
        ok, message = validate_title("x" * 256)
        assert not ok
        assert "less than 255" in message

    def test_validate_priority(self):
        assert validate_priority(None) == (True, "")
        assert validate_priority(0) == (True, "")
        assert validate_priority(5) == (False, "Priority must be between 0 and 4")
        assert validate_priority(0, 1, 4)[0] is False

    def test_result_from_errors(self):
        assert ValidationResult.from_errors([]).valid
        assert not ValidationResult.from_errors(["x"]).valid


class TestValidateDocument:
    """Tests for validate_document()."""

    def test_valid(self, base_document):
        assert validate_document(base_document).valid

    def test_collects_all_errors(self):
        result = validate_document(Document(priority=-1))
        assert result.errors == [
            "Title is required",
            "At least one step is required",
            "Priority must be between 0 and 4",
        ]

    def test_step_rules(self):
        doc = Document(
            title="T",
            steps=[
                Step(action=" "),
                Step(action="x" * (MAX_STEP_TEXT_LENGTH + 1)),
                Step(action="ok", expected_result="y" * (MAX_STEP_TEXT_LENGTH + 1)),
            ],
        )

        assert validate_document(doc).errors == [
            "Step 1: Action is required",
            "Step 2: Action is too long",
            "Step 3: Expected result is too long",
        ]
