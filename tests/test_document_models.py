"""Tests for the document models: AutomationStatus, Step, Document."""

import pytest
from pydantic import ValidationError

from testcase_sync.document import AutomationStatus, Document, Step

# ---------------------------------------------------------------------------
# AutomationStatus
# ---------------------------------------------------------------------------


class TestAutomationStatus:
    """Tests for loose status parsing."""

    @pytest.mark.parametrize(
        "text,expected",
        [
            ("Not Automated", AutomationStatus.NOT_AUTOMATED),
            ("notautomated", AutomationStatus.NOT_AUTOMATED),
            ("not_automated", AutomationStatus.NOT_AUTOMATED),
            ("in-progress", AutomationStatus.IN_PROGRESS),
            ("PLANNED", AutomationStatus.PLANNED),
            (" Automated ", AutomationStatus.AUTOMATED),
        ],
    )
    def test_parse_variants(self, text, expected):
        assert AutomationStatus.parse(text) is expected

    def test_unknown_and_empty_return_none(self):
        assert AutomationStatus.parse("sometimes") is None
        assert AutomationStatus.parse("") is None
        assert AutomationStatus.parse(None) is None

    def test_value_is_tracker_spelling(self):
        assert AutomationStatus.IN_PROGRESS.value == "In Progress"


# ---------------------------------------------------------------------------
# Step
# ---------------------------------------------------------------------------


class TestStep:
    """Tests for the Step model."""

    def test_defaults(self):
        step = Step(action="Open page")
        assert step.expected_result == ""
        assert step.test_data == ""
        assert step.attachments == []
        assert step.stable_id == ""
        assert step.order == 0

    def test_is_validation(self):
        assert Step(action="a", expected_result="shown").is_validation
        assert not Step(action="a", expected_result="   ").is_validation

    def test_frozen(self):
        step = Step(action="a")
        with pytest.raises(ValidationError):
            step.action = "b"


# ---------------------------------------------------------------------------
# Document
# ---------------------------------------------------------------------------


class TestDocument:
    """Tests for the Document model."""

    def test_empty_document(self):
        doc = Document()
        assert doc.title == ""
        assert doc.priority is None
        assert doc.automation_status is None
        assert doc.steps == []
        assert doc.custom_fields == {}

    def test_priority_zero_distinct_from_unset(self):
        assert Document(priority=0).priority == 0
        assert Document(priority=0) != Document()

    def test_step_order_renumbered(self):
        doc = Document(
            steps=[
                Step(action="a", order=7),
                Step(action="b", order=7),
                Step(action="c"),
            ]
        )
        assert [s.order for s in doc.steps] == [1, 2, 3]

    def test_replace_returns_new_validated_copy(self, base_document):
        changed = base_document.replace(
            title="Renamed", steps=list(reversed(base_document.steps))
        )

        assert changed.title == "Renamed"
        assert base_document.title == "Login Test"
        assert [s.stable_id for s in changed.steps] == ["step_ado_2", "step_ado_1"]
        assert [s.order for s in changed.steps] == [1, 2]

    def test_same_content_ignores_step_ids(self, base_document):
        reidentified = base_document.replace(
            steps=[
                s.model_copy(update={"stable_id": f"step_1_{s.order}"})
                for s in base_document.steps
            ]
        )

        assert reidentified != base_document
        assert reidentified.same_content(base_document)

    def test_same_content_detects_field_change(self, base_document):
        assert not base_document.replace(priority=1).same_content(base_document)

    def test_json_round_trip(self, base_document):
        restored = Document.model_validate_json(base_document.model_dump_json())
        assert restored == base_document
