from datetime import date

import pytest
from pydantic import ValidationError

from competency.domain.schemas import (
    ActionPlanInput,
    AnswerInput,
    AssessmentCreationInput,
    ItemInput,
    LevelInput,
    NineBoxCellInput,
    PillarInput,
    TemplateInput,
    WorkerInput,
    validate_input,
)


def test_template_input_defaults():
    data = TemplateInput(name="  Operators  ")
    assert data.name == "Operators"
    assert data.low_tenure_threshold is None
    assert data.version == 1


def test_template_input_threshold_range():
    TemplateInput(name="T", low_tenure_threshold=0, high_tenure_threshold=100)
    with pytest.raises(ValidationError):
        TemplateInput(name="T", low_tenure_threshold=101)
    with pytest.raises(ValidationError):
        TemplateInput(name="T", tenure_years_cutoff=-1)


def test_template_input_blank_optional_fields_become_none():
    data = TemplateInput(name="T", description="   ", collective="")
    assert data.description is None
    assert data.collective is None


def test_strings_are_sanitised():
    data = TemplateInput(name="<b>Line</b> managers<script>alert(1)</script>")
    assert data.name == "Line managers"


def test_level_code_is_normalised():
    assert LevelInput(template_id=1, name="Advanced", code="ADV_1", order=3).code == "adv_1"
    with pytest.raises(ValidationError):
        LevelInput(template_id=1, name="Advanced", code="adv level", order=3)
    with pytest.raises(ValidationError):
        LevelInput(template_id=1, name="Advanced", code="adv", order=0)


def test_pillar_name_characters():
    PillarInput(template_id=1, name="Health & Safety (site)", order=1)
    with pytest.raises(ValidationError):
        PillarInput(template_id=1, name="Quality; DROP", order=1)


def test_item_input():
    item = ItemInput(pillar_id=1, level_id=2, text="  Applies the procedure  ", expectation=" ")
    assert item.text == "Applies the procedure"
    assert item.criterion == "subjective"
    assert item.expectation is None
    with pytest.raises(ValidationError):
        ItemInput(pillar_id=1, level_id=2, text="x", criterion="mixed")


def test_worker_email():
    assert WorkerInput(first_name="Ana", last_name="Ruiz", email="").email is None
    WorkerInput(first_name="Ana", last_name="Ruiz", email="ana.ruiz@example.com")
    with pytest.raises(ValidationError):
        WorkerInput(first_name="Ana", last_name="Ruiz", email="not-an-email")


def test_assessment_creation_rejects_negative_tenure():
    AssessmentCreationInput(worker_id=1, template_id=1, tenure_years=0)
    with pytest.raises(ValidationError):
        AssessmentCreationInput(worker_id=1, template_id=1, tenure_years=-0.5)


def test_answer_value_choices():
    assert AnswerInput(assessment_id=1, item_id=1).value is None
    assert AnswerInput(assessment_id=1, item_id=1, value="partially_met").value == "partially_met"
    with pytest.raises(ValidationError):
        AnswerInput(assessment_id=1, item_id=1, value="maybe")


def test_action_plan_dates():
    ActionPlanInput(
        assessment_id=1,
        action_type="Training",
        action="Forklift course",
        start_date=date(2025, 1, 1),
        follow_up_date=date(2025, 1, 1),
    )
    with pytest.raises(ValidationError):
        ActionPlanInput(
            assessment_id=1,
            action_type="Training",
            action="Forklift course",
            start_date=date(2025, 2, 1),
            follow_up_date=date(2025, 1, 1),
        )


def test_ninebox_cell_color():
    NineBoxCellInput(potential="high", performance="low", label="Enigma", color="#fbbf24")
    with pytest.raises(ValidationError):
        NineBoxCellInput(potential="high", performance="low", label="Enigma", color="yellow")
    with pytest.raises(ValidationError):
        NineBoxCellInput(potential="top", performance="low", label="Enigma")


def test_validate_input_success():
    result = validate_input(WorkerInput, {"first_name": "Ana", "last_name": "Ruiz"})
    assert result.success
    assert result.data["first_name"] == "Ana"
    assert result.errors == []


def test_validate_input_collects_errors():
    result = validate_input(TemplateInput, {"name": "", "low_tenure_threshold": 150})
    assert not result.success
    assert result.data is None
    assert {e.field for e in result.errors} == {"name", "low_tenure_threshold"}
