from datetime import date

import pytest
from factories import answer_bucket, answer_levels, build_template, open_assessment
from sqlalchemy import func, select

from competency.application import api
from competency.domain.models import PotentialLabel
from competency.domain.services import ScoringService, template_config
from competency.infrastructure.config import ScoringConfig, override_settings
from competency.infrastructure.exceptions import (
    AssessmentNotFoundError,
    BusinessLogicError,
    TemplateNotFoundError,
    ValidationError,
)
from competency.infrastructure.models import (
    AnswerORM,
    AssessmentORM,
    PillarLevelScoreORM,
    PillarResultORM,
    TemplateORM,
)
from competency.infrastructure.repositories import AssessmentRepo, ItemRepo, NineBoxCellRepo
from competency.utils.seed import seed_default_template, seed_ninebox_defaults


def result_rows(session, assessment_id):
    return {
        pr.pillar_id: pr
        for pr in session.scalars(
            select(PillarResultORM).where(PillarResultORM.assessment_id == assessment_id)
        )
    }


# ---------- templates ----------


def test_create_template_fills_missing_thresholds(session):
    template = api.create_template(session, "Operators", low_tenure_threshold=75)

    assert template.low_tenure_threshold == 75
    assert template.high_tenure_threshold == 95
    assert template.tenure_years_cutoff == 3
    assert template.default_expected_level == "Advanced"
    assert template.active is True


def test_create_template_validation_errors(session):
    with pytest.raises(ValidationError):
        api.create_template(session, "")
    with pytest.raises(ValidationError):
        api.create_template(session, "Operators", high_tenure_threshold=120)


def test_update_template_touches_only_given_fields(session):
    template = api.create_template(session, "Operators", collective="Plant")

    api.update_template(session, template.id, low_tenure_threshold=70)

    assert template.low_tenure_threshold == 70
    assert template.collective == "Plant"
    with pytest.raises(TemplateNotFoundError):
        api.update_template(session, 999, name="Missing")


def test_template_structure_lists_active_items_by_level(session):
    fixture = build_template(session, pillar_names=("Safety",), items_per_level=2)
    first = fixture.bucket(0, 0)[0]
    api.deactivate_item(session, first)

    structure = api.get_template_structure(session, fixture.template_id)

    assert [lv["order"] for lv in structure["levels"]] == [1, 2, 3, 4]
    items = structure["pillars"][0]["items"]
    assert first not in [i["id"] for i in items]
    assert len(items) == 7
    level_order = {lv["id"]: lv["order"] for lv in structure["levels"]}
    assert [level_order[i["level_id"]] for i in items] == sorted(
        level_order[i["level_id"]] for i in items
    )


def test_item_order_counts_active_items_in_bucket(session):
    fixture = build_template(session, pillar_names=("Safety",), items_per_level=2)
    pillar_id, level_id = fixture.pillar_ids[0], fixture.level_ids[0]
    first, second = fixture.bucket(0, 0)
    repo = ItemRepo(session)

    assert repo.get(first).order == 1
    assert repo.get(second).order == 2

    api.deactivate_item(session, second)
    assert api.add_item(session, pillar_id, level_id, "Replacement").order == 2


def test_item_level_must_share_the_pillar_template(session):
    one = build_template(session, name="One", pillar_names=("Safety",), items_per_level=1)
    other = build_template(session, name="Other", pillar_names=("Safety",), items_per_level=1)

    with pytest.raises(BusinessLogicError):
        api.add_item(session, one.pillar_ids[0], other.level_ids[0], "Cross template")


def test_update_item(session):
    fixture = build_template(session, pillar_names=("Safety",), items_per_level=1)
    item_id = fixture.bucket(0, 0)[0]

    item = api.update_item(session, item_id, text="Uses PPE", criterion="objective")

    assert item.text == "Uses PPE"
    assert item.criterion == "objective"
    with pytest.raises(ValidationError):
        api.update_item(session, item_id, criterion="other")


def test_seed_default_template(session):
    template = seed_default_template(session, "Baseline")

    structure = api.get_template_structure(session, template.id)
    assert [lv["code"] for lv in structure["levels"]] == ["initial", "basic", "advanced", "expert"]
    assert structure["pillars"] == []


# ---------- workers and assessments ----------


@pytest.mark.parametrize(
    "start, on, years",
    [
        (date(2020, 1, 1), date(2023, 1, 1), 3.0),
        (date(2025, 1, 1), date(2025, 7, 2), 0.5),
        (date(2025, 1, 1), date(2024, 1, 1), 0.0),
        (None, date(2025, 1, 1), 0.0),
    ],
)
def test_compute_tenure_years(start, on, years):
    assert api.compute_tenure_years(start, on) == years


def test_create_assessment_opens_blank_answers(session):
    fixture = build_template(session)
    worker = api.create_worker(
        session, first_name="Ana", last_name="Ruiz", job_start_date=date(2020, 1, 1)
    )

    assessment = api.create_assessment(
        session, worker.id, fixture.template_id, assessment_date=date(2023, 1, 1)
    )

    assert assessment.status == "draft"
    assert assessment.tenure_years == 3.0
    answers = session.scalars(select(AnswerORM).where(AnswerORM.assessment_id == assessment.id))
    answers = list(answers)
    assert len(answers) == 16
    assert all(a.value is None and a.score is None for a in answers)


def test_create_assessment_requires_active_template(session):
    fixture = build_template(session, items_per_level=1)
    api.set_template_active(session, fixture.template_id, False)
    worker = api.create_worker(session, first_name="Ana", last_name="Ruiz")

    with pytest.raises(BusinessLogicError):
        api.create_assessment(session, worker.id, fixture.template_id, tenure_years=1)


def test_record_answer_scores_and_moves_to_in_progress(session):
    fixture = build_template(session, items_per_level=1)
    assessment_id = open_assessment(session, fixture)
    item_id = fixture.bucket(0, 0)[0]

    answer = api.record_answer(session, assessment_id, item_id, "partially_met")
    assert (answer.value, answer.score) == ("partially_met", 2)
    assert AssessmentRepo(session).get(assessment_id).status == "in_progress"

    cleared = api.record_answer(session, assessment_id, item_id, None)
    assert (cleared.value, cleared.score) == (None, None)


def test_record_answer_rejects_foreign_item_and_bad_value(session):
    fixture = build_template(session, name="One", items_per_level=1)
    other = build_template(session, name="Other", items_per_level=1)
    assessment_id = open_assessment(session, fixture)

    with pytest.raises(BusinessLogicError):
        api.record_answer(session, assessment_id, other.bucket(0, 0)[0], "fully_met")
    with pytest.raises(ValidationError):
        api.record_answer(session, assessment_id, fixture.bucket(0, 0)[0], "yes")


def test_validated_assessment_is_frozen(session):
    fixture = build_template(session, items_per_level=1)
    assessment_id = open_assessment(session, fixture)
    repo = AssessmentRepo(session)
    repo.update(repo.get(assessment_id), status="validated")

    with pytest.raises(BusinessLogicError):
        api.record_answer(session, assessment_id, fixture.bucket(0, 0)[0], "fully_met")
    with pytest.raises(BusinessLogicError):
        api.compute_partial_results(session, assessment_id)


def test_validated_recompute_can_be_enabled(session, monkeypatch):
    fixture = build_template(session, items_per_level=1)
    assessment_id = open_assessment(session, fixture)
    repo = AssessmentRepo(session)
    repo.update(repo.get(assessment_id), status="validated")

    monkeypatch.setenv("APP_ALLOW_VALIDATED_RECOMPUTE", "true")
    override_settings()

    api.finalize_assessment(session, assessment_id)
    assert repo.get(assessment_id).status == "validated"
    assert repo.get(assessment_id).global_status_pct is not None


def test_delete_assessment_only_while_open(session):
    fixture = build_template(session, items_per_level=1)
    draft = open_assessment(session, fixture)
    done = open_assessment(session, fixture, first_name="Luis")
    api.finalize_assessment(session, done)

    api.delete_assessment(session, draft)
    assert AssessmentRepo(session).get(draft) is None
    remaining = select(func.count(AnswerORM.id)).where(AnswerORM.assessment_id == draft)
    assert session.scalar(remaining) == 0

    with pytest.raises(BusinessLogicError):
        api.delete_assessment(session, done)
    with pytest.raises(AssessmentNotFoundError):
        api.delete_assessment(session, 999)


def test_save_observations(session):
    fixture = build_template(session, items_per_level=1)
    assessment_id = open_assessment(session, fixture)

    assert api.save_observations(session, assessment_id, "Good attitude").observations == (
        "Good attitude"
    )
    assert api.save_observations(session, assessment_id, "  ").observations is None


def test_list_assessments_filters(session):
    fixture = build_template(session, items_per_level=1)
    first = open_assessment(session, fixture, assessment_date=date(2025, 1, 1))
    second = open_assessment(session, fixture, assessment_date=date(2025, 3, 1), first_name="Luis")
    api.finalize_assessment(session, first)

    assert [a.id for a in api.list_assessments(session)] == [second, first]
    assert [a.id for a in api.list_assessments(session, status="completed")] == [first]
    worker_id = AssessmentRepo(session).get(second).worker_id
    assert [a.id for a in api.list_assessments(session, worker_id=worker_id)] == [second]


# ---------- scoring service ----------


def test_template_config_defaults_for_null_or_zero_thresholds():
    template = TemplateORM(
        name="T",
        low_tenure_threshold=None,
        high_tenure_threshold=0.0,
        tenure_years_cutoff=0.0,
        default_expected_level=None,
    )

    config = template_config(template, ScoringConfig())

    assert config.low_tenure_threshold == 80
    assert config.high_tenure_threshold == 95
    assert config.tenure_years_cutoff == 0
    assert config.default_expected_level == "Advanced"


def test_template_config_keeps_stored_values():
    template = TemplateORM(
        name="T",
        low_tenure_threshold=60.0,
        high_tenure_threshold=70.0,
        tenure_years_cutoff=None,
        default_expected_level="Expert",
    )

    config = template_config(template, ScoringConfig())

    assert (config.low_tenure_threshold, config.high_tenure_threshold) == (60, 70)
    assert config.tenure_years_cutoff == 3
    assert config.default_expected_level == "Expert"


def test_compute_persists_results(session):
    fixture = build_template(session)
    assessment_id = open_assessment(session, fixture, tenure_years=5)
    answer_levels(session, assessment_id, fixture, 0, 4)
    answer_bucket(session, assessment_id, fixture, 1, 0, "fully_met", "fully_met")
    answer_bucket(session, assessment_id, fixture, 1, 1, "fully_met", "partially_met")

    result = ScoringService(session).compute(assessment_id)

    assert result.global_status_pct == 92.5
    assert result.global_potential == PotentialLabel.STATIC
    rows = result_rows(session, assessment_id)
    safety, quality = rows[fixture.pillar_ids[0]], rows[fixture.pillar_ids[1]]
    assert safety.real_level_id == fixture.level_ids[3]
    assert [s.percentage for s in safety.level_scores] == [100.0] * 4
    assert quality.real_level_id == fixture.level_ids[0]
    assert [s.percentage for s in quality.level_scores] == [100.0, 70.0]
    assert quality.expected_level == "Advanced"
    assessment = session.get(AssessmentORM, assessment_id)
    assert assessment.global_potential == "Static"
    assert assessment.global_status_pct == 92.5


def test_compute_twice_leaves_same_rows(session):
    fixture = build_template(session)
    assessment_id = open_assessment(session, fixture)
    answer_levels(session, assessment_id, fixture, 0, 2)
    service = ScoringService(session)

    def snapshot():
        return sorted(
            (s.pillar_result_id, s.level_id, s.percentage)
            for s in session.scalars(select(PillarLevelScoreORM))
        )

    first = service.compute(assessment_id)
    before = snapshot()
    second = service.compute(assessment_id)

    assert first == second
    assert snapshot() == before
    assert len(result_rows(session, assessment_id)) == 2


def test_recompute_replaces_previous_scores(session):
    fixture = build_template(session)
    assessment_id = open_assessment(session, fixture)
    answer_levels(session, assessment_id, fixture, 0, 4)
    service = ScoringService(session)
    service.compute(assessment_id)

    answer_bucket(session, assessment_id, fixture, 0, 1, "not_met", "not_met")
    service.compute(assessment_id)

    safety = result_rows(session, assessment_id)[fixture.pillar_ids[0]]
    assert safety.real_level_id == fixture.level_ids[0]
    assert [s.percentage for s in safety.level_scores] == [100.0, 0.0]


def test_inactive_items_are_ignored_when_scoring(session):
    fixture = build_template(session, pillar_names=("Safety",))
    assessment_id = open_assessment(session, fixture)
    passed, failed = fixture.bucket(0, 0)
    api.record_answer(session, assessment_id, passed, "fully_met")
    api.record_answer(session, assessment_id, failed, "not_met")

    result = api.compute_partial_results(session, assessment_id)
    assert result.pillar_results[0].real_level_id is None

    api.deactivate_item(session, failed)
    result = api.compute_partial_results(session, assessment_id)
    assert result.pillar_results[0].real_level_id == fixture.level_ids[0]


def test_low_tenure_threshold_applies_below_cutoff(session):
    fixture = build_template(session, pillar_names=("Safety",), items_per_level=5)
    junior = open_assessment(session, fixture, tenure_years=1)
    senior = open_assessment(session, fixture, tenure_years=4, first_name="Luis")
    values = ["fully_met"] * 4 + ["partially_met"]  # 22 / 25 = 88%
    for assessment_id in (junior, senior):
        answer_bucket(session, assessment_id, fixture, 0, 0, *values)

    assert api.compute_partial_results(session, junior).pillar_results[0].real_level_id == (
        fixture.level_ids[0]
    )
    assert api.compute_partial_results(session, senior).pillar_results[0].real_level_id is None


def test_short_tenure_is_not_evaluable(session):
    fixture = build_template(session, pillar_names=("Safety",), items_per_level=1)
    assessment_id = open_assessment(session, fixture, tenure_years=0.49)
    answer_levels(session, assessment_id, fixture, 0, 4)

    assert api.compute_partial_results(session, assessment_id).global_potential == (
        PotentialLabel.NOT_EVALUABLE
    )


def test_compute_partial_keeps_status_and_finalize_completes(session):
    fixture = build_template(session, items_per_level=1)
    assessment_id = open_assessment(session, fixture)
    api.record_answer(session, assessment_id, fixture.bucket(0, 0)[0], "fully_met")

    api.compute_partial_results(session, assessment_id)
    assert AssessmentRepo(session).get(assessment_id).status == "in_progress"

    api.finalize_assessment(session, assessment_id)
    assert AssessmentRepo(session).get(assessment_id).status == "completed"


def test_build_engine_inputs_missing_assessment(session):
    with pytest.raises(AssessmentNotFoundError):
        ScoringService(session).build_engine_inputs(42)


def test_assessment_detail(session):
    fixture = build_template(session, items_per_level=1)
    assessment_id = open_assessment(session, fixture)
    answer_levels(session, assessment_id, fixture, 0, 1)
    api.finalize_assessment(session, assessment_id)
    api.create_action_plan(
        session,
        assessment_id,
        pillar_id=fixture.pillar_ids[1],
        action_type="Training",
        action="Quality course",
    )

    detail = api.get_assessment_detail(session, assessment_id)

    assert detail["assessment"]["worker_name"] == "Ana Ruiz"
    assert detail["assessment"]["status"] == "completed"
    assert len(detail["answers"]) == 8
    assert len(detail["pillar_results"]) == 2
    assert detail["action_plans"][0]["status"] == "pending"
    assert detail["template"]["id"] == fixture.template_id


# ---------- action plans and 9-box ----------


def test_action_plan_pillar_must_belong_to_template(session):
    fixture = build_template(session, name="One", items_per_level=1)
    other = build_template(session, name="Other", items_per_level=1)
    assessment_id = open_assessment(session, fixture)

    with pytest.raises(BusinessLogicError):
        api.create_action_plan(
            session, assessment_id, pillar_id=other.pillar_ids[0], action_type="T", action="A"
        )

    plan = api.create_action_plan(session, assessment_id, action_type="Mentoring", action="Weekly")
    api.delete_action_plan(session, plan.id)
    assert api.get_assessment_detail(session, assessment_id)["action_plans"] == []


def test_ninebox_defaults_and_update(session):
    assert seed_ninebox_defaults(session) == 9
    assert seed_ninebox_defaults(session) == 0

    cells = api.list_ninebox_cells(session)
    assert [(c.potential, c.performance) for c in cells[:3]] == [
        ("high", "high"),
        ("high", "medium"),
        ("high", "low"),
    ]

    api.update_ninebox_cell(session, "low", "low", "Needs plan", color="#000000")
    cell = NineBoxCellRepo(session).get_cell("low", "low")
    assert (cell.label, cell.color) == ("Needs plan", "#000000")
    assert len(api.list_ninebox_cells(session)) == 9

    with pytest.raises(ValidationError):
        api.update_ninebox_cell(session, "low", "low", "Bad", color="black")


def test_create_worker_rejects_duplicate_external_id(session):
    api.create_worker(session, external_id="E-001", first_name="Ana", last_name="Ruiz")

    with pytest.raises(BusinessLogicError):
        api.create_worker(session, external_id="E-001", first_name="Luis", last_name="Gil")
    with pytest.raises(ValidationError):
        api.create_worker(session, first_name="", last_name="Gil")
