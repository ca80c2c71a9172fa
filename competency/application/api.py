"""
Application API layer with error handling and validation.

High-level use cases for templates, workers, assessments, action plans and
the 9-box configuration. Every function takes an open SQLAlchemy session;
committing is the caller's job (``UnitOfWork`` or the web dependency).
"""

from __future__ import annotations

from datetime import date
from typing import Any, NoReturn

from pydantic import BaseModel
from sqlalchemy.orm import Session

from ..domain.models import AnswerValue, GlobalResult
from ..domain.schemas import (
    ActionPlanInput,
    AnswerInput,
    AssessmentCreationInput,
    ItemInput,
    ItemUpdateInput,
    LevelInput,
    NineBoxCellInput,
    ObservationsInput,
    PillarInput,
    TemplateInput,
    TemplateUpdateInput,
    WorkerInput,
    validate_input,
)
from ..domain.scoring import answer_score, round_half_up
from ..domain.services import ScoringService
from ..infrastructure.config import get_settings
from ..infrastructure.exceptions import (
    BusinessLogicError,
    CompetencyAssessmentError,
    ValidationError,
    create_user_friendly_error_message,
    log_error_details,
)
from ..infrastructure.logging import get_logger, log_operation, set_context
from ..infrastructure.models import (
    ActionPlanORM,
    AnswerORM,
    AssessmentORM,
    ItemORM,
    LevelORM,
    NineBoxCellORM,
    PillarORM,
    TemplateORM,
    WorkerORM,
)
from ..infrastructure.repositories import (
    ActionPlanRepo,
    AnswerRepo,
    AssessmentRepo,
    ItemRepo,
    LevelRepo,
    NineBoxCellRepo,
    PillarRepo,
    TemplateRepo,
    WorkerRepo,
)

logger = get_logger(__name__)

DAYS_PER_YEAR = 365.25
DELETABLE_STATUSES = ("draft", "in_progress")


def _validated(schema: type[BaseModel], data: dict[str, Any], field: str) -> dict[str, Any]:
    """Validate ``data`` against ``schema`` or raise a ValidationError naming ``field``."""
    result = validate_input(schema, data)
    if not result.success:
        error_msg = "; ".join(f"{e.field}: {e.message}" for e in result.errors)
        logger.warning(f"Validation failed for {field}: {error_msg}")
        raise ValidationError(field, error_msg)
    if result.data is None:
        raise RuntimeError("Validation succeeded but returned no data")
    return result.data


def _reraise(
    e: Exception, message: str, context: dict[str, Any], user_message: str | None = None
) -> NoReturn:
    """Log ``e``; application errors are re-raised as-is, anything else is wrapped."""
    error_details = log_error_details(e, context)
    logger.error(message, extra={"error_details": error_details})
    if isinstance(e, CompetencyAssessmentError):
        raise e
    raise CompetencyAssessmentError(
        f"{message}: {str(e)}",
        details=error_details,
        user_message=user_message or create_user_friendly_error_message(e),
    ) from e


# ---------------------------------------------------------------------------
# Templates
# ---------------------------------------------------------------------------


@log_operation("create_template")
def create_template(
    session: Session,
    name: str,
    description: str | None = None,
    collective: str | None = None,
    default_expected_level: str | None = None,
    low_tenure_threshold: float | None = None,
    high_tenure_threshold: float | None = None,
    tenure_years_cutoff: float | None = None,
) -> TemplateORM:
    """
    Create an assessment template.

    Thresholds left out are filled from ``ScoringConfig`` so the stored
    template always carries explicit values.

    Example:
        >>> template = create_template(session, "Line managers 2025", low_tenure_threshold=75)
        >>> template.high_tenure_threshold
        95.0
    """
    data = _validated(
        TemplateInput,
        {
            "name": name,
            "description": description,
            "collective": collective,
            "default_expected_level": default_expected_level,
            "low_tenure_threshold": low_tenure_threshold,
            "high_tenure_threshold": high_tenure_threshold,
            "tenure_years_cutoff": tenure_years_cutoff,
        },
        "template_data",
    )
    defaults = get_settings().scoring

    try:
        template = TemplateRepo(session).create(
            name=data["name"],
            description=data["description"],
            collective=data["collective"],
            default_expected_level=data["default_expected_level"]
            or defaults.default_expected_level,
            low_tenure_threshold=_or_default(
                data["low_tenure_threshold"], defaults.low_tenure_threshold
            ),
            high_tenure_threshold=_or_default(
                data["high_tenure_threshold"], defaults.high_tenure_threshold
            ),
            tenure_years_cutoff=_or_default(
                data["tenure_years_cutoff"], defaults.tenure_years_cutoff
            ),
            version=data["version"],
        )
        logger.info(f"Created template '{template.name}' with ID {template.id}")
        return template
    except Exception as e:
        _reraise(e, "Failed to create template", {"name": name})


def _or_default(value: float | None, default: float) -> float:
    return default if value is None else value


@log_operation("update_template")
def update_template(session: Session, template_id: int, **changes: Any) -> TemplateORM:
    """Apply a partial update; only keys passed in ``changes`` are touched."""
    data = _validated(TemplateUpdateInput, changes, "template_data")
    fields = {k: v for k, v in data.items() if k in changes}

    try:
        set_context(template_id=template_id)
        repo = TemplateRepo(session)
        template = repo.get_by_id_required(template_id)
        return repo.update(template, **fields)
    except Exception as e:
        _reraise(
            e, "Failed to update template", {"template_id": template_id}
        )


@log_operation("set_template_active")
def set_template_active(session: Session, template_id: int, active: bool) -> TemplateORM:
    repo = TemplateRepo(session)
    template = repo.get_by_id_required(template_id)
    return repo.update(template, active=active)


@log_operation("list_templates")
def list_templates(session: Session, active_only: bool = False) -> list[TemplateORM]:
    return TemplateRepo(session).list_all(active_only=active_only)


@log_operation("get_template_structure")
def get_template_structure(session: Session, template_id: int) -> dict[str, Any]:
    """
    Template with its levels and pillars, each pillar listing its active items
    grouped by level order.
    """
    template = TemplateRepo(session).get_with_structure(template_id)
    levels = sorted(template.levels, key=lambda lv: lv.order)

    pillars = []
    for pillar in sorted(template.pillars, key=lambda p: p.order):
        active = [i for i in pillar.items if i.active]
        pillars.append(
            {
                "id": pillar.id,
                "name": pillar.name,
                "description": pillar.description,
                "order": pillar.order,
                "items": [
                    _item_dict(i)
                    for lv in levels
                    for i in sorted(
                        (i for i in active if i.level_id == lv.id), key=lambda i: (i.order, i.id)
                    )
                ],
            }
        )

    return {
        "id": template.id,
        "name": template.name,
        "description": template.description,
        "collective": template.collective,
        "default_expected_level": template.default_expected_level,
        "low_tenure_threshold": template.low_tenure_threshold,
        "high_tenure_threshold": template.high_tenure_threshold,
        "tenure_years_cutoff": template.tenure_years_cutoff,
        "version": template.version,
        "active": template.active,
        "levels": [
            {"id": lv.id, "name": lv.name, "code": lv.code, "order": lv.order} for lv in levels
        ],
        "pillars": pillars,
    }


def _item_dict(item: ItemORM) -> dict[str, Any]:
    return {
        "id": item.id,
        "pillar_id": item.pillar_id,
        "level_id": item.level_id,
        "text": item.text,
        "criterion": item.criterion,
        "expectation": item.expectation,
        "order": item.order,
    }


@log_operation("add_level")
def add_level(session: Session, template_id: int, name: str, code: str, order: int) -> LevelORM:
    data = _validated(
        LevelInput,
        {"template_id": template_id, "name": name, "code": code, "order": order},
        "level_data",
    )
    TemplateRepo(session).get_by_id_required(template_id)
    try:
        return LevelRepo(session).create(**data)
    except Exception as e:
        _reraise(e, "Failed to add level", {"template_id": template_id})


@log_operation("add_pillar")
def add_pillar(
    session: Session,
    template_id: int,
    name: str,
    order: int,
    description: str | None = None,
) -> PillarORM:
    data = _validated(
        PillarInput,
        {"template_id": template_id, "name": name, "order": order, "description": description},
        "pillar_data",
    )
    TemplateRepo(session).get_by_id_required(template_id)
    try:
        return PillarRepo(session).create(**data)
    except Exception as e:
        _reraise(e, "Failed to add pillar", {"template_id": template_id})


@log_operation("add_item")
def add_item(
    session: Session,
    pillar_id: int,
    level_id: int,
    text: str,
    criterion: str = "subjective",
    expectation: str | None = None,
) -> ItemORM:
    """
    Append an item to the (pillar, level) bucket.

    The level must belong to the pillar's template. The new item's order is
    one past the highest order among the bucket's active items.
    """
    data = _validated(
        ItemInput,
        {
            "pillar_id": pillar_id,
            "level_id": level_id,
            "text": text,
            "criterion": criterion,
            "expectation": expectation,
        },
        "item_data",
    )

    pillar = PillarRepo(session).get_by_id_required(pillar_id)
    level = LevelRepo(session).get_by_id_required(level_id)
    if level.template_id != pillar.template_id:
        raise BusinessLogicError(
            f"Level {level_id} does not belong to the template of pillar {pillar_id}",
            rule="item_level_template",
        )

    try:
        repo = ItemRepo(session)
        return repo.create(**data, order=repo.next_order(pillar_id, level_id))
    except Exception as e:
        _reraise(e, "Failed to add item", {"pillar_id": pillar_id})


@log_operation("update_item")
def update_item(session: Session, item_id: int, **changes: Any) -> ItemORM:
    data = _validated(ItemUpdateInput, changes, "item_data")
    repo = ItemRepo(session)
    item = repo.get_by_id_required(item_id)
    return repo.update(item, **{k: v for k, v in data.items() if k in changes})


@log_operation("deactivate_item")
def deactivate_item(session: Session, item_id: int) -> ItemORM:
    """Soft delete: the row and its answers stay, but scoring stops counting it."""
    repo = ItemRepo(session)
    item = repo.get_by_id_required(item_id)
    return repo.update(item, active=False)


# ---------------------------------------------------------------------------
# Workers
# ---------------------------------------------------------------------------


@log_operation("create_worker")
def create_worker(session: Session, **fields: Any) -> WorkerORM:
    data = _validated(WorkerInput, fields, "worker_data")
    repo = WorkerRepo(session)
    if data["external_id"] and repo.get_by_external_id(data["external_id"]) is not None:
        raise BusinessLogicError(
            f"A worker with external ID {data['external_id']} already exists",
            rule="unique_external_id",
        )
    try:
        worker = repo.create(**data)
        logger.info(f"Created worker {worker.id}")
        return worker
    except Exception as e:
        _reraise(
            e, "Failed to create worker", {"external_id": fields.get("external_id")}
        )


def compute_tenure_years(start: date | None, on: date) -> float:
    """
    Years between ``start`` and ``on`` using 365.25-day years.

    Floored at 0 and rounded to two decimals. A worker without a start date
    has zero tenure.

    Example:
        >>> compute_tenure_years(date(2020, 1, 1), date(2023, 1, 1))
        3.0
    """
    if start is None:
        return 0.0
    years = (on - start).days / DAYS_PER_YEAR
    return max(0.0, round_half_up(years, 2))


# ---------------------------------------------------------------------------
# Assessments
# ---------------------------------------------------------------------------


@log_operation("create_assessment")
def create_assessment(
    session: Session,
    worker_id: int,
    template_id: int,
    evaluator: str | None = None,
    assessment_date: date | None = None,
    tenure_years: float | None = None,
) -> AssessmentORM:
    """
    Open a draft assessment with one unanswered row per active template item.

    When ``tenure_years`` is omitted it is derived from the worker's job start
    date at the assessment date.

    Example:
        >>> a = create_assessment(session, worker_id=4, template_id=1)
        >>> a.status
        'draft'
    """
    data = _validated(
        AssessmentCreationInput,
        {
            "worker_id": worker_id,
            "template_id": template_id,
            "evaluator": evaluator,
            "assessment_date": assessment_date,
            "tenure_years": tenure_years,
        },
        "assessment_data",
    )

    try:
        set_context(worker_id=worker_id, template_id=template_id)
        worker = WorkerRepo(session).get_by_id_required(worker_id)
        template = TemplateRepo(session).get_by_id_required(template_id)
        if not template.active:
            raise BusinessLogicError(
                f"Template {template_id} is inactive", rule="active_template_required"
            )

        on = data["assessment_date"] or date.today()
        tenure = data["tenure_years"]
        if tenure is None:
            tenure = compute_tenure_years(worker.job_start_date, on)

        assessment = AssessmentRepo(session).create(
            worker_id=worker.id,
            template_id=template.id,
            evaluator=data["evaluator"],
            assessment_date=on,
            tenure_years=tenure,
            status="draft",
        )
        items = ItemRepo(session).list_active_for_template(template.id)
        created = AnswerRepo(session).create_blank(assessment.id, (i.id for i in items))

        logger.info(f"Created assessment {assessment.id} with {created} pending answers")
        return assessment
    except Exception as e:
        _reraise(
            e,
            "Failed to create assessment",
            {"worker_id": worker_id, "template_id": template_id},
        )


@log_operation("record_answer")
def record_answer(
    session: Session, assessment_id: int, item_id: int, value: str | None
) -> AnswerORM:
    """
    Store the answer to one item and move a draft assessment to in_progress.

    Validated assessments are frozen.
    """
    data = _validated(
        AnswerInput,
        {"assessment_id": assessment_id, "item_id": item_id, "value": value},
        "answer_data",
    )

    set_context(assessment_id=assessment_id)
    assessments = AssessmentRepo(session)
    assessment = assessments.get_by_id_required(assessment_id)
    if assessment.status == "validated":
        raise BusinessLogicError(
            f"Assessment {assessment_id} is validated and cannot be changed",
            rule="validated_is_frozen",
        )

    item = ItemRepo(session).get_by_id_required(item_id)
    pillar = PillarRepo(session).get_by_id_required(item.pillar_id)
    if pillar.template_id != assessment.template_id:
        raise BusinessLogicError(
            f"Item {item_id} is not part of the assessment's template",
            rule="item_in_template",
        )

    try:
        answer = AnswerRepo(session).upsert(
            assessment_id,
            item_id,
            data["value"],
            answer_score(AnswerValue(data["value"])) if data["value"] is not None else None,
        )
        if assessment.status == "draft":
            assessments.update(assessment, status="in_progress")
        return answer
    except Exception as e:
        _reraise(
            e, "Failed to record answer", {"assessment_id": assessment_id, "item_id": item_id}
        )


def _check_computable(assessment: AssessmentORM) -> None:
    if assessment.status == "validated" and not get_settings().app.allow_validated_recompute:
        raise BusinessLogicError(
            f"Assessment {assessment.id} is validated; results cannot be recomputed",
            rule="validated_is_frozen",
        )


@log_operation("compute_partial_results")
def compute_partial_results(session: Session, assessment_id: int) -> GlobalResult:
    """Run the scoring engine and persist results without changing the status."""
    set_context(assessment_id=assessment_id)
    _check_computable(AssessmentRepo(session).get_by_id_required(assessment_id))
    try:
        return ScoringService(session, logger).compute(assessment_id)
    except Exception as e:
        _reraise(
            e,
            "Failed to compute results",
            {"assessment_id": assessment_id},
            "Unable to calculate the assessment results. Please try again.",
        )


@log_operation("finalize_assessment")
def finalize_assessment(session: Session, assessment_id: int) -> GlobalResult:
    """Compute results and mark the assessment completed."""
    set_context(assessment_id=assessment_id)
    repo = AssessmentRepo(session)
    assessment = repo.get_by_id_required(assessment_id)
    _check_computable(assessment)
    try:
        result = ScoringService(session, logger).compute(assessment_id)
        if assessment.status != "validated":
            repo.update(assessment, status="completed")
        logger.info(f"Finalized assessment {assessment_id}")
        return result
    except Exception as e:
        _reraise(
            e,
            "Failed to finalize assessment",
            {"assessment_id": assessment_id},
            "Unable to finalize the assessment. Please try again.",
        )


@log_operation("save_observations")
def save_observations(
    session: Session, assessment_id: int, observations: str | None
) -> AssessmentORM:
    data = _validated(
        ObservationsInput,
        {"assessment_id": assessment_id, "observations": observations},
        "observations",
    )
    repo = AssessmentRepo(session)
    return repo.update(repo.get_by_id_required(assessment_id), observations=data["observations"])


@log_operation("delete_assessment")
def delete_assessment(session: Session, assessment_id: int) -> None:
    """Delete an assessment that has not been completed yet."""
    repo = AssessmentRepo(session)
    assessment = repo.get_by_id_required(assessment_id)
    if assessment.status not in DELETABLE_STATUSES:
        raise BusinessLogicError(
            f"Assessment {assessment_id} is {assessment.status} and cannot be deleted",
            rule="delete_only_open",
        )
    repo.delete(assessment)
    logger.info(f"Deleted assessment {assessment_id}")


@log_operation("list_assessments")
def list_assessments(
    session: Session, status: str | None = None, worker_id: int | None = None
) -> list[AssessmentORM]:
    return AssessmentRepo(session).list_recent(status=status, worker_id=worker_id)


def assessment_summary(assessment: AssessmentORM) -> dict[str, Any]:
    worker = assessment.worker
    return {
        "id": assessment.id,
        "worker_id": assessment.worker_id,
        "worker_name": worker.full_name if worker else None,
        "template_id": assessment.template_id,
        "evaluator": assessment.evaluator,
        "assessment_date": assessment.assessment_date,
        "tenure_years": assessment.tenure_years,
        "status": assessment.status,
        "observations": assessment.observations,
        "global_potential": assessment.global_potential,
        "global_status_pct": assessment.global_status_pct,
    }


def pillar_results_dicts(assessment: AssessmentORM) -> list[dict[str, Any]]:
    return [
        {
            "pillar_id": pr.pillar_id,
            "real_level_id": pr.real_level_id,
            "expected_level": pr.expected_level,
            "level_scores": [
                {
                    "level_id": ls.level_id,
                    "level_order": ls.level_order,
                    "percentage": ls.percentage,
                }
                for ls in pr.level_scores
            ],
        }
        for pr in assessment.pillar_results
    ]


def action_plan_dict(plan: ActionPlanORM) -> dict[str, Any]:
    return {
        "id": plan.id,
        "assessment_id": plan.assessment_id,
        "pillar_id": plan.pillar_id,
        "action_type": plan.action_type,
        "action": plan.action,
        "start_date": plan.start_date,
        "follow_up_date": plan.follow_up_date,
        "observations": plan.observations,
        "status": plan.status,
    }


@log_operation("get_assessment_detail")
def get_assessment_detail(session: Session, assessment_id: int) -> dict[str, Any]:
    """Assessment with its template structure, answers, results and action plans."""
    assessment = AssessmentRepo(session).get_detail(assessment_id)
    structure = get_template_structure(session, assessment.template_id)

    return {
        "assessment": assessment_summary(assessment),
        "template": structure,
        "answers": [
            {"item_id": a.item_id, "value": a.value, "score": a.score}
            for a in sorted(assessment.answers, key=lambda a: a.item_id)
        ],
        "pillar_results": pillar_results_dicts(assessment),
        "action_plans": [action_plan_dict(p) for p in assessment.action_plans],
    }


# ---------------------------------------------------------------------------
# Action plans
# ---------------------------------------------------------------------------


@log_operation("create_action_plan")
def create_action_plan(session: Session, assessment_id: int, **fields: Any) -> ActionPlanORM:
    data = _validated(ActionPlanInput, {"assessment_id": assessment_id, **fields}, "action_plan")

    assessment = AssessmentRepo(session).get_by_id_required(assessment_id)
    if data["pillar_id"] is not None:
        pillar = PillarRepo(session).get_by_id_required(data["pillar_id"])
        if pillar.template_id != assessment.template_id:
            raise BusinessLogicError(
                f"Pillar {pillar.id} is not part of the assessment's template",
                rule="pillar_in_template",
            )

    try:
        return ActionPlanRepo(session).create(**data)
    except Exception as e:
        _reraise(
            e, "Failed to create action plan", {"assessment_id": assessment_id}
        )


@log_operation("delete_action_plan")
def delete_action_plan(session: Session, action_plan_id: int) -> None:
    repo = ActionPlanRepo(session)
    repo.delete(repo.get_by_id_required(action_plan_id))


# ---------------------------------------------------------------------------
# 9-box configuration
# ---------------------------------------------------------------------------


@log_operation("list_ninebox_cells")
def list_ninebox_cells(session: Session) -> list[NineBoxCellORM]:
    return NineBoxCellRepo(session).list_grid()


@log_operation("update_ninebox_cell")
def update_ninebox_cell(
    session: Session,
    potential: str,
    performance: str,
    label: str,
    recommendation: str | None = None,
    color: str | None = None,
) -> NineBoxCellORM:
    """Create or replace the label, recommendation and color of one grid cell."""
    data = _validated(
        NineBoxCellInput,
        {
            "potential": potential,
            "performance": performance,
            "label": label,
            "recommendation": recommendation,
            "color": color,
        },
        "ninebox_cell",
    )
    return NineBoxCellRepo(session).upsert(
        data.pop("potential"), data.pop("performance"), **data
    )
