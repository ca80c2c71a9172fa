from __future__ import annotations

import logging
from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

from competency.application import api as app_api
from competency.application import reports
from competency.infrastructure.exceptions import CompetencyAssessmentError, NotFoundError
from competency.web.dependencies import get_db_session
from competency.web.schemas import (
    ActionPlan,
    ActionPlanCreateRequest,
    AnswerUpdate,
    AssessmentCreateRequest,
    AssessmentDetail,
    AssessmentSummary,
    ComputeResponse,
    Item,
    ItemCreateRequest,
    Level,
    LevelCreateRequest,
    NineBoxCell,
    NineBoxCellUpdate,
    ObservationsUpdate,
    Pillar,
    PillarCreateRequest,
    TemplateCreateRequest,
    TemplateStructure,
    TemplateSummary,
    Worker,
    WorkerCreateRequest,
)

router = APIRouter(prefix="/api")
logger = logging.getLogger(__name__)


@contextmanager
def translate_errors(db: Session, commit: bool = False) -> Iterator[None]:
    """
    Map application errors to HTTP responses.

    Not-found errors become 404 and every other application error 400, with
    the error's user message as detail. The session is rolled back on any
    failure and committed on success when ``commit`` is set.
    """
    try:
        yield
        if commit:
            db.commit()
    except NotFoundError as exc:
        db.rollback()
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=exc.user_message) from exc
    except CompetencyAssessmentError as exc:
        db.rollback()
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=exc.user_message) from exc
    except Exception:
        db.rollback()
        raise


@router.get("/health")
async def healthcheck() -> dict[str, str]:
    return {"status": "ok"}


# ---------- Templates ----------


@router.get("/templates", response_model=list[TemplateSummary])
def list_templates(
    active_only: bool = False, db: Session = Depends(get_db_session)
) -> list[TemplateSummary]:
    return [
        TemplateSummary.model_validate(t)
        for t in app_api.list_templates(db, active_only=active_only)
    ]


@router.post("/templates", response_model=TemplateSummary, status_code=status.HTTP_201_CREATED)
def create_template(
    payload: TemplateCreateRequest, db: Session = Depends(get_db_session)
) -> TemplateSummary:
    with translate_errors(db, commit=True):
        template = app_api.create_template(db, **payload.model_dump())
    return TemplateSummary.model_validate(template)


@router.get("/templates/{template_id}", response_model=TemplateStructure)
def get_template(template_id: int, db: Session = Depends(get_db_session)) -> TemplateStructure:
    with translate_errors(db):
        structure = app_api.get_template_structure(db, template_id)
    return TemplateStructure(**structure)


@router.patch("/templates/{template_id}", response_model=TemplateSummary)
def update_template(
    template_id: int, payload: dict[str, Any], db: Session = Depends(get_db_session)
) -> TemplateSummary:
    with translate_errors(db, commit=True):
        template = app_api.update_template(db, template_id, **payload)
    return TemplateSummary.model_validate(template)


@router.put("/templates/{template_id}/active", response_model=TemplateSummary)
def set_template_active(
    template_id: int, active: bool, db: Session = Depends(get_db_session)
) -> TemplateSummary:
    with translate_errors(db, commit=True):
        template = app_api.set_template_active(db, template_id, active)
    return TemplateSummary.model_validate(template)


@router.post(
    "/templates/{template_id}/levels", response_model=Level, status_code=status.HTTP_201_CREATED
)
def add_level(
    template_id: int, payload: LevelCreateRequest, db: Session = Depends(get_db_session)
) -> Level:
    with translate_errors(db, commit=True):
        level = app_api.add_level(db, template_id, **payload.model_dump())
    return Level.model_validate(level)


@router.post(
    "/templates/{template_id}/pillars", response_model=Pillar, status_code=status.HTTP_201_CREATED
)
def add_pillar(
    template_id: int, payload: PillarCreateRequest, db: Session = Depends(get_db_session)
) -> Pillar:
    with translate_errors(db, commit=True):
        pillar = app_api.add_pillar(db, template_id, **payload.model_dump())
    return Pillar.model_validate(pillar)


@router.post(
    "/templates/{template_id}/items", response_model=Item, status_code=status.HTTP_201_CREATED
)
def add_item(
    template_id: int, payload: ItemCreateRequest, db: Session = Depends(get_db_session)
) -> Item:
    with translate_errors(db, commit=True):
        structure = app_api.get_template_structure(db, template_id)
        if payload.pillar_id not in {p["id"] for p in structure["pillars"]}:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Pillar does not belong to this template",
            )
        item = app_api.add_item(db, **payload.model_dump())
    return Item.model_validate(item)


@router.patch("/items/{item_id}", response_model=Item)
def update_item(
    item_id: int, payload: dict[str, Any], db: Session = Depends(get_db_session)
) -> Item:
    with translate_errors(db, commit=True):
        item = app_api.update_item(db, item_id, **payload)
    return Item.model_validate(item)


@router.delete("/items/{item_id}", status_code=status.HTTP_204_NO_CONTENT)
def deactivate_item(item_id: int, db: Session = Depends(get_db_session)) -> None:
    with translate_errors(db, commit=True):
        app_api.deactivate_item(db, item_id)


# ---------- Workers ----------


@router.post("/workers", response_model=Worker, status_code=status.HTTP_201_CREATED)
def create_worker(payload: WorkerCreateRequest, db: Session = Depends(get_db_session)) -> Worker:
    with translate_errors(db, commit=True):
        worker = app_api.create_worker(db, **payload.model_dump())
    return Worker.model_validate(worker)


# ---------- Assessments ----------


@router.get("/assessments", response_model=list[AssessmentSummary])
def list_assessments(
    status_filter: Optional[str] = Query(None, alias="status"),
    worker_id: Optional[int] = None,
    db: Session = Depends(get_db_session),
) -> list[AssessmentSummary]:
    return [
        AssessmentSummary.model_validate(a)
        for a in app_api.list_assessments(db, status=status_filter, worker_id=worker_id)
    ]


@router.post(
    "/assessments", response_model=AssessmentSummary, status_code=status.HTTP_201_CREATED
)
def create_assessment(
    payload: AssessmentCreateRequest, db: Session = Depends(get_db_session)
) -> AssessmentSummary:
    with translate_errors(db, commit=True):
        assessment = app_api.create_assessment(db, **payload.model_dump())
    return AssessmentSummary.model_validate(assessment)


@router.get("/assessments/{assessment_id}", response_model=AssessmentDetail)
def get_assessment(assessment_id: int, db: Session = Depends(get_db_session)) -> AssessmentDetail:
    with translate_errors(db):
        detail = app_api.get_assessment_detail(db, assessment_id)
    return AssessmentDetail(**detail)


@router.put(
    "/assessments/{assessment_id}/answers/{item_id}", status_code=status.HTTP_204_NO_CONTENT
)
def record_answer(
    assessment_id: int,
    item_id: int,
    payload: AnswerUpdate,
    db: Session = Depends(get_db_session),
) -> None:
    with translate_errors(db, commit=True):
        app_api.record_answer(db, assessment_id, item_id, payload.value)


@router.post("/assessments/{assessment_id}/compute", response_model=ComputeResponse)
def compute_partial_results(
    assessment_id: int, db: Session = Depends(get_db_session)
) -> ComputeResponse:
    with translate_errors(db, commit=True):
        result = app_api.compute_partial_results(db, assessment_id)
    return ComputeResponse.from_result(assessment_id, result)


@router.post("/assessments/{assessment_id}/finalize", response_model=ComputeResponse)
def finalize_assessment(
    assessment_id: int, db: Session = Depends(get_db_session)
) -> ComputeResponse:
    with translate_errors(db, commit=True):
        result = app_api.finalize_assessment(db, assessment_id)
    return ComputeResponse.from_result(assessment_id, result)


@router.put("/assessments/{assessment_id}/observations", response_model=AssessmentSummary)
def save_observations(
    assessment_id: int, payload: ObservationsUpdate, db: Session = Depends(get_db_session)
) -> AssessmentSummary:
    with translate_errors(db, commit=True):
        assessment = app_api.save_observations(db, assessment_id, payload.observations)
    return AssessmentSummary.model_validate(assessment)


@router.delete("/assessments/{assessment_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_assessment(assessment_id: int, db: Session = Depends(get_db_session)) -> None:
    with translate_errors(db, commit=True):
        app_api.delete_assessment(db, assessment_id)


@router.post(
    "/assessments/{assessment_id}/action-plans",
    response_model=ActionPlan,
    status_code=status.HTTP_201_CREATED,
)
def create_action_plan(
    assessment_id: int, payload: ActionPlanCreateRequest, db: Session = Depends(get_db_session)
) -> ActionPlan:
    with translate_errors(db, commit=True):
        plan = app_api.create_action_plan(db, assessment_id, **payload.model_dump())
    return ActionPlan.model_validate(plan)


@router.delete("/action-plans/{action_plan_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_action_plan(action_plan_id: int, db: Session = Depends(get_db_session)) -> None:
    with translate_errors(db, commit=True):
        app_api.delete_action_plan(db, action_plan_id)


# ---------- 9-box configuration ----------


@router.get("/ninebox/cells", response_model=list[NineBoxCell])
def list_ninebox_cells(db: Session = Depends(get_db_session)) -> list[NineBoxCell]:
    return [NineBoxCell.model_validate(c) for c in app_api.list_ninebox_cells(db)]


@router.put("/ninebox/cells", response_model=NineBoxCell)
def update_ninebox_cell(
    payload: NineBoxCellUpdate, db: Session = Depends(get_db_session)
) -> NineBoxCell:
    with translate_errors(db, commit=True):
        cell = app_api.update_ninebox_cell(db, **payload.model_dump())
    return NineBoxCell.model_validate(cell)


# ---------- Reports ----------


@router.get("/reports/dashboard")
def dashboard_report(db: Session = Depends(get_db_session)) -> dict[str, Any]:
    with translate_errors(db):
        return reports.dashboard_summary(db)


@router.get("/reports/global")
def global_report(
    center: Optional[str] = None,
    area: Optional[str] = None,
    collective: Optional[str] = None,
    db: Session = Depends(get_db_session),
) -> dict[str, Any]:
    with translate_errors(db):
        return reports.global_report(db, center=center, area=area, collective=collective)


@router.get("/reports/pillars")
def pillar_report(
    center: Optional[str] = None,
    area: Optional[str] = None,
    db: Session = Depends(get_db_session),
) -> dict[str, Any]:
    with translate_errors(db):
        return reports.pillar_analysis(db, center=center, area=area)


@router.get("/reports/potential")
def potential_report(
    center: Optional[str] = None,
    area: Optional[str] = None,
    collective: Optional[str] = None,
    db: Session = Depends(get_db_session),
) -> dict[str, Any]:
    with translate_errors(db):
        return reports.potential_analysis(db, center=center, area=area, collective=collective)


@router.get("/reports/ninebox")
def ninebox_report(
    center: Optional[str] = None,
    area: Optional[str] = None,
    db: Session = Depends(get_db_session),
) -> dict[str, Any]:
    with translate_errors(db):
        return reports.ninebox_report(db, center=center, area=area)


@router.get("/reports/workers/{worker_id}")
def worker_report(worker_id: int, db: Session = Depends(get_db_session)) -> dict[str, Any]:
    with translate_errors(db):
        return reports.worker_report(db, worker_id)


@router.get("/reports/workers/{worker_id}/evolution")
def worker_evolution(worker_id: int, db: Session = Depends(get_db_session)) -> dict[str, Any]:
    with translate_errors(db):
        return reports.worker_evolution(db, worker_id)
