from __future__ import annotations

from datetime import date
from typing import Any, Literal, Optional

from pydantic import BaseModel, Field

from competency.domain.models import GlobalResult

Band = Literal["low", "medium", "high"]


class ORMModel(BaseModel):
    model_config = {"from_attributes": True}


# ---------- Templates ----------


class TemplateCreateRequest(BaseModel):
    name: str
    description: Optional[str] = None
    collective: Optional[str] = None
    default_expected_level: Optional[str] = None
    low_tenure_threshold: Optional[float] = None
    high_tenure_threshold: Optional[float] = None
    tenure_years_cutoff: Optional[float] = None


class TemplateSummary(ORMModel):
    id: int
    name: str
    description: Optional[str] = None
    collective: Optional[str] = None
    default_expected_level: Optional[str] = None
    low_tenure_threshold: Optional[float] = None
    high_tenure_threshold: Optional[float] = None
    tenure_years_cutoff: Optional[float] = None
    version: int = 1
    active: bool = True


class LevelCreateRequest(BaseModel):
    name: str
    code: str
    order: int


class Level(ORMModel):
    id: int
    name: str
    code: str
    order: int


class PillarCreateRequest(BaseModel):
    name: str
    order: int
    description: Optional[str] = None


class Pillar(ORMModel):
    id: int
    name: str
    description: Optional[str] = None
    order: int


class ItemCreateRequest(BaseModel):
    pillar_id: int
    level_id: int
    text: str
    criterion: Literal["subjective", "objective"] = "subjective"
    expectation: Optional[str] = None


class Item(ORMModel):
    id: int
    pillar_id: int
    level_id: int
    text: str
    criterion: str
    expectation: Optional[str] = None
    order: int


class PillarWithItems(Pillar):
    items: list[Item] = Field(default_factory=list)


class TemplateStructure(TemplateSummary):
    levels: list[Level] = Field(default_factory=list)
    pillars: list[PillarWithItems] = Field(default_factory=list)


# ---------- Workers ----------


class WorkerCreateRequest(BaseModel):
    external_id: Optional[str] = None
    first_name: str
    last_name: str
    email: Optional[str] = None
    job_title: Optional[str] = None
    center: Optional[str] = None
    area: Optional[str] = None
    collective: Optional[str] = None
    job_start_date: Optional[date] = None


class Worker(ORMModel):
    id: int
    external_id: Optional[str] = None
    first_name: str
    last_name: str
    email: Optional[str] = None
    job_title: Optional[str] = None
    center: Optional[str] = None
    area: Optional[str] = None
    collective: Optional[str] = None
    job_start_date: Optional[date] = None


# ---------- Assessments ----------


class AssessmentCreateRequest(BaseModel):
    worker_id: int
    template_id: int
    evaluator: Optional[str] = None
    assessment_date: Optional[date] = None
    tenure_years: Optional[float] = None


class AssessmentSummary(ORMModel):
    id: int
    worker_id: int
    template_id: int
    evaluator: Optional[str] = None
    assessment_date: date
    tenure_years: float
    status: str
    observations: Optional[str] = None
    global_potential: Optional[str] = None
    global_status_pct: Optional[float] = None


class AnswerUpdate(BaseModel):
    value: Optional[Literal["fully_met", "partially_met", "not_met"]] = None


class Answer(ORMModel):
    item_id: int
    value: Optional[str] = None
    score: Optional[int] = None


class ObservationsUpdate(BaseModel):
    observations: Optional[str] = None


class LevelScore(BaseModel):
    level_id: int
    level_order: int
    percentage: float


class PillarResult(BaseModel):
    pillar_id: int
    pillar_name: str
    real_level_id: Optional[int] = None
    real_level_name: Optional[str] = None
    expected_level: str
    level_scores: list[LevelScore]


class ComputeResponse(BaseModel):
    assessment_id: int
    global_potential: str
    global_status_pct: float
    ninebox_performance: Band
    ninebox_potential: Band
    pillar_results: list[PillarResult]

    @classmethod
    def from_result(cls, assessment_id: int, result: GlobalResult) -> ComputeResponse:
        return cls(
            assessment_id=assessment_id,
            global_potential=str(result.global_potential),
            global_status_pct=result.global_status_pct,
            ninebox_performance=str(result.ninebox_performance),
            ninebox_potential=str(result.ninebox_potential),
            pillar_results=[
                PillarResult(
                    pillar_id=pr.pillar_id,
                    pillar_name=pr.pillar_name,
                    real_level_id=pr.real_level_id,
                    real_level_name=pr.real_level_name,
                    expected_level=pr.expected_level,
                    level_scores=[
                        LevelScore(
                            level_id=ls.level_id,
                            level_order=ls.level_order,
                            percentage=ls.percentage,
                        )
                        for ls in pr.level_scores
                    ],
                )
                for pr in result.pillar_results
            ],
        )


class AssessmentDetail(BaseModel):
    assessment: dict[str, Any]
    template: dict[str, Any]
    answers: list[Answer]
    pillar_results: list[dict[str, Any]]
    action_plans: list[dict[str, Any]]


# ---------- Action plans ----------


class ActionPlanCreateRequest(BaseModel):
    pillar_id: Optional[int] = None
    action_type: str
    action: str
    start_date: Optional[date] = None
    follow_up_date: Optional[date] = None
    observations: Optional[str] = None
    status: Literal["pending", "in_progress", "completed"] = "pending"


class ActionPlan(ORMModel):
    id: int
    assessment_id: int
    pillar_id: Optional[int] = None
    action_type: str
    action: str
    start_date: Optional[date] = None
    follow_up_date: Optional[date] = None
    observations: Optional[str] = None
    status: str


# ---------- 9-box ----------


class NineBoxCellUpdate(BaseModel):
    potential: Band
    performance: Band
    label: str
    recommendation: Optional[str] = None
    color: Optional[str] = None


class NineBoxCell(ORMModel):
    potential: Band
    performance: Band
    label: str
    recommendation: Optional[str] = None
    color: Optional[str] = None
