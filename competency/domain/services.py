from __future__ import annotations

import logging
from dataclasses import dataclass

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..infrastructure.config import ScoringConfig, get_settings
from ..infrastructure.exceptions import AssessmentNotFoundError, TemplateNotFoundError
from ..infrastructure.models import AssessmentORM, ItemORM, TemplateORM
from ..infrastructure.repositories import (
    AnswerRepo,
    AssessmentRepo,
    ItemRepo,
    LevelRepo,
    PillarRepo,
    PillarResultRepo,
)
from .models import Answer, AnswerValue, GlobalResult, Level, Pillar, TemplateConfig
from .scoring import compute_results


@dataclass(frozen=True)
class EngineInputs:
    answers: list[Answer]
    pillars: list[Pillar]
    levels: list[Level]
    tenure_years: float
    config: TemplateConfig


def template_config(template: TemplateORM, defaults: ScoringConfig) -> TemplateConfig:
    """
    Engine configuration for a template.

    Thresholds of NULL or 0 take the configured defaults; the cutoff and the
    expected level fall back only when NULL.
    """

    def pick(value, default):
        return default if value is None else value

    return TemplateConfig(
        low_tenure_threshold=float(template.low_tenure_threshold or defaults.low_tenure_threshold),
        high_tenure_threshold=float(
            template.high_tenure_threshold or defaults.high_tenure_threshold
        ),
        tenure_years_cutoff=float(pick(template.tenure_years_cutoff, defaults.tenure_years_cutoff)),
        default_expected_level=pick(
            template.default_expected_level, defaults.default_expected_level
        ),
    )


class ScoringService:
    """
    Assembles engine inputs for one assessment and persists the engine's output.

    The engine itself (``competency.domain.scoring``) never touches the
    database; this service is the only place where results are written.
    """

    def __init__(self, s: Session, logger: logging.Logger | None = None):
        self.s = s
        self.logger = logger or logging.getLogger(__name__)

    def _load_assessment(self, assessment_id: int) -> AssessmentORM:
        assessment = self.s.get(AssessmentORM, assessment_id)
        if assessment is None:
            raise AssessmentNotFoundError(assessment_id)
        return assessment

    def build_engine_inputs(self, assessment_id: int) -> EngineInputs:
        """
        Load everything the engine needs for ``assessment_id``.

        Answers whose item is unknown or inactive are mapped to pillar 0 and
        level 0, which no bucket matches, so the engine ignores them.
        """
        assessment = self._load_assessment(assessment_id)
        template = self.s.get(TemplateORM, assessment.template_id)
        if template is None:
            raise TemplateNotFoundError(assessment.template_id)

        levels = [
            Level(id=lv.id, name=lv.name, code=lv.code, order=lv.order)
            for lv in LevelRepo(self.s).list_for_template(template.id)
        ]
        pillars = [
            Pillar(id=p.id, name=p.name, order=p.order)
            for p in PillarRepo(self.s).list_for_template(template.id)
        ]
        items: dict[int, ItemORM] = {
            item.id: item for item in ItemRepo(self.s).list_active_for_template(template.id)
        }
        level_orders = {lv.id: lv.order for lv in levels}

        answers: list[Answer] = []
        for row in AnswerRepo(self.s).list_for_assessment(assessment_id):
            item = items.get(row.item_id)
            value = AnswerValue(row.value) if row.value else None
            if item is None:
                answers.append(Answer(row.item_id, 0, 0, 0, value))
                continue
            answers.append(
                Answer(
                    item_id=item.id,
                    pillar_id=item.pillar_id,
                    level_id=item.level_id,
                    level_order=level_orders.get(item.level_id, 0),
                    value=value,
                )
            )

        return EngineInputs(
            answers=answers,
            pillars=pillars,
            levels=levels,
            tenure_years=float(assessment.tenure_years or 0.0),
            config=template_config(template, get_settings().scoring),
        )

    def compute(self, assessment_id: int) -> GlobalResult:
        """
        Run the engine for ``assessment_id`` and persist the results.

        One ``pillar_results`` row per pillar is created or replaced, and the
        global potential and status are stored on the assessment. Running it
        twice on unchanged answers leaves the database unchanged.
        """
        inputs = self.build_engine_inputs(assessment_id)
        result = compute_results(
            inputs.answers, inputs.pillars, inputs.levels, inputs.tenure_years, inputs.config
        )

        try:
            results_repo = PillarResultRepo(self.s)
            for pr in result.pillar_results:
                results_repo.upsert(
                    assessment_id=assessment_id,
                    pillar_id=pr.pillar_id,
                    real_level_id=pr.real_level_id,
                    expected_level=pr.expected_level,
                    level_scores=[
                        (ls.level_id, ls.level_order, ls.percentage) for ls in pr.level_scores
                    ],
                )

            assessments = AssessmentRepo(self.s)
            assessments.update(
                assessments.get_by_id_required(assessment_id),
                global_potential=str(result.global_potential),
                global_status_pct=result.global_status_pct,
            )
        except SQLAlchemyError:
            self.logger.exception("Database error persisting results for assessment %s", assessment_id)
            raise

        self.logger.info(
            "Computed assessment %s: potential=%s status=%.2f",
            assessment_id,
            result.global_potential,
            result.global_status_pct,
        )
        return result
