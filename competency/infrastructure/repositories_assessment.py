# competency/infrastructure/repositories_assessment.py
from __future__ import annotations

import builtins
from collections.abc import Iterable
from typing import Any

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import selectinload

from .exceptions import ActionPlanNotFoundError, AssessmentNotFoundError
from .logging import log_database_operation as log_op
from .models import (
    ActionPlanORM,
    AnswerORM,
    AssessmentORM,
    PillarLevelScoreORM,
    PillarResultORM,
)
from .repositories_base import BaseRepository as GenericBaseRepository


class AssessmentRepo(GenericBaseRepository[AssessmentORM]):
    model = AssessmentORM
    not_found = AssessmentNotFoundError

    @log_op("assessment.get_required")
    def get_by_id_required(self, id_: Any) -> AssessmentORM:
        return super().get_by_id_required(id_)

    @log_op("assessment.create")
    def create(self, **fields: Any) -> AssessmentORM:
        try:
            return super().create(**fields)
        except SQLAlchemyError as e:
            self._handle_error(e, "assessment.create")

    @log_op("assessment.update")
    def update(self, obj: AssessmentORM, **fields: Any) -> AssessmentORM:
        return super().update(obj, **fields)

    @log_op("assessment.delete")
    def delete(self, obj: AssessmentORM) -> None:
        super().delete(obj)

    @log_op("assessment.get_detail")
    def get_detail(self, assessment_id: int) -> AssessmentORM:
        """Load an assessment with its answers, results and action plans."""
        assessment = (
            self.s.query(AssessmentORM)
            .options(
                selectinload(AssessmentORM.worker),
                selectinload(AssessmentORM.answers),
                selectinload(AssessmentORM.pillar_results).selectinload(
                    PillarResultORM.level_scores
                ),
                selectinload(AssessmentORM.action_plans),
            )
            .filter(AssessmentORM.id == assessment_id)
            .one_or_none()
        )
        if assessment is None:
            raise AssessmentNotFoundError(assessment_id)
        return assessment

    @log_op("assessment.list_recent")
    def list_recent(
        self, status: str | None = None, worker_id: int | None = None
    ) -> builtins.list[AssessmentORM]:
        filters = []
        if status:
            filters.append(AssessmentORM.status == status)
        if worker_id:
            filters.append(AssessmentORM.worker_id == worker_id)
        return super().list(
            *filters, order_by=[AssessmentORM.assessment_date.desc(), AssessmentORM.id.desc()]
        )

    @log_op("assessment.list_completed_for_worker")
    def list_completed_for_worker(self, worker_id: int) -> builtins.list[AssessmentORM]:
        return super().list(
            AssessmentORM.worker_id == worker_id,
            AssessmentORM.status == "completed",
            order_by=[AssessmentORM.assessment_date, AssessmentORM.id],
        )

    @log_op("assessment.latest_completed_per_worker")
    def latest_completed_per_worker(self) -> builtins.list[AssessmentORM]:
        """Most recent completed assessment of every worker, newest first."""
        rows = (
            self.s.query(AssessmentORM)
            .options(
                selectinload(AssessmentORM.worker),
                selectinload(AssessmentORM.pillar_results).selectinload(
                    PillarResultORM.real_level
                ),
            )
            .filter(AssessmentORM.status == "completed")
            .order_by(AssessmentORM.assessment_date.desc(), AssessmentORM.id.desc())
            .all()
        )
        latest: dict[int, AssessmentORM] = {}
        for row in rows:
            latest.setdefault(row.worker_id, row)
        return list(latest.values())


class AnswerRepo(GenericBaseRepository[AnswerORM]):
    model = AnswerORM

    @log_op("answer.list_for_assessment")
    def list_for_assessment(self, assessment_id: int) -> builtins.list[AnswerORM]:
        return super().list(AnswerORM.assessment_id == assessment_id, order_by=[AnswerORM.id])

    @log_op("answer.create_blank")
    def create_blank(self, assessment_id: int, item_ids: Iterable[int]) -> int:
        """Insert one unanswered row per item; returns the number created."""
        rows = [AnswerORM(assessment_id=assessment_id, item_id=i) for i in item_ids]
        self.s.add_all(rows)
        self.s.flush()
        return len(rows)

    @log_op("answer.upsert")
    def upsert(
        self, assessment_id: int, item_id: int, value: str | None, score: int | None
    ) -> AnswerORM:
        try:
            obj = (
                self.s.query(AnswerORM)
                .filter_by(assessment_id=assessment_id, item_id=item_id)
                .one_or_none()
            )
            if obj is None:
                obj = AnswerORM(assessment_id=assessment_id, item_id=item_id)
                self.s.add(obj)
            obj.value = value
            obj.score = score
            self.s.flush()
            return obj
        except SQLAlchemyError as e:
            self._handle_error(e, "answer.upsert")


class PillarResultRepo(GenericBaseRepository[PillarResultORM]):
    model = PillarResultORM

    @log_op("pillar_result.upsert")
    def upsert(
        self,
        assessment_id: int,
        pillar_id: int,
        real_level_id: int | None,
        expected_level: str | None,
        level_scores: Iterable[tuple[int, int, float]],
    ) -> PillarResultORM:
        """
        Create or replace the result row of one pillar.

        ``level_scores`` holds ``(level_id, level_order, percentage)`` and
        replaces whatever scores were stored by a previous computation.
        """
        try:
            obj = (
                self.s.query(PillarResultORM)
                .filter_by(assessment_id=assessment_id, pillar_id=pillar_id)
                .one_or_none()
            )
            if obj is None:
                obj = PillarResultORM(assessment_id=assessment_id, pillar_id=pillar_id)
                self.s.add(obj)
            obj.real_level_id = real_level_id
            obj.expected_level = expected_level

            # old rows must be gone before the replacements hit the unique constraint
            obj.level_scores.clear()
            self.s.flush()
            for level_id, level_order, percentage in level_scores:
                obj.level_scores.append(
                    PillarLevelScoreORM(
                        level_id=level_id, level_order=level_order, percentage=percentage
                    )
                )
            self.s.flush()
            return obj
        except SQLAlchemyError as e:
            self._handle_error(e, "pillar_result.upsert")


class ActionPlanRepo(GenericBaseRepository[ActionPlanORM]):
    model = ActionPlanORM
    not_found = ActionPlanNotFoundError

    @log_op("action_plan.get_required")
    def get_by_id_required(self, id_: Any) -> ActionPlanORM:
        return super().get_by_id_required(id_)

    @log_op("action_plan.create")
    def create(self, **fields: Any) -> ActionPlanORM:
        try:
            return super().create(**fields)
        except SQLAlchemyError as e:
            self._handle_error(e, "action_plan.create")

    @log_op("action_plan.delete")
    def delete(self, obj: ActionPlanORM) -> None:
        super().delete(obj)
